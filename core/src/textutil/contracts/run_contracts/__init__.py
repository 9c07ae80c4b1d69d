from .host_config import (
    DEFAULT_ALLOWED_MODULES,
    HostBindingsConfig,
    HostConfig,
    PluginsConfig,
    RuntimeConfig,
)
from .invocation_result import FailurePhase, InvocationResult, InvocationStatus

__all__ = [
    "DEFAULT_ALLOWED_MODULES",
    "HostConfig",
    "HostBindingsConfig",
    "PluginsConfig",
    "RuntimeConfig",
    "InvocationResult",
    "InvocationStatus",
    "FailurePhase",
]

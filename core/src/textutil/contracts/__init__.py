from .plugin_contracts import (
    PluginInfo,
    PluginNotFoundError,
    PluginRegistry,
    PluginSource,
    SourceEntry,
    SourceProvider,
    normalize_plugin_key,
)
from .run_contracts import (
    FailurePhase,
    HostConfig,
    InvocationResult,
    InvocationStatus,
)
from .runtime import (
    BindError,
    HostCallError,
    HostValue,
    ScriptError,
    ScriptPhase,
    ScriptRuntime,
)

__all__ = [
    "PluginInfo",
    "PluginSource",
    "PluginRegistry",
    "PluginNotFoundError",
    "SourceEntry",
    "SourceProvider",
    "normalize_plugin_key",
    "HostConfig",
    "InvocationResult",
    "InvocationStatus",
    "FailurePhase",
    "ScriptRuntime",
    "ScriptError",
    "ScriptPhase",
    "BindError",
    "HostCallError",
    "HostValue",
]

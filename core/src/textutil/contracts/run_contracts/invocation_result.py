from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

InvocationStatus = Literal["ok", "failed"]
FailurePhase = Literal["lookup", "parse", "runtime", "timeout", "convert"]


@dataclass(frozen=True, slots=True)
class InvocationResult:
    """
    Public outcome of one plugin invocation.

    Exactly one of ``text`` (status "ok") or ``message`` (status "failed") is set.
    The UI replaces the buffer only on "ok".
    """

    status: InvocationStatus
    plugin_key: str

    # New buffer text on success
    text: str | None = None

    # Human-readable diagnostic on failure
    message: str | None = None
    phase: FailurePhase | None = None

    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, text: str, *, plugin_key: str, duration_s: float = 0.0) -> InvocationResult:
        return cls(status="ok", plugin_key=plugin_key, text=text, duration_s=duration_s)

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        plugin_key: str,
        phase: FailurePhase,
        duration_s: float = 0.0,
    ) -> InvocationResult:
        return cls(
            status="failed",
            plugin_key=plugin_key,
            message=message,
            phase=phase,
            duration_s=duration_s,
        )

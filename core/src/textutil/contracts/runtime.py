from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal, Protocol, runtime_checkable

ScriptPhase = Literal["parse", "runtime", "lookup", "convert", "timeout"]

# str | int | float | bool | None, lists/tuples/dicts of those, or a HostFunction.
HostValue = Any


class BindError(ValueError):
    """A host value could not be bound into an execution context."""


class HostCallError(Exception):
    """Raised inside a script when a host function rejects its call."""


class ScriptError(Exception):
    """
    Failure raised by the script runtime.

    ``error`` holds the foreign exception raised by script code, if any; it is
    rendered lazily by ``ScriptRuntime.to_display_string`` since it may be hostile.
    """

    def __init__(
        self,
        phase: ScriptPhase,
        message: str,
        *,
        error: BaseException | None = None,
        lineno: int | None = None,
    ) -> None:
        super().__init__(f"{phase}: {message}")
        self.phase: ScriptPhase = phase
        self.message = message
        self.error = error
        self.lineno = lineno


@runtime_checkable
class ScriptRuntime(Protocol):
    """
    Embeddable script engine contract.

    Every invocation gets its own context; contexts are never reused.
    """

    def create_context(self) -> Any:
        """Allocate an empty, isolated execution context."""
        ...

    def dispose(self, context: Any) -> None:
        """Discard a context; it must not be used afterwards."""
        ...

    def bind(self, context: Any, name: str, value: HostValue, *, mutable: bool = False) -> None:
        """Inject a host value under ``name``; raise BindError if rejected."""
        ...

    def evaluate(self, context: Any, source: str, *, filename: str = "<plugin>") -> None:
        """Run top-level script code; raise ScriptError on parse/runtime failure."""
        ...

    def invoke(self, context: Any, function_name: str, args: Sequence[HostValue]) -> HostValue:
        """Call a script-defined function and return a host value."""
        ...

    def to_display_string(self, context: Any, error: ScriptError) -> str:
        """Render a ScriptError for humans. Must never raise."""
        ...

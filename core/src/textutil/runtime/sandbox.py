"""Python script runtime with one disposable namespace per invocation.

Plugin source is compiled and executed in a private globals dict with a restricted
builtins table: no ``open``, ``eval``, ``exec``, ``compile`` or unrestricted imports.
Only allow-listed modules can be imported, and each import yields a read-only
per-context view of the module's public attributes. Objects the plugin did not
create cannot be modified from plugin code (see ``attributes``). This narrows what
a plugin can touch; it is not a security boundary against a determined attacker.
"""

from __future__ import annotations

import ast
import builtins
import copy
import importlib
import keyword
import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from types import ModuleType, SimpleNamespace, TracebackType
from typing import Any

from textutil.contracts.run_contracts.host_config import DEFAULT_ALLOWED_MODULES, HostConfig
from textutil.contracts.runtime import BindError, HostCallError, HostValue, ScriptError
from textutil.runtime.attributes import (
    MUTABLE_CONTAINERS,
    PLUGIN_MODULE_NAME,
    AttributeGuard,
    guard_attributes,
)
from textutil.runtime.bindings import HostFunction
from textutil.runtime.budget import BudgetExceeded, ExecutionBudget, instrument
from textutil.runtime.values import (
    ValueConversionError,
    convert_value,
    freeze_value,
    type_name,
)

_MAX_DIAGNOSTIC_CHARS = 2000
_UNKNOWN_ERROR = "plugin failed with an unknown error"

SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "ascii",
    "bin",
    "bool",
    "callable",
    "chr",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "format",
    "frozenset",
    "hash",
    "hex",
    "int",
    "isinstance",
    "issubclass",
    "iter",
    "len",
    "list",
    "map",
    "max",
    "min",
    "next",
    "object",
    "oct",
    "ord",
    "pow",
    "property",
    "range",
    "repr",
    "reversed",
    "round",
    "set",
    "slice",
    "sorted",
    "staticmethod",
    "classmethod",
    "str",
    "sum",
    "super",
    "tuple",
    "zip",
    "__build_class__",
    "ArithmeticError",
    "AssertionError",
    "AttributeError",
    "Exception",
    "ImportError",
    "IndexError",
    "KeyError",
    "LookupError",
    "NameError",
    "NotImplementedError",
    "OverflowError",
    "RuntimeError",
    "StopIteration",
    "TypeError",
    "UnicodeError",
    "ValueError",
    "ZeroDivisionError",
)

_plugin_logger = logging.getLogger("textutil.plugin")


class ModuleView(SimpleNamespace):
    """Read-only, per-context copy of a module's public attributes."""

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{self!r} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{self!r} is read-only")

    def __repr__(self) -> str:
        return f"<module {self.__dict__.get('__name__', '?')!r} (plugin view)>"


@dataclass(eq=False)
class ExecutionContext:
    """
    Single-use execution environment.

    Holds the script's globals plus the read-only bindings to verify after each call.
    """

    context_id: str
    namespace: dict[str, Any]
    read_only: dict[str, Any] = field(default_factory=dict)
    modules: dict[str, ModuleView] = field(default_factory=dict)
    budget: ExecutionBudget = field(default_factory=lambda: ExecutionBudget(None))
    filename: str = "<plugin>"
    closed: bool = False
    guard: AttributeGuard = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.guard = AttributeGuard(self.namespace)

    def close(self) -> None:
        self.namespace.clear()
        self.read_only.clear()
        self.modules.clear()
        self.closed = True

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class PythonScriptRuntime:
    """ScriptRuntime implementation executing plugin source as restricted Python."""

    def __init__(
        self,
        *,
        timeout_s: float | None = 5.0,
        allowed_modules: Iterable[str] = DEFAULT_ALLOWED_MODULES,
        entry_point: str = "main",
    ) -> None:
        if timeout_s is not None and timeout_s <= 0:
            raise ValueError("timeout_s must be > 0 when provided")
        self.timeout_s = timeout_s
        self._allowed_modules = frozenset(allowed_modules)
        self._entry_point = entry_point
        self._module_attrs: dict[str, dict[str, Any]] = {}

    @classmethod
    def from_config(cls, config: HostConfig) -> PythonScriptRuntime:
        return cls(
            timeout_s=config.runtime.timeout_s,
            allowed_modules=config.runtime.allowed_modules,
            entry_point=config.runtime.entry_point,
        )

    def create_context(self) -> ExecutionContext:
        context = ExecutionContext(
            context_id=uuid.uuid4().hex[:8],
            namespace={},
            budget=ExecutionBudget(self.timeout_s),
        )
        context.namespace["__builtins__"] = self._build_builtins(context)
        context.namespace["__name__"] = PLUGIN_MODULE_NAME
        return context

    def dispose(self, context: ExecutionContext) -> None:
        context.close()

    def bind(
        self,
        context: ExecutionContext,
        name: str,
        value: HostValue,
        *,
        mutable: bool = False,
    ) -> None:
        _ensure_open(context)
        if self.is_reserved(name):
            raise BindError(f"'{name}' is a reserved identifier")
        if name in context.read_only:
            raise BindError(f"'{name}' is already bound read-only")

        if isinstance(value, HostFunction):
            bound = value
            context.guard.share([bound])
        else:
            try:
                bound = convert_value(value) if mutable else freeze_value(value)
            except ValueConversionError as exc:
                raise BindError(f"cannot bind '{name}': {exc}") from exc

        context.namespace[name] = bound
        if not mutable:
            context.read_only[name] = bound

    def is_reserved(self, name: str) -> bool:
        return (
            not isinstance(name, str)
            or not name.isidentifier()
            or keyword.iskeyword(name)
            or (name.startswith("__") and name.endswith("__"))
            or name == self._entry_point
        )

    def evaluate(
        self,
        context: ExecutionContext,
        source: str,
        *,
        filename: str = "<plugin>",
    ) -> None:
        _ensure_open(context)
        context.filename = filename

        try:
            tree = instrument(ast.parse(source, filename=filename), filename=filename)
            tree = guard_attributes(tree, filename=filename)
            code = compile(tree, filename, "exec", dont_inherit=True)
        except SyntaxError as exc:
            raise ScriptError(
                "parse", exc.msg or "invalid syntax", error=exc, lineno=exc.lineno
            ) from exc
        except (ValueError, RecursionError, MemoryError) as exc:
            # Null bytes in the source, or nesting too deep for the parser.
            raise ScriptError("parse", f"cannot compile source ({type_name(exc)})") from exc

        self._guarded(context, exec, code, context.namespace)
        self._check_read_only(context)

    def invoke(
        self,
        context: ExecutionContext,
        function_name: str,
        args: Sequence[HostValue],
    ) -> HostValue:
        _ensure_open(context)
        func = context.namespace.get(function_name)
        if func is None or not callable(func):
            raise ScriptError("lookup", f"function '{function_name}' is not defined")

        try:
            call_args = [convert_value(arg) for arg in args]
        except ValueConversionError as exc:
            raise ScriptError("convert", f"argument rejected: {exc}") from exc

        result = self._guarded(context, func, *call_args)
        self._check_read_only(context)

        try:
            return convert_value(result)
        except ValueConversionError as exc:
            raise ScriptError("convert", f"return value rejected: {exc}") from exc

    def to_display_string(self, context: ExecutionContext | None, error: ScriptError) -> str:
        try:
            rendered = f"{error.phase} error: {self._describe(context, error)}"
        except Exception:
            return _UNKNOWN_ERROR
        if len(rendered) > _MAX_DIAGNOSTIC_CHARS:
            rendered = rendered[: _MAX_DIAGNOSTIC_CHARS - 3] + "..."
        return rendered

    def _describe(self, context: ExecutionContext | None, error: ScriptError) -> str:
        foreign = error.error
        if foreign is None or isinstance(foreign, SyntaxError):
            detail = error.message
        else:
            name = type_name(foreign)
            budget = context.budget if context is not None else ExecutionBudget(self.timeout_s)
            text = _safe_str(foreign, budget)
            if text is None:
                return f"plugin raised an unprintable {name}"
            detail = f"{name}: {text}" if text else name
        if error.lineno is not None:
            detail = f"{detail} (line {error.lineno})"
        return detail

    def _guarded(self, context: ExecutionContext, func: Callable[..., Any], *args: Any) -> Any:
        budget = context.budget
        try:
            with budget.guard():
                result = func(*args)
                if budget.exhausted:
                    # The plugin caught BudgetExceeded and carried on.
                    raise BudgetExceeded()
                return result
        except BudgetExceeded:
            raise ScriptError(
                "timeout", f"plugin exceeded its {budget.timeout_s:g}s time budget"
            ) from None
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            # Script code may raise anything, SystemExit and GeneratorExit included.
            raise ScriptError(
                "runtime",
                f"{type_name(exc)} raised",
                error=exc,
                lineno=_script_lineno(exc, context.filename),
            ) from exc

    def _check_read_only(self, context: ExecutionContext) -> None:
        for name, value in context.read_only.items():
            if context.namespace.get(name, _MISSING) is not value:
                raise ScriptError("runtime", f"cannot assign to read-only binding '{name}'")

    def _build_builtins(self, context: ExecutionContext) -> dict[str, Any]:
        table = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
        table.update(context.budget.builtins())
        table.update(context.guard.builtins())
        table["HostCallError"] = HostCallError
        table["print"] = _plugin_print

        def guarded_import(
            name: str,
            globals: Any = None,
            locals: Any = None,
            fromlist: Any = (),
            level: int = 0,
        ) -> ModuleView:
            if level != 0:
                raise ImportError("relative imports are not available to plugins")
            if name not in self._allowed_modules:
                raise ImportError(f"import of '{name}' is not allowed")
            view = context.modules.get(name)
            if view is None:
                attrs = {
                    key: copy.copy(value) if type(value) in MUTABLE_CONTAINERS else value
                    for key, value in self._public_attrs(name).items()
                }
                view = ModuleView(**attrs)
                context.modules[name] = view
                context.guard.share([view, *attrs.values()])
            return view

        table["__import__"] = guarded_import
        return table

    def _public_attrs(self, module_name: str) -> dict[str, Any]:
        attrs = self._module_attrs.get(module_name)
        if attrs is None:
            module = importlib.import_module(module_name)
            attrs = {
                key: value
                for key, value in vars(module).items()
                if not key.startswith("_") and not isinstance(value, ModuleType)
            }
            attrs["__name__"] = module_name
            self._module_attrs[module_name] = attrs
        return dict(attrs)


_MISSING = object()


def _plugin_print(*args: Any, sep: str = " ", end: str = "\n") -> None:
    _plugin_logger.debug("%s", (sep.join(str(arg) for arg in args) + end).rstrip("\n"))


def _safe_str(value: BaseException, budget: ExecutionBudget) -> str | None:
    try:
        with budget.guard():
            text = str(value)
            if budget.exhausted:
                return None
    except KeyboardInterrupt:
        raise
    except BaseException:
        return None
    return text


def _ensure_open(context: ExecutionContext) -> None:
    if context.closed:
        raise ValueError(f"execution context {context.context_id} is closed")


def _script_lineno(exc: BaseException, filename: str) -> int | None:
    lineno = None
    tb = exc.__traceback__
    while tb is not None:
        if tb.tb_frame.f_code.co_filename == filename:
            lineno = tb.tb_lineno
        tb = tb.tb_next
    return lineno

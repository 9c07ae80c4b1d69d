"""Attribute access rules for plugin code.

Allowed modules, builtins and host bindings are the same objects in every execution
context and in the host. Plugin source is rewritten so that every attribute load
goes through ``__guard_getattr__`` and the object of every attribute store or delete
goes through ``__guard_target__``:

- objects the plugin did not create cannot be modified;
- private attributes of those objects cannot be read;
- mutable containers read off shared objects come back as copies.

Frame, traceback and function-internals attributes are rejected at compile time.
Host library code that looks attributes up by name on the plugin's behalf is not
covered.
"""

from __future__ import annotations

import ast
import copy
from collections.abc import Iterable
from types import BuiltinFunctionType, FunctionType, MethodType, ModuleType
from typing import Any

GETATTR_NAME = "__guard_getattr__"
TARGET_NAME = "__guard_target__"
GUARD_NAMES = frozenset({GETATTR_NAME, TARGET_NAME})

# Classes defined by plugin code get this __module__.
PLUGIN_MODULE_NAME = "__plugin__"

FORBIDDEN_ATTRIBUTES = frozenset(
    {
        "__builtins__",
        "__closure__",
        "__code__",
        "__globals__",
        "__subclasses__",
        "__traceback__",
        "ag_code",
        "ag_frame",
        "cr_code",
        "cr_frame",
        "f_back",
        "f_builtins",
        "f_code",
        "f_globals",
        "f_locals",
        "gi_code",
        "gi_frame",
        "tb_frame",
        "tb_next",
    }
)

# Dunder attributes readable on any object.
_PUBLIC_DUNDERS = frozenset(
    {
        "__call__",
        "__class__",
        "__contains__",
        "__doc__",
        "__enter__",
        "__eq__",
        "__exit__",
        "__getitem__",
        "__hash__",
        "__init__",
        "__iter__",
        "__len__",
        "__name__",
        "__new__",
        "__next__",
        "__qualname__",
        "__repr__",
        "__str__",
    }
)

MUTABLE_CONTAINERS = (dict, list, set, bytearray)


class AttributeGuard:
    """Attribute rules for one execution context, keyed on its script globals."""

    def __init__(self, namespace: dict[str, Any]) -> None:
        self._namespace = namespace
        self._shared_ids: set[int] = set()

    def share(self, values: Iterable[Any]) -> None:
        # Callers keep the values alive for the context's lifetime, so ids stay unique.
        self._shared_ids.update(id(value) for value in values)

    def owns(self, obj: Any) -> bool:
        if isinstance(obj, FunctionType):
            return obj.__globals__ is self._namespace
        if isinstance(obj, MethodType):
            return self.owns(obj.__func__)
        if isinstance(obj, super):
            return self.owns(obj.__thisclass__)
        cls = obj if isinstance(obj, type) else type(obj)
        return getattr(cls, "__module__", None) == PLUGIN_MODULE_NAME

    def is_shared(self, obj: Any) -> bool:
        if id(obj) in self._shared_ids:
            return True
        if isinstance(obj, (ModuleType, BuiltinFunctionType)):
            return True
        if isinstance(obj, (type, FunctionType, MethodType)):
            return not self.owns(obj)
        return False

    def getattr(self, obj: Any, name: str) -> Any:
        if name.startswith("_") and name not in _PUBLIC_DUNDERS and not self.owns(obj):
            raise AttributeError(
                f"attribute '{name}' of {_describe(obj)} is not available to plugins"
            )
        value = getattr(obj, name)
        if type(value) in MUTABLE_CONTAINERS and self._borrowed(obj, name):
            return copy.copy(value)
        return value

    def _borrowed(self, obj: Any, name: str) -> bool:
        if self.is_shared(obj):
            return True
        if not isinstance(obj, type):
            instance_dict = getattr(obj, "__dict__", None)
            if isinstance(instance_dict, dict) and name in instance_dict:
                return False
        cls = obj if isinstance(obj, type) else type(obj)
        for klass in cls.__mro__:
            if name in vars(klass):
                return not self.owns(klass)
        return False

    def target(self, obj: Any) -> Any:
        if self.is_shared(obj):
            raise AttributeError(f"cannot modify {_describe(obj)}: it is shared with the host")
        return obj

    def builtins(self) -> dict[str, Any]:
        return {GETATTR_NAME: self.getattr, TARGET_NAME: self.target}


def guard_attributes(tree: ast.Module, *, filename: str) -> ast.Module:
    """Route the plugin's attribute access through the context's AttributeGuard."""
    tree = _AttributeRewriter(filename).visit(tree)
    return ast.fix_missing_locations(tree)


def _describe(obj: Any) -> str:
    name = getattr(obj, "__name__", None)
    if isinstance(name, str):
        return f"'{name}'"
    return f"'{type(obj).__name__}' object"


class _AttributeRewriter(ast.NodeTransformer):
    def __init__(self, filename: str) -> None:
        self._filename = filename
        self._classes: list[str] = []

    def _reject(self, attr: str, node: ast.AST) -> None:
        raise SyntaxError(
            f"attribute '{attr}' is not available to plugins",
            (self._filename, getattr(node, "lineno", None), getattr(node, "col_offset", 0), None),
        )

    def _mangle(self, attr: str) -> str:
        # Private names are mangled by the compiler; getattr() needs the mangled form.
        if not self._classes or not attr.startswith("__") or attr.endswith("__"):
            return attr
        owner = self._classes[-1].lstrip("_")
        return f"_{owner}{attr}" if owner else attr

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.ClassDef:
        node.decorator_list = [self.visit(item) for item in node.decorator_list]
        node.bases = [self.visit(item) for item in node.bases]
        node.keywords = [self.visit(item) for item in node.keywords]
        self._classes.append(node.name)
        try:
            body: list[ast.stmt] = []
            for statement in node.body:
                body.append(self.visit(statement))
            node.body = body
        finally:
            self._classes.pop()
        return node

    def visit_MatchClass(self, node: ast.MatchClass) -> ast.MatchClass:
        for attr in node.kwd_attrs:
            if attr.startswith("_") or attr in FORBIDDEN_ATTRIBUTES:
                self._reject(attr, node)
        self.generic_visit(node)
        return node

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        self.generic_visit(node)
        if node.attr in FORBIDDEN_ATTRIBUTES:
            self._reject(node.attr, node)
        if isinstance(node.ctx, ast.Load):
            call = ast.Call(
                func=ast.Name(id=GETATTR_NAME, ctx=ast.Load()),
                args=[node.value, ast.Constant(value=self._mangle(node.attr))],
                keywords=[],
            )
            return ast.copy_location(call, node)
        wrapped = ast.Call(
            func=ast.Name(id=TARGET_NAME, ctx=ast.Load()), args=[node.value], keywords=[]
        )
        node.value = ast.copy_location(wrapped, node.value)
        return node

"""Wall-clock execution budget for plugin code.

Plugin source is instrumented before compilation: every loop body and function
body starts with a call to the budget checkpoint, and every comprehension iterates
through a checking wrapper. Once the deadline passes, each checkpoint raises
BudgetExceeded again, so a plugin that catches it (bare ``except:``) still cannot
keep running. Time spent inside a single C call (one huge regex backtrack, say)
is not interruptible.
"""

from __future__ import annotations

import ast
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from textutil.runtime.attributes import GUARD_NAMES

CHECKPOINT_NAME = "__budget_check__"
ITERATE_NAME = "__budget_iter__"

# Plugins may not bind or reference these; they would shadow the checkpoints and guards.
RESERVED_SCRIPT_NAMES = frozenset({CHECKPOINT_NAME, ITERATE_NAME, "__builtins__"}) | GUARD_NAMES
_NAME_FIELDS = ("id", "arg", "name", "asname", "names", "rest")


class BudgetExceeded(BaseException):
    """
    Raised at a checkpoint once the budget is spent.

    Derives from BaseException so ``except Exception`` in plugin code cannot swallow it.
    """


class ExecutionBudget:
    """Deadline shared by the checkpoints of one execution context."""

    def __init__(self, timeout_s: float | None) -> None:
        if timeout_s is not None and timeout_s <= 0:
            raise ValueError("timeout_s must be > 0 when provided")
        self.timeout_s = timeout_s
        self.exhausted = False
        self._deadline: float | None = None

    @contextmanager
    def guard(self) -> Iterator[None]:
        if self.timeout_s is None:
            yield
            return
        previous = self._deadline
        self.exhausted = False
        self._deadline = time.monotonic() + self.timeout_s
        try:
            yield
        finally:
            self._deadline = previous

    def check(self) -> None:
        deadline = self._deadline
        if deadline is not None and time.monotonic() > deadline:
            self.exhausted = True
            raise BudgetExceeded()

    def iterate(self, iterable: Iterable[Any]) -> Iterator[Any]:
        for item in iterable:
            self.check()
            yield item

    def builtins(self) -> dict[str, Any]:
        return {CHECKPOINT_NAME: self.check, ITERATE_NAME: self.iterate}


def instrument(tree: ast.Module, *, filename: str) -> ast.Module:
    """Insert budget checkpoints into a parsed plugin module."""
    _reject_reserved_names(tree, filename)
    tree = _CheckpointInserter().visit(tree)
    return ast.fix_missing_locations(tree)


def _reject_reserved_names(tree: ast.AST, filename: str) -> None:
    for node in ast.walk(tree):
        for field in _NAME_FIELDS:
            value = getattr(node, field, None)
            values = value if isinstance(value, list) else [value]
            for item in values:
                if isinstance(item, str) and item in RESERVED_SCRIPT_NAMES:
                    lineno = getattr(node, "lineno", None)
                    raise SyntaxError(
                        f"name '{item}' is reserved",
                        (filename, lineno, getattr(node, "col_offset", 0), None),
                    )


class _CheckpointInserter(ast.NodeTransformer):
    def _checkpoint(self, anchor: ast.AST) -> ast.stmt:
        call = ast.Expr(
            value=ast.Call(func=ast.Name(id=CHECKPOINT_NAME, ctx=ast.Load()), args=[], keywords=[])
        )
        return ast.copy_location(call, anchor)

    def _guard_body(self, node: Any) -> Any:
        self.generic_visit(node)
        node.body.insert(0, self._checkpoint(node))
        return node

    visit_FunctionDef = _guard_body
    visit_AsyncFunctionDef = _guard_body
    visit_While = _guard_body
    visit_For = _guard_body
    visit_AsyncFor = _guard_body

    def visit_comprehension(self, node: ast.comprehension) -> ast.comprehension:
        self.generic_visit(node)
        if not node.is_async:
            wrapped = ast.Call(
                func=ast.Name(id=ITERATE_NAME, ctx=ast.Load()), args=[node.iter], keywords=[]
            )
            node.iter = ast.copy_location(wrapped, node.iter)
        return node

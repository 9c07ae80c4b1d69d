"""Script runtime: sandboxed execution contexts, budget, and host bindings."""

from textutil.runtime.bindings import HOST_VERSION_BINDING, HostFunction, default_bindings
from textutil.runtime.budget import BudgetExceeded, ExecutionBudget
from textutil.runtime.sandbox import ExecutionContext, ModuleView, PythonScriptRuntime

__all__ = [
    "HOST_VERSION_BINDING",
    "HostFunction",
    "default_bindings",
    "BudgetExceeded",
    "ExecutionBudget",
    "ExecutionContext",
    "ModuleView",
    "PythonScriptRuntime",
]

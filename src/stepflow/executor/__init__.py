"""Executor module for Stepflow.

This module holds the executor contract, the registry that maps step
types to executors, configuration resolution and the built-in step types.
"""

from stepflow.executor.base import Executor, FunctionExecutor, as_executor
from stepflow.executor.builtin import (
    OutputExecutor,
    TemplateExecutor,
    TransformExecutor,
    builtin_executors,
)
from stepflow.executor.expressions import ExpressionEvaluator
from stepflow.executor.registry import ExecutorRegistry, load_executor
from stepflow.executor.resolver import VariableResolver, find_unresolved
from stepflow.executor.template import TemplateRenderer

__all__ = [
    "Executor",
    "ExecutorRegistry",
    "ExpressionEvaluator",
    "FunctionExecutor",
    "OutputExecutor",
    "TemplateExecutor",
    "TemplateRenderer",
    "TransformExecutor",
    "VariableResolver",
    "as_executor",
    "builtin_executors",
    "find_unresolved",
    "load_executor",
]

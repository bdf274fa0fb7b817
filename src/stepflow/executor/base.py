# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Abstract base class for step executors.

This module defines the Executor ABC that every step type implementation
satisfies, and FunctionExecutor, which adapts plain callables to it.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stepflow.config.schema import StepDef
    from stepflow.engine.context import ExecutionContext


ExecutorFunction = Callable[["StepDef", Any, "ExecutionContext"], Any]


class Executor(ABC):
    """Abstract base class for step executors.

    An executor performs the work behind one step type: an HTTP call, a
    database write, a message send. It receives the step definition, the
    step's configuration with every resolvable {{ path }} token already
    substituted, and the execution context.

    Failure is signalled by raising. A returned value is always recorded as
    the step's output, even if it describes an error; only a raised
    exception triggers the step's ``on_error`` policy.

    Executors are shared across executions and must not keep per-run state.

    Example:
        >>> class EchoExecutor(Executor):
        ...     async def execute(self, step, config, context):
        ...         return {"echo": config}
    """

    @abstractmethod
    async def execute(
        self,
        step: StepDef,
        config: Any,
        context: ExecutionContext,
    ) -> Any:
        """Run the step and return a JSON-serializable result.

        Args:
            step: The step definition being executed.
            config: The step's resolved configuration.
            context: The execution context as of the start of the step.

        Returns:
            The step's output.
        """
        ...


class FunctionExecutor(Executor):
    """Adapts a plain function to the Executor interface.

    The function receives ``(step, config, context)`` and may be either a
    regular function or a coroutine function. Regular functions run inline
    on the event loop.
    """

    def __init__(self, func: ExecutorFunction, name: str | None = None) -> None:
        """Wrap a callable.

        Args:
            func: The callable implementing the step.
            name: Optional display name. Defaults to the callable's name.
        """
        self.func = func
        self.name = name or getattr(func, "__qualname__", repr(func))

    async def execute(
        self,
        step: StepDef,
        config: Any,
        context: ExecutionContext,
    ) -> Any:
        """Call the wrapped function, awaiting its result if needed."""
        result = self.func(step, config, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionExecutor({self.name})"


def as_executor(executor: Executor | ExecutorFunction) -> Executor:
    """Return an Executor for an executor instance or a plain callable.

    Raises:
        TypeError: If the object is neither an Executor nor callable.
    """
    if isinstance(executor, Executor):
        return executor
    if callable(executor):
        return FunctionExecutor(executor)
    raise TypeError(
        f"Executor must be an Executor instance or a callable, got {type(executor).__name__}"
    )

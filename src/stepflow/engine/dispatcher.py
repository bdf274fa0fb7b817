# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Step dispatch for Stepflow.

The StepDispatcher runs a single step: it resolves the step's
configuration against the context, looks up the executor for the step's
type, invokes it (with an optional timeout) and applies the step's
``on_error`` policy to whatever the executor raises.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from stepflow.config.settings import EngineConfig
from stepflow.exceptions import (
    ExecutorError,
    StepflowError,
    StepTimeoutError,
    UnknownStepTypeError,
)
from stepflow.executor.resolver import VariableResolver

if TYPE_CHECKING:
    from stepflow.config.schema import RetryPolicy, StepDef
    from stepflow.engine.context import ExecutionContext
    from stepflow.executor.base import Executor
    from stepflow.executor.registry import ExecutorRegistry

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """Result of dispatching one step.

    Attributes:
        output: The executor's result, or ``{"error": ..., "status": "failed"}``
            when a failure was absorbed by ``on_error: continue``.
        status: 'completed' or 'failed'.
        attempts: Executor invocations made.
        error: The absorbed failure, if any.
        started_at: When dispatch began.
        finished_at: When dispatch ended.
    """

    output: Any
    status: str
    attempts: int = 1
    error: StepflowError | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class StepDispatcher:
    """Runs single steps and applies their error policies.

    Failure policies:
    - stop: the classified error is raised to the caller.
    - continue: the error is logged and turned into a failed outcome.
    - retry: the executor is invoked again with exponential backoff until
      it succeeds or the attempts run out, then the error is raised.

    An unknown step type is always raised, whatever the policy, and
    cancellation is never caught.

    Example:
        >>> dispatcher = StepDispatcher(registry)
        >>> outcome = await dispatcher.dispatch(step, context)
        >>> outcome.status
        'completed'
    """

    def __init__(
        self,
        registry: ExecutorRegistry,
        config: EngineConfig | None = None,
        resolver: VariableResolver | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: The registry used to look up step executors.
            config: Engine settings supplying retry defaults.
            resolver: Resolver for {{ path }} tokens in step configuration.
            sleep: Coroutine used to wait between retries. Defaults to
                asyncio.sleep.
        """
        self.registry = registry
        self.config = config or EngineConfig()
        self.resolver = resolver or VariableResolver()
        self._sleep = sleep or asyncio.sleep

    async def dispatch(self, step: StepDef, context: ExecutionContext) -> StepOutcome:
        """Run one step against the context.

        Args:
            step: The step to run.
            context: The execution context. It is not modified here; the
                caller records the outcome.

        Returns:
            The step's outcome.

        Raises:
            UnknownStepTypeError: If no executor is registered for the type.
            StepflowError: If the step failed under the 'stop' or
                exhausted 'retry' policy.
        """
        started_at = datetime.now(timezone.utc)
        executor = self.registry.get(step.type, step_id=step.id)
        config = self.resolver.resolve(step.config, context.as_scope())
        max_attempts = self.max_attempts(step)

        logger.debug(f"Dispatching step '{step.id}' (type: {step.type})")

        attempt = 0
        while True:
            attempt += 1
            try:
                output = await self._invoke(executor, step, config, context)
            except UnknownStepTypeError:
                raise
            except Exception as e:
                error = self._classify(e, step, attempt)

                if attempt < max_attempts:
                    delay = self.calculate_delay(attempt, step.retry)
                    logger.warning(
                        f"[Retry {attempt}/{max_attempts}] Step '{step.id}' retrying after "
                        f"{delay:.2f}s due to {type(e).__name__}: {error.message}"
                    )
                    await self._sleep(delay)
                    continue

                if step.on_error == "continue":
                    logger.warning(
                        f"Step '{step.id}' failed, continuing: {error.message}"
                    )
                    return StepOutcome(
                        output={"error": _failure_message(error), "status": "failed"},
                        status="failed",
                        attempts=attempt,
                        error=error,
                        started_at=started_at,
                        finished_at=datetime.now(timezone.utc),
                    )

                if max_attempts > 1:
                    logger.error(
                        f"Step '{step.id}' failed after {attempt} attempts: {error.message}"
                    )
                if error is e:
                    raise
                raise error from e

            logger.debug(
                f"Step '{step.id}' completed"
                + (f" after {attempt} attempts" if attempt > 1 else "")
            )
            return StepOutcome(
                output=output,
                status="completed",
                attempts=attempt,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
            )

    def max_attempts(self, step: StepDef) -> int:
        """Return the total executor invocations allowed for a step."""
        if step.on_error != "retry":
            return 1
        if step.retry is not None:
            return step.retry.attempts
        return self.config.default_retry_attempts

    def calculate_delay(self, attempt: int, retry: RetryPolicy | None = None) -> float:
        """Calculate delay with exponential backoff and jitter.

        Args:
            attempt: The attempt that just failed (1-indexed).
            retry: The step's retry settings, if any.

        Returns:
            Delay in seconds before the next attempt.
        """
        base_delay = self.config.retry_base_delay
        max_delay = self.config.retry_max_delay
        backoff = 2.0
        if retry is not None:
            if retry.delay is not None:
                base_delay = retry.delay
            if retry.max_delay is not None:
                max_delay = retry.max_delay
            backoff = retry.backoff

        # Exponential backoff: base * backoff^(attempt-1)
        delay = min(base_delay * (backoff ** (attempt - 1)), max_delay)

        if self.config.retry_jitter > 0:
            delay += delay * self.config.retry_jitter * random.random()

        logger.debug(f"Calculated backoff delay: {delay:.2f}s for attempt {attempt}")
        return delay

    async def _invoke(
        self,
        executor: Executor,
        step: StepDef,
        config: Any,
        context: ExecutionContext,
    ) -> Any:
        if step.timeout is None:
            return await executor.execute(step, config, context)

        try:
            return await asyncio.wait_for(
                executor.execute(step, config, context),
                timeout=step.timeout,
            )
        except asyncio.TimeoutError as e:
            raise StepTimeoutError(
                f"Step '{step.id}' timed out after {step.timeout:g}s",
                timeout_seconds=step.timeout,
                step_id=step.id,
                step_type=step.type,
            ) from e

    @staticmethod
    def _classify(error: Exception, step: StepDef, attempt: int) -> StepflowError:
        """Turn an executor exception into a StepflowError.

        Stepflow errors are kept, with the step filled in where missing.
        Anything else is wrapped in an ExecutorError.
        """
        if isinstance(error, StepflowError):
            if error.step_id is None:
                error.step_id = step.id
            if isinstance(error, ExecutorError):
                error.attempts = attempt
                if error.step_type is None:
                    error.step_type = step.type
            return error

        return ExecutorError(
            f"Step '{step.id}' ({step.type}) failed: {type(error).__name__}: {error}",
            step_id=step.id,
            step_type=step.type,
            original_error=error,
            attempts=attempt,
        )


def _failure_message(error: StepflowError) -> str:
    """Return the message recorded in a continue-policy output.

    Wrapped errors report the executor's own message.
    """
    original = getattr(error, "original_error", None)
    if original is not None:
        return str(original)
    return error.message

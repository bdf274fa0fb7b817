# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Execution context management for Stepflow.

This module provides the ExecutionContext class holding the state threaded
through one workflow run: validated inputs, the append-only record of
completed steps, a read-only environment snapshot, workflow metadata and
any business context supplied by the caller.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from stepflow.exceptions import ExecutionError


@dataclass(frozen=True)
class StepRecord:
    """The recorded result of one completed step.

    Attributes:
        output: The executor's result, or a synthetic failure output.
        status: 'completed' or 'failed' (a failure swallowed by on_error: continue).
        executed_at: When the step finished.
    """

    output: Any
    status: str
    executed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Return the record as seen by templates and expressions."""
        return {
            "output": self.output,
            "status": self.status,
            "executed_at": self.executed_at.isoformat(),
        }


def snapshot_environment(env: Mapping[str, str] | None = None) -> Mapping[str, str]:
    """Take a read-only copy of an environment mapping.

    Args:
        env: The mapping to copy. Defaults to os.environ.

    Returns:
        A read-only mapping that does not follow later changes.
    """
    return MappingProxyType(dict(os.environ if env is None else env))


@dataclass
class ExecutionContext:
    """Mutable state for one workflow execution.

    Step records are append-only: each step id is recorded once and never
    changed or removed. Scopes handed to templates and expressions are
    built when asked for, so a step only ever sees the steps that finished
    before it started.

    Example:
        >>> ctx = ExecutionContext(inputs={"x": 5})
        >>> ctx.record("s1", 6)
        StepRecord(output=6, status='completed', executed_at=...)
        >>> ctx.as_scope()["steps"]["s1"]["output"]
        6
    """

    inputs: dict[str, Any] = field(default_factory=dict)
    """Validated inputs supplied by the caller."""

    workflow: dict[str, Any] = field(default_factory=dict)
    """Workflow metadata: name and execution_id."""

    env: Mapping[str, str] = field(default_factory=snapshot_environment)
    """Read-only process environment snapshot."""

    extra: dict[str, Any] = field(default_factory=dict)
    """External business context merged in by the caller."""

    _steps: dict[str, StepRecord] = field(default_factory=dict, repr=False)

    @property
    def steps(self) -> Mapping[str, StepRecord]:
        """Read-only view of the recorded steps, in completion order."""
        return MappingProxyType(self._steps)

    def record(self, step_id: str, output: Any, status: str = "completed") -> StepRecord:
        """Append a step result.

        Args:
            step_id: The id of the step that finished.
            output: The step's output.
            status: 'completed' or 'failed'.

        Returns:
            The new StepRecord.

        Raises:
            ExecutionError: If the step id has already been recorded.
        """
        if step_id in self._steps:
            raise ExecutionError(
                f"Step '{step_id}' has already been recorded in this execution",
                suggestion="Step ids must be unique within a workflow",
            )
        record = StepRecord(
            output=output,
            status=status,
            executed_at=datetime.now(timezone.utc),
        )
        self._steps[step_id] = record
        return record

    def last_output(self) -> Any:
        """Return the output of the most recently recorded step, or None."""
        if not self._steps:
            return None
        return next(reversed(self._steps.values())).output

    def _steps_view(self) -> dict[str, dict[str, Any]]:
        return {step_id: record.to_dict() for step_id, record in self._steps.items()}

    def as_scope(self) -> dict[str, Any]:
        """Build the scope used to resolve {{ path }} tokens and templates.

        External context keys come first so the engine's own keys
        (workflow, inputs, steps, env) always win.
        """
        return {
            **self.extra,
            "workflow": dict(self.workflow),
            "inputs": self.inputs,
            "steps": self._steps_view(),
            "env": self.env,
        }

    def data_scope(self) -> dict[str, Any]:
        """Build the scope used by transform expressions."""
        return {
            "inputs": self.inputs,
            "steps": self._steps_view(),
            "env": self.env,
            "workflow": dict(self.workflow),
        }

    def expression_scope(self) -> dict[str, Any]:
        """Build the restricted scope used by branch conditions.

        Only inputs and step records are visible. Each input is also
        available under its own name, so ``amount > 100`` works as well as
        ``inputs.amount > 100``.
        """
        return {
            **self.inputs,
            "inputs": self.inputs,
            "steps": self._steps_view(),
        }

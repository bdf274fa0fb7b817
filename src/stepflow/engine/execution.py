# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Execution records for Stepflow.

This module defines the per-run record kept in the execution ledger and
the summary returned to callers of ``execute_workflow``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ExecutionStatus(str, Enum):
    """Lifecycle state of an execution.

    An execution starts ``running`` and moves exactly once to
    ``completed`` or ``failed``.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        """Return True for the terminal states."""
        return self is not ExecutionStatus.RUNNING


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class StepResult:
    """Outcome of one top-level step within an execution."""

    step_id: str
    step_type: str
    status: str
    """'completed' or 'failed' (failed only under on_error: continue)."""

    output: Any = None
    attempts: int = 1
    """Executor invocations made, including retries."""

    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def duration(self) -> float | None:
        """Seconds between start and finish, if both are known."""
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "step_type": self.step_type,
            "status": self.status,
            "output": self.output,
            "attempts": self.attempts,
            "started_at": _isoformat(self.started_at),
            "finished_at": _isoformat(self.finished_at),
            "duration": self.duration,
        }


@dataclass
class Execution:
    """The ledger's record of one workflow run.

    Only the orchestrator mutates an Execution. Once ``status`` leaves
    ``running`` the record is final.
    """

    id: str
    workflow_name: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    start_time: datetime = field(default_factory=_utcnow)
    end_time: datetime | None = None
    inputs: dict[str, Any] = field(default_factory=dict)
    outputs: Any = None
    step_results: list[StepResult] = field(default_factory=list)
    error: dict[str, Any] | None = None
    """``{"message", "step", "type"}`` when the execution failed."""

    @property
    def duration(self) -> float | None:
        """Wall-clock seconds of the run, once it has finished."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def complete(self, outputs: Any) -> None:
        """Mark the execution completed with its final outputs."""
        self.outputs = outputs
        self.status = ExecutionStatus.COMPLETED
        self.end_time = _utcnow()

    def fail(self, message: str, step_id: str | None, error_type: str) -> None:
        """Mark the execution failed and record what went wrong."""
        self.error = {"message": message, "step": step_id, "type": error_type}
        self.status = ExecutionStatus.FAILED
        self.end_time = _utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record for external inspection."""
        return {
            "id": self.id,
            "workflow_name": self.workflow_name,
            "status": self.status.value,
            "start_time": _isoformat(self.start_time),
            "end_time": _isoformat(self.end_time),
            "duration": self.duration,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "step_results": [result.to_dict() for result in self.step_results],
            "error": self.error,
        }


@dataclass(frozen=True)
class ExecutionResult:
    """Summary returned by ``WorkflowEngine.execute_workflow``."""

    execution_id: str
    status: ExecutionStatus
    outputs: Any
    duration: float | None
    error: dict[str, Any] | None = None

    @classmethod
    def from_execution(cls, execution: Execution) -> ExecutionResult:
        return cls(
            execution_id=execution.id,
            status=execution.status,
            outputs=execution.outputs,
            duration=execution.duration,
            error=execution.error,
        )

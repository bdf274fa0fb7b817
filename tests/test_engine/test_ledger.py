"""Tests for execution records and the in-memory ledger."""

from __future__ import annotations

import pytest

from stepflow.engine.execution import (
    Execution,
    ExecutionResult,
    ExecutionStatus,
    StepResult,
)
from stepflow.engine.ledger import InMemoryExecutionLedger


def _finished(execution_id: str) -> Execution:
    execution = Execution(id=execution_id, workflow_name="wf")
    execution.complete({"ok": True})
    return execution


class TestExecution:
    """Tests for the Execution record."""

    def test_starts_running(self) -> None:
        execution = Execution(id="e1", workflow_name="wf")

        assert execution.status is ExecutionStatus.RUNNING
        assert execution.duration is None
        assert execution.error is None

    def test_complete(self) -> None:
        execution = _finished("e1")

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.outputs == {"ok": True}
        assert execution.duration is not None
        assert execution.duration >= 0

    def test_fail(self) -> None:
        execution = Execution(id="e1", workflow_name="wf")
        execution.fail("boom", "s2", "ExecutorError")

        assert execution.status is ExecutionStatus.FAILED
        assert execution.error == {"message": "boom", "step": "s2", "type": "ExecutorError"}

    def test_to_dict(self) -> None:
        execution = Execution(id="e1", workflow_name="wf", inputs={"x": 1})
        execution.step_results.append(StepResult(step_id="s1", step_type="output", status="completed", output=1))
        execution.complete(1)

        data = execution.to_dict()

        assert data["status"] == "completed"
        assert data["inputs"] == {"x": 1}
        assert data["step_results"][0]["step_id"] == "s1"
        assert data["step_results"][0]["duration"] is None
        assert isinstance(data["start_time"], str)

    def test_result_from_execution(self) -> None:
        result = ExecutionResult.from_execution(_finished("e1"))

        assert result.execution_id == "e1"
        assert result.status == "completed"
        assert result.outputs == {"ok": True}


class TestInMemoryExecutionLedger:
    """Tests for InMemoryExecutionLedger."""

    def test_add_and_get(self) -> None:
        ledger = InMemoryExecutionLedger()
        execution = Execution(id="e1", workflow_name="wf")
        ledger.add(execution)

        assert ledger.get("e1") is execution
        assert ledger.get("missing") is None
        assert len(ledger) == 1

    def test_unbounded_by_default(self) -> None:
        ledger = InMemoryExecutionLedger()
        for i in range(50):
            ledger.add(_finished(f"e{i}"))

        assert len(ledger) == 50

    def test_evicts_oldest_finished(self) -> None:
        ledger = InMemoryExecutionLedger(max_entries=2)
        for execution_id in ("e1", "e2", "e3"):
            ledger.add(_finished(execution_id))

        assert [e.id for e in ledger.list()] == ["e2", "e3"]

    def test_running_executions_are_kept(self) -> None:
        """Test that running executions are never evicted."""
        ledger = InMemoryExecutionLedger(max_entries=1)
        running = Execution(id="running", workflow_name="wf")
        ledger.add(running)
        ledger.add(Execution(id="also-running", workflow_name="wf"))

        assert len(ledger) == 2

        running.complete(None)
        ledger.add(_finished("new"))

        ids = [e.id for e in ledger.list()]
        assert "running" not in ids
        assert "also-running" in ids
        assert "new" in ids

    def test_invalid_bound(self) -> None:
        with pytest.raises(ValueError):
            InMemoryExecutionLedger(max_entries=0)

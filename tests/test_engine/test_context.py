"""Unit tests for ExecutionContext.

Tests cover:
- Append-only step recording
- Scope construction for templates, transforms and conditions
- Environment snapshots
"""

import os

import pytest

from stepflow.engine.context import ExecutionContext, snapshot_environment
from stepflow.exceptions import ExecutionError


class TestExecutionContextRecording:
    """Tests for recording step results."""

    def test_init_default_values(self) -> None:
        """Test ExecutionContext initializes with empty state."""
        ctx = ExecutionContext()

        assert ctx.inputs == {}
        assert dict(ctx.steps) == {}
        assert ctx.extra == {}
        assert ctx.last_output() is None

    def test_record_step(self) -> None:
        ctx = ExecutionContext()
        record = ctx.record("s1", {"total": 3})

        assert record.output == {"total": 3}
        assert record.status == "completed"
        assert ctx.steps["s1"] is record
        assert ctx.last_output() == {"total": 3}

    def test_record_failed_step(self) -> None:
        ctx = ExecutionContext()
        ctx.record("s1", {"error": "boom", "status": "failed"}, status="failed")

        assert ctx.steps["s1"].status == "failed"

    def test_record_is_append_only(self) -> None:
        """Test that a recorded step cannot be overwritten."""
        ctx = ExecutionContext()
        ctx.record("s1", 1)

        with pytest.raises(ExecutionError, match="already been recorded"):
            ctx.record("s1", 2)
        assert ctx.steps["s1"].output == 1

    def test_steps_view_is_read_only(self) -> None:
        ctx = ExecutionContext()
        ctx.record("s1", 1)

        with pytest.raises(TypeError):
            ctx.steps["s2"] = ctx.steps["s1"]  # type: ignore[index]

    def test_last_output_follows_record_order(self) -> None:
        ctx = ExecutionContext()
        ctx.record("b", 2)
        ctx.record("a", 1)

        assert ctx.last_output() == 1
        assert list(ctx.steps) == ["b", "a"]


class TestExecutionContextScopes:
    """Tests for the scopes built from a context."""

    def _context(self) -> ExecutionContext:
        ctx = ExecutionContext(
            inputs={"amount": 150},
            workflow={"name": "orders", "execution_id": "e-1"},
            env={"REGION": "eu"},
            extra={"tenant": "acme", "inputs": "shadowed"},
        )
        ctx.record("fetch", {"total": 7})
        return ctx

    def test_as_scope(self) -> None:
        scope = self._context().as_scope()

        assert scope["tenant"] == "acme"
        assert scope["inputs"] == {"amount": 150}
        assert scope["workflow"] == {"name": "orders", "execution_id": "e-1"}
        assert scope["env"]["REGION"] == "eu"
        assert scope["steps"]["fetch"]["output"] == {"total": 7}
        assert scope["steps"]["fetch"]["status"] == "completed"
        assert "executed_at" in scope["steps"]["fetch"]

    def test_engine_keys_win_over_external_context(self) -> None:
        """Test that external context cannot shadow engine keys."""
        assert self._context().as_scope()["inputs"] == {"amount": 150}

    def test_scope_is_a_snapshot(self) -> None:
        """Test that a scope does not see steps recorded after it was built."""
        ctx = self._context()
        scope = ctx.as_scope()
        ctx.record("later", 1)

        assert "later" not in scope["steps"]

    def test_expression_scope_is_restricted(self) -> None:
        scope = self._context().expression_scope()

        assert set(scope) == {"amount", "inputs", "steps"}
        assert scope["amount"] == 150

    def test_data_scope(self) -> None:
        scope = self._context().data_scope()

        assert set(scope) == {"inputs", "steps", "env", "workflow"}


class TestSnapshotEnvironment:
    """Tests for snapshot_environment."""

    def test_snapshot_is_read_only(self) -> None:
        env = snapshot_environment({"A": "1"})
        with pytest.raises(TypeError):
            env["B"] = "2"  # type: ignore[index]

    def test_snapshot_does_not_follow_changes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STEPFLOW_SNAPSHOT_TEST", "before")
        env = snapshot_environment()
        os.environ["STEPFLOW_SNAPSHOT_TEST"] = "after"

        assert env["STEPFLOW_SNAPSHOT_TEST"] == "before"

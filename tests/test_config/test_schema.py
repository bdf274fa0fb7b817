"""Tests for the workflow definition schema models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from stepflow.config.schema import (
    InputDef,
    RetryPolicy,
    StepDef,
    WorkflowDefinition,
    describe_type,
    matches_input_type,
)


class TestInputTypes:
    """Tests for declared input type matching."""

    @pytest.mark.parametrize(
        ("value", "type_name", "expected"),
        [
            ("hi", "string", True),
            (5, "number", True),
            (2.5, "number", True),
            (True, "number", False),
            (True, "boolean", True),
            ([1], "array", True),
            ({"a": 1}, "object", True),
            ("5", "number", False),
            (None, "string", False),
            (None, "any", True),
        ],
    )
    def test_matches_input_type(self, value: object, type_name: str, expected: bool) -> None:
        assert matches_input_type(value, type_name) is expected

    def test_describe_type(self) -> None:
        assert describe_type(None) == "null"
        assert describe_type(False) == "boolean"
        assert describe_type(3) == "number"
        assert describe_type([]) == "array"
        assert describe_type({}) == "object"


class TestStepDef:
    """Tests for StepDef."""

    def test_defaults(self) -> None:
        step = StepDef(id="a", type="output")

        assert step.on_error == "stop"
        assert step.config is None
        assert step.retry is None
        assert step.is_conditional is False

    def test_extra_keys_are_preserved(self) -> None:
        """Test that executor-specific keys survive validation."""
        step = StepDef.model_validate({"id": "a", "type": "http", "method": "POST"})
        assert step.model_extra == {"method": "POST"}

    def test_blank_id_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            StepDef(id="  ", type="output")

    def test_nested_branches(self) -> None:
        step = StepDef.model_validate(
            {
                "id": "check",
                "type": "conditional",
                "condition": "x > 1",
                "if_true": [{"id": "a", "type": "output"}],
            }
        )

        assert step.is_conditional
        assert step.if_true is not None
        assert step.if_true[0].id == "a"
        assert step.if_false is None

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(PydanticValidationError):
            StepDef(id="a", type="output", timeout=0)

    def test_steps_are_frozen(self) -> None:
        step = StepDef(id="a", type="output")
        with pytest.raises(PydanticValidationError):
            step.id = "b"  # type: ignore[misc]


class TestRetryPolicy:
    """Tests for RetryPolicy bounds."""

    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.attempts == 3
        assert policy.backoff == 2.0
        assert policy.delay is None

    def test_attempts_must_be_positive(self) -> None:
        with pytest.raises(PydanticValidationError):
            RetryPolicy(attempts=0)


class TestWorkflowDefinition:
    """Tests for WorkflowDefinition."""

    def test_numeric_version_is_coerced(self) -> None:
        definition = WorkflowDefinition.model_validate(
            {"name": "w", "version": 1.5, "steps": [{"id": "a", "type": "output"}]}
        )
        assert definition.version == "1.5"

    def test_null_inputs_become_empty(self) -> None:
        definition = WorkflowDefinition.model_validate(
            {"name": "w", "inputs": None, "steps": [{"id": "a", "type": "output"}]}
        )
        assert definition.inputs == {}

    def test_steps_required(self) -> None:
        with pytest.raises(PydanticValidationError, match="at least one step"):
            WorkflowDefinition.model_validate({"name": "w", "steps": []})

    def test_get_step(self) -> None:
        definition = WorkflowDefinition.model_validate(
            {"name": "w", "steps": [{"id": "a", "type": "output"}]}
        )
        assert definition.get_step("a") is definition.steps[0]
        assert definition.get_step("zzz") is None

    def test_input_default_matches_type(self) -> None:
        assert InputDef(type="number", default=3).default == 3
        with pytest.raises(PydanticValidationError):
            InputDef(type="boolean", default="yes")

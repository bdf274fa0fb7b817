"""Tests for the Stepflow exception hierarchy."""

from __future__ import annotations

from stepflow.cli.app import format_error
from stepflow.exceptions import (
    ExecutionError,
    ExecutionNotFoundError,
    ExecutorError,
    ExpressionError,
    LoadError,
    StepflowError,
    StepTimeoutError,
    TemplateError,
    UnknownStepTypeError,
    ValidationError,
    WorkflowNotFoundError,
)


class TestStepflowError:
    """Tests for the base exception."""

    def test_message_only(self) -> None:
        error = StepflowError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.suggestion is None
        assert error.execution_id is None
        assert error.step_id is None

    def test_with_suggestion(self) -> None:
        error = StepflowError("Something went wrong", suggestion="Try again")

        assert "💡 Suggestion: Try again" in str(error)
        assert error.message == "Something went wrong"

    def test_error_type(self) -> None:
        assert LoadError("x").error_type == "LoadError"

    def test_hierarchy(self) -> None:
        for cls in (
            LoadError,
            ValidationError,
            ExecutionError,
            ExecutorError,
            WorkflowNotFoundError,
            ExecutionNotFoundError,
            UnknownStepTypeError,
        ):
            assert issubclass(cls, StepflowError)
        for cls in (ExpressionError, TemplateError, StepTimeoutError):
            assert issubclass(cls, ExecutorError)


class TestLoadError:
    """Tests for LoadError suggestions."""

    def test_duplicate_ids_suggestion(self) -> None:
        error = LoadError("Duplicate step IDs found: a", rule="duplicates")

        assert error.suggestion is not None
        assert "unique" in error.suggestion
        assert error.rule == "duplicates"

    def test_syntax_suggestion(self) -> None:
        error = LoadError("Invalid YAML syntax in 'w.yaml'")
        assert error.suggestion is not None
        assert "indentation" in error.suggestion

    def test_explicit_suggestion_wins(self) -> None:
        error = LoadError("Duplicate step IDs found: a", suggestion="Custom")
        assert error.suggestion == "Custom"

    def test_no_suggestion(self) -> None:
        assert LoadError("Workflow must have a name", source="w.yaml").suggestion is None


class TestValidationError:
    """Tests for ValidationError."""

    def test_type_suggestion(self) -> None:
        error = ValidationError(
            "Input 'x' should be number, got string",
            input_name="x",
            expected_type="number",
            actual_type="string",
        )

        assert error.suggestion == "Expected type 'number', but got 'string'"
        assert error.input_name == "x"


class TestExecutionErrors:
    """Tests for errors raised while executing."""

    def test_unknown_step_type(self) -> None:
        error = UnknownStepTypeError("http", step_id="fetch")

        assert error.message == "Unknown step type: http"
        assert error.step_type == "http"
        assert error.step_id == "fetch"
        assert "register_node_type" in (error.suggestion or "")

    def test_executor_error_fields(self) -> None:
        cause = RuntimeError("boom")
        error = ExecutorError("failed", step_id="s1", step_type="x", original_error=cause, attempts=3)

        assert error.original_error is cause
        assert error.attempts == 3
        assert error.step_id == "s1"

    def test_timeout_suggestion(self) -> None:
        error = StepTimeoutError("slow", timeout_seconds=2.5)
        assert error.suggestion == "Increase the step 'timeout' (currently 2.5s)"

    def test_template_undefined_variable(self) -> None:
        error = TemplateError("undefined", undefined_variable="user")
        assert "Variable 'user' is not defined" in (error.suggestion or "")

    def test_not_found_errors(self) -> None:
        assert WorkflowNotFoundError("orders").message == "Workflow 'orders' not found"
        error = ExecutionNotFoundError("e1")
        assert error.message == "Execution 'e1' not found"
        assert error.execution_id == "e1"


class TestFormatError:
    """Tests for CLI error panels."""

    def test_panel_includes_step_and_execution(self) -> None:
        error = ExecutorError("Step failed", suggestion="Check it")
        error.step_id = "s2"
        error.execution_id = "abc"

        panel = format_error(error)
        text = panel.renderable.plain

        assert "Step failed" in text
        assert "📍 Step: s2" in text
        assert "🔖 Execution: abc" in text
        assert "💡 Suggestion: Check it" in text
        assert "ExecutorError" in str(panel.title)

    def test_plain_exception(self) -> None:
        panel = format_error(ValueError("bad"))

        assert panel.renderable.plain == "bad"
        assert "ValueError" in str(panel.title)

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Exception hierarchy for Stepflow.

This module defines all custom exceptions used throughout the application.
All exceptions inherit from StepflowError and support optional suggestions
to help users resolve issues.
"""

from __future__ import annotations


class StepflowError(Exception):
    """Base exception for all Stepflow errors.

    Supports an optional suggestion to help users understand how to fix
    the problem. Errors raised out of a workflow execution additionally
    carry the execution identifier and the failing step id.

    Attributes:
        suggestion: Optional actionable advice for resolving the error.
        execution_id: Identifier of the execution the error ended, if any.
        step_id: Identifier of the step that was running, if any.
    """

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        """Initialize a StepflowError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
        """
        self.suggestion = suggestion
        self.execution_id: str | None = None
        self.step_id: str | None = None
        super().__init__(message)

    def __str__(self) -> str:
        """Format the error message with the suggestion."""
        msg = super().__str__()
        if self.suggestion:
            msg += f"\n\n💡 Suggestion: {self.suggestion}"
        return msg

    @property
    def message(self) -> str:
        """Return the bare message without the suggestion."""
        return self.args[0] if self.args else ""

    @property
    def error_type(self) -> str:
        """Return the type name for display purposes."""
        return self.__class__.__name__


class LoadError(StepflowError):
    """Raised when a workflow definition cannot be loaded.

    This includes malformed YAML or JSON, missing required fields,
    duplicate step ids and schema violations. A failed load never
    changes the workflow store.

    Attributes:
        source: Optional path or label of the definition source.
        rule: Optional name of the validation rule that failed.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        source: str | None = None,
        rule: str | None = None,
    ) -> None:
        """Initialize a LoadError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            source: Optional path or label of the definition source.
            rule: Optional name of the validation rule that failed.
        """
        self.source = source
        self.rule = rule

        if suggestion is None:
            suggestion = self._generate_suggestion(message)

        super().__init__(message, suggestion)

    @staticmethod
    def _generate_suggestion(message: str) -> str | None:
        """Generate helpful suggestions based on the error message."""
        msg_lower = message.lower()

        if "duplicate step ids" in msg_lower:
            return "Rename the duplicated steps so every top-level step id is unique"

        if "must have a type" in msg_lower:
            return "Set 'type' to a registered step type such as 'transform' or 'output'"

        if "must have a condition" in msg_lower:
            return "Add a 'condition' expression to the conditional step"

        if "syntax" in msg_lower:
            return (
                "Check the document syntax. Common issues include incorrect "
                "indentation, missing colons, or unquoted special characters."
            )

        return None


class ValidationError(StepflowError):
    """Raised when caller inputs do not match a workflow's declared inputs.

    Raised by ``execute_workflow`` before any step runs.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        input_name: str | None = None,
        expected_type: str | None = None,
        actual_type: str | None = None,
    ) -> None:
        """Initialize a ValidationError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            input_name: Optional name of the input that failed validation.
            expected_type: Optional declared type of the input.
            actual_type: Optional type name of the supplied value.
        """
        self.input_name = input_name
        self.expected_type = expected_type
        self.actual_type = actual_type

        if suggestion is None and expected_type:
            suggestion = f"Expected type '{expected_type}'"
            if actual_type:
                suggestion += f", but got '{actual_type}'"

        super().__init__(message, suggestion)


class UnknownStepTypeError(StepflowError):
    """Raised when a step's type has no registered executor.

    The check happens when the step is reached, so a workflow can load
    successfully and still fail here at execution time.
    """

    def __init__(
        self,
        step_type: str,
        step_id: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize an UnknownStepTypeError.

        Args:
            step_type: The unregistered step type.
            step_id: Optional id of the step that referenced the type.
            suggestion: Optional advice for resolving the error.
        """
        self.step_type = step_type

        if suggestion is None:
            suggestion = (
                f"Register an executor for '{step_type}' with "
                "register_node_type() before executing the workflow"
            )

        super().__init__(f"Unknown step type: {step_type}", suggestion)
        self.step_id = step_id


class ExecutionError(StepflowError):
    """Raised when the engine detects an invalid execution state."""


class ExecutorError(StepflowError):
    """Raised when a step executor fails.

    Executors may raise any exception; the dispatcher wraps everything that
    is not already a StepflowError in an ExecutorError so callers always see
    a classified failure. Its disposition is governed by the step's
    ``on_error`` policy.

    Attributes:
        step_type: Optional type of the failing step.
        original_error: The exception raised by the executor, if wrapped.
        attempts: Number of executor invocations made before giving up.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        step_id: str | None = None,
        step_type: str | None = None,
        original_error: BaseException | None = None,
        attempts: int = 1,
    ) -> None:
        """Initialize an ExecutorError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            step_id: Optional id of the failing step.
            step_type: Optional type of the failing step.
            original_error: The exception raised by the executor, if wrapped.
            attempts: Number of executor invocations made.
        """
        self.step_type = step_type
        self.original_error = original_error
        self.attempts = attempts
        super().__init__(message, suggestion)
        self.step_id = step_id


class ExpressionError(ExecutorError):
    """Raised when a condition or transform expression cannot be evaluated.

    Attributes:
        expression: The expression text that failed.
        missing_reference: True when the expression read a name, key or
            attribute that does not exist, rather than being malformed.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        expression: str | None = None,
        missing_reference: bool = False,
    ) -> None:
        """Initialize an ExpressionError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            expression: The expression text that failed.
            missing_reference: Whether a referenced value does not exist.
        """
        self.expression = expression
        self.missing_reference = missing_reference

        if suggestion is None:
            suggestion = (
                "Expressions may only reference 'inputs', 'steps' and input names. "
                "Quote string values substituted from {{ }} tokens"
            )

        super().__init__(message, suggestion)


class TemplateError(ExecutorError):
    """Raised when Jinja2 template rendering fails in a template step.

    This includes undefined variables and syntax errors in the template.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        undefined_variable: str | None = None,
    ) -> None:
        """Initialize a TemplateError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            undefined_variable: Optional name of the undefined variable.
        """
        self.undefined_variable = undefined_variable

        if suggestion is None:
            if undefined_variable:
                suggestion = (
                    f"Variable '{undefined_variable}' is not defined. "
                    "Check available context variables: inputs.*, steps.<id>.output, "
                    "workflow.*, env.*"
                )
            elif "syntax" in message.lower():
                suggestion = (
                    "Check Jinja2 template syntax: ensure {{ }} are balanced "
                    "and filters use | correctly"
                )

        super().__init__(message, suggestion)


class StepTimeoutError(ExecutorError):
    """Raised when a step exceeds its configured timeout.

    Attributes:
        timeout_seconds: The configured step timeout.
    """

    def __init__(
        self,
        message: str,
        *,
        timeout_seconds: float,
        step_id: str | None = None,
        step_type: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize a StepTimeoutError.

        Args:
            message: The error message describing what went wrong.
            timeout_seconds: The configured step timeout.
            step_id: Optional id of the step that timed out.
            step_type: Optional type of the step that timed out.
            suggestion: Optional advice for resolving the error.
        """
        self.timeout_seconds = timeout_seconds

        if suggestion is None:
            suggestion = f"Increase the step 'timeout' (currently {timeout_seconds:g}s)"

        super().__init__(message, suggestion, step_id=step_id, step_type=step_type)


class WorkflowNotFoundError(StepflowError):
    """Raised when no workflow with the requested name is loaded."""

    def __init__(self, name: str, suggestion: str | None = None) -> None:
        """Initialize a WorkflowNotFoundError.

        Args:
            name: The workflow name that was looked up.
            suggestion: Optional advice for resolving the error.
        """
        self.name = name
        if suggestion is None:
            suggestion = "Load the workflow definition before executing it"
        super().__init__(f"Workflow '{name}' not found", suggestion)


class ExecutionNotFoundError(StepflowError):
    """Raised when no execution with the requested id is in the ledger."""

    def __init__(self, execution_id: str, suggestion: str | None = None) -> None:
        """Initialize an ExecutionNotFoundError.

        Args:
            execution_id: The execution id that was looked up.
            suggestion: Optional advice for resolving the error.
        """
        super().__init__(f"Execution '{execution_id}' not found", suggestion)
        self.execution_id = execution_id

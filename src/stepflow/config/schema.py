# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Pydantic models for workflow definitions.

This module defines the Pydantic models for validating and parsing
workflow definitions loaded from YAML or JSON sources. Definitions are
frozen once built; re-loading a workflow replaces the whole model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

InputType = Literal["string", "number", "boolean", "array", "object", "any"]

ErrorPolicy = Literal["stop", "continue", "retry"]

CONDITIONAL_STEP_TYPE = "conditional"


def matches_input_type(value: Any, type_name: str) -> bool:
    """Check whether a value matches a declared input type.

    Booleans are not numbers, and ``None`` only matches ``any``.

    Args:
        value: The value to check.
        type_name: One of the declared input type names.

    Returns:
        True if the value matches the declared type.
    """
    type_checks = {
        "string": lambda x: isinstance(x, str),
        "number": lambda x: isinstance(x, int | float) and not isinstance(x, bool),
        "boolean": lambda x: isinstance(x, bool),
        "array": lambda x: isinstance(x, list | tuple),
        "object": lambda x: isinstance(x, dict),
        "any": lambda x: True,
    }
    check = type_checks.get(type_name)
    return check is None or check(value)


def describe_type(value: Any) -> str:
    """Return the declared-type vocabulary name for a Python value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


class InputDef(BaseModel):
    """Definition for a workflow input parameter."""

    model_config = ConfigDict(frozen=True)

    type: InputType = "any"
    """The type of the input parameter."""

    required: bool = False
    """Whether the input is required."""

    default: Any = None
    """Default value if the input is not provided."""

    description: str | None = None
    """Human-readable description of the input."""

    @field_validator("default")
    @classmethod
    def validate_default_type(cls, v: Any, info) -> Any:
        """Ensure default value matches declared type."""
        if v is None:
            return v

        type_value = info.data.get("type")
        if type_value is None:
            return v

        if not matches_input_type(v, type_value):
            raise ValueError(
                f"default value must be of type '{type_value}', got {describe_type(v)}"
            )

        return v


class RetryPolicy(BaseModel):
    """Retry settings for a step whose ``on_error`` is ``retry``."""

    model_config = ConfigDict(frozen=True)

    attempts: int = Field(default=3, ge=1, le=100)
    """Total number of executor invocations, including the first one."""

    delay: float | None = Field(default=None, ge=0)
    """Base delay in seconds before the first retry. Falls back to the engine setting."""

    max_delay: float | None = Field(default=None, ge=0)
    """Maximum delay in seconds between retries. Falls back to the engine setting."""

    backoff: float = Field(default=2.0, ge=1.0)
    """Multiplier applied to the delay after every failed attempt."""


class StepDef(BaseModel):
    """Definition for a single step in the workflow.

    Unknown keys are preserved so executors can read step-level settings
    that the engine does not know about.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    """Identifier of the step, unique within its step list."""

    type: str
    """Step type; selects the executor."""

    description: str | None = None
    """Human-readable description of the step's purpose."""

    config: Any = None
    """Executor configuration. May contain unresolved {{ path }} tokens."""

    on_error: ErrorPolicy = "stop"
    """
    Failure policy:
    - stop: Propagate the failure and fail the execution (default)
    - continue: Record a failed output and go on with the next step
    - retry: Re-invoke the executor, then behave like stop
    """

    retry: RetryPolicy | None = None
    """Retry settings, used when on_error is 'retry'."""

    timeout: float | None = Field(default=None, gt=0)
    """Maximum seconds a single executor invocation may take."""

    condition: Any = None
    """Branch expression (conditional steps only)."""

    if_true: list[StepDef] | None = None
    """Sub-steps run when the condition is true (conditional steps only)."""

    if_false: list[StepDef] | None = None
    """Sub-steps run when the condition is false (conditional steps only)."""

    @field_validator("id", "type")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Ensure id and type are not blank."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @property
    def is_conditional(self) -> bool:
        """Return True if this step is a conditional branch."""
        return self.type == CONDITIONAL_STEP_TYPE


class WorkflowDefinition(BaseModel):
    """A complete, validated workflow definition."""

    model_config = ConfigDict(frozen=True)

    name: str
    """Unique workflow name; the key in the workflow store."""

    version: str | None = None
    """Version string."""

    description: str | None = None
    """Human-readable workflow description."""

    inputs: dict[str, InputDef] = Field(default_factory=dict)
    """Workflow input parameter definitions."""

    outputs: dict[str, Any] | None = None
    """Output name to template expression. Defaults to the last step's output."""

    trigger: Any = None
    """Trigger metadata. Opaque to the engine."""

    steps: list[StepDef]
    """Ordered steps; declaration order is execution order."""

    source_path: str | None = None
    """Path of the file the definition was loaded from, if any."""

    loaded_at: datetime | None = None
    """When the definition was stored."""

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        """Accept numeric versions such as ``1.0`` written without quotes."""
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("inputs", mode="before")
    @classmethod
    def default_inputs(cls, v: Any) -> Any:
        """Treat an explicit null inputs block as empty."""
        return {} if v is None else v

    @model_validator(mode="after")
    def validate_steps(self) -> WorkflowDefinition:
        """Ensure there is at least one step."""
        if not self.steps:
            raise ValueError("Workflow must have at least one step")
        return self

    def step_ids(self) -> list[str]:
        """Return the top-level step ids in execution order."""
        return [step.id for step in self.steps]

    def get_step(self, step_id: str) -> StepDef | None:
        """Find a top-level step by id."""
        return next((s for s in self.steps if s.id == step_id), None)

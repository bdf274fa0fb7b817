# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Engine-level settings.

Settings that apply to the engine as a whole rather than to a single
workflow definition: where definitions are auto-loaded from, how many
executions the ledger keeps, and the retry backoff defaults.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from stepflow.exceptions import StepflowError

ENV_PREFIX = "STEPFLOW_"


class EngineConfig(BaseModel):
    """Configuration for a WorkflowEngine instance."""

    workflows_dir: Path | None = None
    """Directory whose .yaml/.yml/.json files are loaded by initialize()."""

    max_executions: int | None = Field(default=None, ge=1)
    """Maximum executions kept in the ledger. None keeps every execution."""

    retry_base_delay: float = Field(default=1.0, ge=0.0)
    """Base delay in seconds before the first retry."""

    retry_max_delay: float = Field(default=30.0, ge=0.0)
    """Maximum delay in seconds between retries."""

    retry_jitter: float = Field(default=0.25, ge=0.0, le=1.0)
    """Maximum random jitter added to a retry delay, as a fraction of the delay."""

    default_retry_attempts: int = Field(default=3, ge=1)
    """Total attempts for a retry-policy step without its own retry block."""

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """Build settings from STEPFLOW_* environment variables.

        Recognized variables: STEPFLOW_WORKFLOWS_DIR, STEPFLOW_MAX_EXECUTIONS,
        STEPFLOW_RETRY_BASE_DELAY, STEPFLOW_RETRY_MAX_DELAY.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            The resulting EngineConfig.

        Raises:
            StepflowError: If a variable holds an invalid value.
        """
        environ = dict(os.environ) if environ is None else environ
        fields = {
            "workflows_dir": "WORKFLOWS_DIR",
            "max_executions": "MAX_EXECUTIONS",
            "retry_base_delay": "RETRY_BASE_DELAY",
            "retry_max_delay": "RETRY_MAX_DELAY",
        }

        data: dict[str, Any] = {}
        for field_name, suffix in fields.items():
            value = environ.get(ENV_PREFIX + suffix)
            if value:
                data[field_name] = value

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise StepflowError(
                f"Invalid engine configuration from environment: {e}",
                suggestion=f"Check the {ENV_PREFIX}* environment variables",
            ) from e

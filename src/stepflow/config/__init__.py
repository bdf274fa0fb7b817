# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Configuration module for Stepflow.

This module provides the workflow definition schema, YAML/JSON loading,
structural validation and engine-level settings.
"""

from stepflow.config.loader import (
    WorkflowLoader,
    load_workflow_file,
    load_workflow_string,
    resolve_env_vars,
)
from stepflow.config.schema import (
    InputDef,
    RetryPolicy,
    StepDef,
    WorkflowDefinition,
)
from stepflow.config.settings import EngineConfig
from stepflow.config.validator import validate_definition

__all__ = [
    "EngineConfig",
    "InputDef",
    "RetryPolicy",
    "StepDef",
    "WorkflowDefinition",
    "WorkflowLoader",
    "load_workflow_file",
    "load_workflow_string",
    "resolve_env_vars",
    "validate_definition",
]

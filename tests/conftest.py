"""Pytest configuration and shared fixtures for Stepflow tests.

This module contains fixtures used across multiple test modules.
"""

from pathlib import Path

import pytest

from stepflow.config.settings import EngineConfig
from stepflow.engine.workflow import WorkflowEngine


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_workflow_yaml() -> str:
    """Return a minimal valid workflow YAML for testing."""
    return """\
name: W1
version: "1.0"
description: Adds one to x and echoes the result
inputs:
  x:
    type: number
    required: true
steps:
  - id: s1
    type: transform
    config:
      expression: "inputs.x + 1"
  - id: s2
    type: output
    config: "{{ steps.s1.output }}"
"""


@pytest.fixture
def tmp_workflow_file(tmp_path: Path, sample_workflow_yaml: str) -> Path:
    """Create a temporary workflow YAML file."""
    workflow_file = tmp_path / "w1.yaml"
    workflow_file.write_text(sample_workflow_yaml)
    return workflow_file


@pytest.fixture
def engine_config() -> EngineConfig:
    """Return engine settings with instant, deterministic retries."""
    return EngineConfig(retry_base_delay=0.0, retry_max_delay=0.0, retry_jitter=0.0)


@pytest.fixture
def engine(engine_config: EngineConfig) -> WorkflowEngine:
    """Return a WorkflowEngine with an empty environment snapshot."""
    return WorkflowEngine(config=engine_config, env={"APP_ENV": "test"})

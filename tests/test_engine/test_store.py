"""Tests for the workflow store."""

from __future__ import annotations

from pathlib import Path

import pytest

from stepflow.engine.store import InMemoryWorkflowStore
from stepflow.exceptions import LoadError

VERSION_ONE = """\
name: orders
version: "1"
steps:
  - id: a
    type: output
"""

VERSION_TWO = """\
name: orders
version: "2"
steps:
  - id: a
    type: output
  - id: b
    type: output
"""


class TestInMemoryWorkflowStore:
    """Tests for loading and lookup."""

    def test_load_and_get(self) -> None:
        store = InMemoryWorkflowStore()
        definition = store.load(VERSION_ONE)

        assert store.get("orders") is definition
        assert definition.loaded_at is not None
        assert store.list() == ["orders"]
        assert "orders" in store

    def test_reload_replaces_definition(self) -> None:
        """Test that loading the same name replaces the previous version."""
        store = InMemoryWorkflowStore()
        store.load(VERSION_ONE)
        store.load(VERSION_TWO)

        definition = store.get("orders")
        assert definition is not None
        assert definition.version == "2"
        assert definition.step_ids() == ["a", "b"]
        assert len(store) == 1

    def test_failed_load_leaves_store_unchanged(self) -> None:
        store = InMemoryWorkflowStore()
        store.load(VERSION_ONE)

        with pytest.raises(LoadError, match="Duplicate step IDs found: a"):
            store.load(
                "name: orders\nsteps:\n  - {id: a, type: output}\n  - {id: a, type: output}\n"
            )

        definition = store.get("orders")
        assert definition is not None
        assert definition.version == "1"

    def test_load_mapping(self) -> None:
        store = InMemoryWorkflowStore()
        definition = store.load({"name": "m", "steps": [{"id": "a", "type": "output"}]})

        assert definition.name == "m"

    def test_get_unknown(self) -> None:
        assert InMemoryWorkflowStore().get("nope") is None

    def test_remove_and_clear(self) -> None:
        store = InMemoryWorkflowStore()
        store.load(VERSION_ONE)

        assert store.remove("orders") is True
        assert store.remove("orders") is False

        store.load(VERSION_ONE)
        store.clear()
        assert store.list() == []

    def test_load_file_records_source(self, tmp_workflow_file: Path) -> None:
        definition = InMemoryWorkflowStore().load_file(tmp_workflow_file)
        assert definition.source_path == str(tmp_workflow_file)


class TestLoadDirectory:
    """Tests for loading every definition in a directory."""

    def test_loads_supported_files(self, fixtures_dir: Path) -> None:
        store = InMemoryWorkflowStore()
        result = store.load_directory(fixtures_dir / "workflows")

        assert result.loaded == ["alpha", "beta"]
        assert result.ok
        assert sorted(store.list()) == ["alpha", "beta"]

    def test_collects_errors(self, fixtures_dir: Path) -> None:
        """Test that one bad file does not stop the others."""
        store = InMemoryWorkflowStore()
        result = store.load_directory(fixtures_dir / "broken")

        assert result.loaded == ["good"]
        assert not result.ok
        assert len(result.errors) == 1
        (path, error), = result.errors.items()
        assert path.endswith("dupes.yaml")
        assert "Duplicate step IDs found: a" in error.message

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(LoadError, match="Workflow directory not found"):
            InMemoryWorkflowStore().load_directory(tmp_path / "missing")

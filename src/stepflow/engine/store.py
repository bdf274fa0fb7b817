# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow store for Stepflow.

The store holds validated workflow definitions keyed by name. Loading a
definition whose name is already present replaces the old one; a
definition that fails to load never touches the store.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from stepflow.config.loader import FORMAT_BY_EXTENSION, SourceFormat, WorkflowLoader
from stepflow.config.schema import WorkflowDefinition
from stepflow.exceptions import LoadError

logger = logging.getLogger(__name__)


@dataclass
class DirectoryLoadResult:
    """Outcome of loading every definition file in a directory.

    Attributes:
        loaded: Names of the workflows stored, in file order.
        errors: Failed files mapped to the error that rejected them.
    """

    loaded: list[str] = field(default_factory=list)
    errors: dict[str, LoadError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Return True if every file loaded."""
        return not self.errors


class WorkflowStore(ABC):
    """Abstract name-keyed storage for workflow definitions."""

    @abstractmethod
    def put(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        """Store a validated definition, replacing any with the same name."""
        ...

    @abstractmethod
    def get(self, name: str) -> WorkflowDefinition | None:
        """Return the most recently stored definition for a name."""
        ...

    @abstractmethod
    def list(self) -> list[str]:
        """Return the stored workflow names."""
        ...

    @abstractmethod
    def remove(self, name: str) -> bool:
        """Remove a definition. Returns True if it existed."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every definition."""
        ...

    def load(
        self,
        source: str | Mapping[str, Any],
        format: SourceFormat | None = None,
    ) -> WorkflowDefinition:
        """Parse, validate and store a definition.

        Args:
            source: YAML or JSON text, or an already-parsed mapping.
            format: The text serialization; detected when None.

        Returns:
            The stored definition.

        Raises:
            LoadError: If the definition is invalid. The store is unchanged.
        """
        loader = WorkflowLoader()
        if isinstance(source, Mapping):
            definition = loader.load_dict(dict(source))
        else:
            definition = loader.load_string(source, format=format)
        return self.put(definition)

    def load_file(self, path: str | Path) -> WorkflowDefinition:
        """Load and store a definition file (.yaml, .yml or .json).

        Raises:
            LoadError: If the file is unreadable, of an unsupported type or
                invalid. The store is unchanged.
        """
        return self.put(WorkflowLoader().load_file(path))

    def load_directory(self, path: str | Path) -> DirectoryLoadResult:
        """Load every definition file in a directory.

        Files are processed in name order. A file that fails to load is
        recorded in the result and does not stop the others.

        Raises:
            LoadError: If the path is not a directory.
        """
        directory = Path(path)
        if not directory.is_dir():
            raise LoadError(
                f"Workflow directory not found: {directory}",
                suggestion="Check the directory path",
                source=str(directory),
            )

        result = DirectoryLoadResult()
        files = sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in FORMAT_BY_EXTENSION
        )
        for file_path in files:
            try:
                definition = self.load_file(file_path)
            except LoadError as e:
                logger.warning(f"Failed to load workflow file {file_path.name}: {e.message}")
                result.errors[str(file_path)] = e
                continue
            result.loaded.append(definition.name)

        logger.info(
            f"Loaded {len(result.loaded)} workflow(s) from {directory}"
            + (f" ({len(result.errors)} failed)" if result.errors else "")
        )
        return result

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None


class InMemoryWorkflowStore(WorkflowStore):
    """Dictionary-backed workflow store.

    Example:
        >>> store = InMemoryWorkflowStore()
        >>> store.load("name: hello\\nsteps:\\n  - {id: a, type: output}")
        WorkflowDefinition(name='hello', ...)
        >>> store.list()
        ['hello']
    """

    def __init__(self) -> None:
        self._definitions: dict[str, WorkflowDefinition] = {}

    def put(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        stored = definition.model_copy(update={"loaded_at": datetime.now(timezone.utc)})
        if stored.name in self._definitions:
            logger.info(f"Replacing workflow '{stored.name}'")
        else:
            logger.info(f"Loaded workflow '{stored.name}'")
        self._definitions[stored.name] = stored
        return stored

    def get(self, name: str) -> WorkflowDefinition | None:
        return self._definitions.get(name)

    def list(self) -> list[str]:
        return list(self._definitions)

    def remove(self, name: str) -> bool:
        return self._definitions.pop(name, None) is not None

    def clear(self) -> None:
        self._definitions.clear()

    def __len__(self) -> int:
        return len(self._definitions)

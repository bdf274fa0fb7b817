# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Execution ledger for Stepflow.

The ledger keeps execution records so callers can look a run up by id
after ``execute_workflow`` returns. It lives in memory and does not
survive a process restart.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from stepflow.engine.execution import Execution

logger = logging.getLogger(__name__)


class ExecutionLedger(ABC):
    """Abstract storage for execution records."""

    @abstractmethod
    def add(self, execution: Execution) -> None:
        """Store a new execution record."""
        ...

    @abstractmethod
    def get(self, execution_id: str) -> Execution | None:
        """Return the record for an id, or None if it is unknown or evicted."""
        ...

    @abstractmethod
    def list(self) -> list[Execution]:
        """Return all retained records, oldest first."""
        ...

    @abstractmethod
    def __len__(self) -> int: ...


class InMemoryExecutionLedger(ExecutionLedger):
    """Insertion-ordered in-memory ledger with optional retention.

    When ``max_entries`` is set and a new record would exceed it, the
    oldest finished executions are evicted first. Running executions are
    never evicted, so the ledger may temporarily hold more than
    ``max_entries`` records while many runs are in flight.

    Example:
        >>> ledger = InMemoryExecutionLedger(max_entries=100)
        >>> ledger.add(Execution(id="e1", workflow_name="demo"))
        >>> ledger.get("e1").workflow_name
        'demo'
    """

    def __init__(self, max_entries: int | None = None) -> None:
        """Initialize the ledger.

        Args:
            max_entries: Maximum number of records to keep. None keeps all.

        Raises:
            ValueError: If max_entries is less than 1.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._executions: dict[str, Execution] = {}

    def add(self, execution: Execution) -> None:
        self._executions[execution.id] = execution
        self._evict(keep=execution.id)

    def get(self, execution_id: str) -> Execution | None:
        return self._executions.get(execution_id)

    def list(self) -> list[Execution]:
        return list(self._executions.values())

    def __len__(self) -> int:
        return len(self._executions)

    def _evict(self, keep: str) -> None:
        if self.max_entries is None:
            return

        excess = len(self._executions) - self.max_entries
        if excess <= 0:
            return

        evictable = [
            execution_id
            for execution_id, execution in self._executions.items()
            if execution.status.finished and execution_id != keep
        ][:excess]
        for execution_id in evictable:
            del self._executions[execution_id]

        if evictable:
            logger.debug(f"Evicted {len(evictable)} finished execution(s) from the ledger")

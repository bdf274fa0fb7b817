"""Engine module for Stepflow.

This module contains the workflow engine, execution context, step
dispatcher, conditional branching and the workflow and execution stores.
"""

from stepflow.engine.conditions import ConditionalExecutor, ConditionEvaluator
from stepflow.engine.context import ExecutionContext, StepRecord
from stepflow.engine.dispatcher import StepDispatcher, StepOutcome
from stepflow.engine.execution import (
    Execution,
    ExecutionResult,
    ExecutionStatus,
    StepResult,
)
from stepflow.engine.ledger import ExecutionLedger, InMemoryExecutionLedger
from stepflow.engine.store import DirectoryLoadResult, InMemoryWorkflowStore, WorkflowStore
from stepflow.engine.workflow import WorkflowEngine

__all__ = [
    "ConditionEvaluator",
    "ConditionalExecutor",
    "DirectoryLoadResult",
    "Execution",
    "ExecutionContext",
    "ExecutionLedger",
    "ExecutionResult",
    "ExecutionStatus",
    "InMemoryExecutionLedger",
    "InMemoryWorkflowStore",
    "StepDispatcher",
    "StepOutcome",
    "StepRecord",
    "StepResult",
    "WorkflowEngine",
    "WorkflowStore",
]

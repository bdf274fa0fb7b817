# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow execution engine for Stepflow.

This module provides the WorkflowEngine class, the entry point that loads
workflow definitions, validates caller inputs and runs each execution's
steps in declaration order.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stepflow.config.schema import CONDITIONAL_STEP_TYPE, describe_type, matches_input_type
from stepflow.config.settings import EngineConfig
from stepflow.engine.conditions import ConditionalExecutor
from stepflow.engine.context import ExecutionContext, snapshot_environment
from stepflow.engine.dispatcher import StepDispatcher
from stepflow.engine.execution import Execution, ExecutionResult, StepResult
from stepflow.engine.ledger import ExecutionLedger, InMemoryExecutionLedger
from stepflow.engine.store import DirectoryLoadResult, InMemoryWorkflowStore, WorkflowStore
from stepflow.exceptions import (
    ExecutionNotFoundError,
    StepflowError,
    ValidationError,
    WorkflowNotFoundError,
)
from stepflow.executor.builtin import builtin_executors
from stepflow.executor.registry import ExecutorRegistry
from stepflow.executor.resolver import VariableResolver

if TYPE_CHECKING:
    from stepflow.config.loader import SourceFormat
    from stepflow.config.schema import InputDef, WorkflowDefinition
    from stepflow.executor.base import Executor, ExecutorFunction

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Loads workflow definitions and executes them.

    The WorkflowEngine manages the complete lifecycle of an execution:
    1. Look up the workflow and validate the caller's inputs
    2. Seed the execution context and open a ledger record
    3. Dispatch steps in declaration order, recording each outcome
    4. Build the final outputs and close the record

    Collaborators (store, ledger, executor registry) are injected; the
    defaults keep everything in memory.

    Example:
        >>> engine = WorkflowEngine()
        >>> engine.load_workflow_file("workflows/order.yaml")
        >>> engine.register_node_type("send_email", send_email)
        >>> result = await engine.execute_workflow("order", {"amount": 150})
        >>> result.status
        <ExecutionStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        store: WorkflowStore | None = None,
        ledger: ExecutionLedger | None = None,
        registry: ExecutorRegistry | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the WorkflowEngine.

        Args:
            config: Engine settings. Defaults to EngineConfig().
            store: Workflow definition store.
            ledger: Execution record store. Defaults to an in-memory ledger
                bounded by ``config.max_executions``.
            registry: Executor registry. The built-in step types are added
                unless the registry already defines them.
            env: Environment mapping snapshotted into each execution.
                Defaults to os.environ at execution time.
        """
        self.config = config or EngineConfig()
        self.store = store if store is not None else InMemoryWorkflowStore()
        self.ledger = (
            ledger
            if ledger is not None
            else InMemoryExecutionLedger(max_entries=self.config.max_executions)
        )
        self.registry = registry if registry is not None else ExecutorRegistry()
        self.env = env
        self.resolver = VariableResolver()
        self.dispatcher = StepDispatcher(self.registry, config=self.config, resolver=self.resolver)
        self._initialized = False

        if not self.registry.frozen:
            defaults: dict[str, Executor] = {
                **builtin_executors(),
                CONDITIONAL_STEP_TYPE: ConditionalExecutor(self.dispatcher),
            }
            for step_type, executor in defaults.items():
                if step_type not in self.registry:
                    self.registry.register(step_type, executor)

    # -- definitions --------------------------------------------------------

    def initialize(self) -> DirectoryLoadResult | None:
        """Load the configured workflows directory, once.

        Calling initialize() again does nothing.

        Returns:
            The directory load result, or None if there was nothing to load.
        """
        if self._initialized:
            return None
        self._initialized = True

        if self.config.workflows_dir is None:
            logger.info("Workflow engine initialized")
            return None

        result = self.store.load_directory(self.config.workflows_dir)
        logger.info(f"Workflow engine initialized with {len(self.store.list())} workflow(s)")
        return result

    def reload(self) -> DirectoryLoadResult | None:
        """Clear the store and load the configured workflows directory again."""
        self.store.clear()
        self._initialized = False
        return self.initialize()

    def load_workflow(
        self,
        source: str | Mapping[str, Any],
        format: SourceFormat | None = None,
    ) -> WorkflowDefinition:
        """Load a definition from YAML/JSON text or a parsed mapping.

        Raises:
            LoadError: If the definition is invalid. The store is unchanged.
        """
        return self.store.load(source, format=format)

    def load_workflow_file(self, path: str | Path) -> WorkflowDefinition:
        """Load a definition file; the parser is chosen by extension.

        Raises:
            LoadError: If the file is unreadable, unsupported or invalid.
        """
        return self.store.load_file(path)

    def load_directory(self, path: str | Path) -> DirectoryLoadResult:
        """Load every .yaml, .yml and .json definition in a directory."""
        return self.store.load_directory(path)

    def list_workflows(self) -> list[str]:
        """Return the names of the loaded workflows."""
        return self.store.list()

    def get_workflow(self, name: str) -> WorkflowDefinition | None:
        """Return a loaded definition by name, or None."""
        return self.store.get(name)

    def register_node_type(self, step_type: str, executor: Executor | ExecutorFunction) -> None:
        """Register or replace the executor for a step type.

        Raises:
            StepflowError: If the registry is frozen.
        """
        self.registry.register(step_type, executor)

    # -- executions ---------------------------------------------------------

    def get_execution(self, execution_id: str) -> Execution | None:
        """Return an execution record, or None if unknown or evicted."""
        return self.ledger.get(execution_id)

    def require_execution(self, execution_id: str) -> Execution:
        """Return an execution record.

        Raises:
            ExecutionNotFoundError: If the id is unknown or evicted.
        """
        execution = self.ledger.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    def list_executions(self) -> list[Execution]:
        """Return the retained execution records, oldest first."""
        return self.ledger.list()

    async def execute_workflow(
        self,
        name: str,
        inputs: Mapping[str, Any] | None = None,
        external_context: Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        """Execute a loaded workflow to completion.

        Steps run strictly one after another in declaration order. Each
        step sees the outputs of every step recorded before it.

        Args:
            name: The workflow name.
            inputs: Caller inputs, checked against the declared inputs.
            external_context: Business context merged into the template
                scope under its own keys.

        Returns:
            The execution summary.

        Raises:
            WorkflowNotFoundError: If no workflow has that name.
            ValidationError: If the inputs do not match the declaration.
                No execution record is created.
            StepflowError: If a step fails under 'stop' or exhausted
                'retry'. The error carries ``execution_id`` and ``step_id``.
            asyncio.CancelledError: If the execution is cancelled. The
                record is marked failed first.
        """
        workflow = self.store.get(name)
        if workflow is None:
            raise WorkflowNotFoundError(name)

        validated_inputs = self._validate_inputs(workflow, dict(inputs or {}))

        execution_id = str(uuid.uuid4())
        context = ExecutionContext(
            inputs=validated_inputs,
            workflow={"name": workflow.name, "execution_id": execution_id},
            env=snapshot_environment(self.env),
            extra=dict(external_context or {}),
        )
        execution = Execution(id=execution_id, workflow_name=workflow.name, inputs=validated_inputs)
        self.ledger.add(execution)

        logger.info(f"Starting workflow '{workflow.name}' [{execution_id}]")

        current_step: str | None = None
        try:
            for step in workflow.steps:
                current_step = step.id
                outcome = await self.dispatcher.dispatch(step, context)

                context.record(step.id, outcome.output, status=outcome.status)
                execution.step_results.append(
                    StepResult(
                        step_id=step.id,
                        step_type=step.type,
                        status=outcome.status,
                        output=outcome.output,
                        attempts=outcome.attempts,
                        started_at=outcome.started_at,
                        finished_at=outcome.finished_at,
                    )
                )
            current_step = None

            execution.complete(self._build_outputs(workflow, context))

        except StepflowError as e:
            # A failing sub-step of a conditional is reported by its own id
            failed_step = e.step_id or current_step
            self._fail(execution, e.message, failed_step, e.error_type)
            e.execution_id = execution_id
            e.step_id = failed_step
            raise
        except asyncio.CancelledError:
            self._fail(execution, "Execution cancelled", current_step, "CancelledError")
            raise
        except Exception as e:
            self._fail(execution, str(e), current_step, type(e).__name__)
            raise

        logger.info(
            f"Workflow '{workflow.name}' completed [{execution_id}] "
            f"in {execution.duration:.3f}s"
        )
        return ExecutionResult.from_execution(execution)

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _fail(execution: Execution, message: str, step_id: str | None, error_type: str) -> None:
        execution.fail(message, step_id, error_type)
        logger.error(
            f"Workflow '{execution.workflow_name}' failed [{execution.id}]"
            + (f" at step '{step_id}'" if step_id else "")
            + f": {message}"
        )

    def _validate_inputs(
        self,
        workflow: WorkflowDefinition,
        inputs: dict[str, Any],
    ) -> dict[str, Any]:
        """Check inputs against the declaration and apply defaults.

        Every declared input ends up present: supplied, its default, or
        None. Undeclared inputs are passed through unchanged.

        Args:
            workflow: The workflow being executed.
            inputs: The caller's inputs.

        Returns:
            The inputs with defaults applied.

        Raises:
            ValidationError: If a required input is missing or an input has
                the wrong type.
        """
        merged = inputs.copy()

        for input_name, input_def in workflow.inputs.items():
            if input_name not in merged:
                if input_def.required:
                    raise ValidationError(
                        f"Required input '{input_name}' is missing",
                        suggestion=self._describe_input(input_name, input_def),
                        input_name=input_name,
                        expected_type=input_def.type,
                    )
                merged[input_name] = input_def.default
                continue

            value = merged[input_name]
            if not matches_input_type(value, input_def.type):
                actual = describe_type(value)
                raise ValidationError(
                    f"Input '{input_name}' should be {input_def.type}, got {actual}",
                    input_name=input_name,
                    expected_type=input_def.type,
                    actual_type=actual,
                )

        return merged

    @staticmethod
    def _describe_input(input_name: str, input_def: InputDef) -> str:
        hint = f"Provide '{input_name}' ({input_def.type})"
        if input_def.description:
            hint += f": {input_def.description}"
        return hint

    def _build_outputs(self, workflow: WorkflowDefinition, context: ExecutionContext) -> Any:
        """Build the execution's outputs.

        Declared outputs are resolved against the final context. Without a
        declaration the last step's recorded output is used.
        """
        if workflow.outputs is None:
            return context.last_output()

        scope = context.as_scope()
        return {
            key: self.resolver.resolve(expression, scope)
            for key, expression in workflow.outputs.items()
        }

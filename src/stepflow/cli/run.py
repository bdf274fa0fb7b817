# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Implementation of the 'stepflow run' command.

This module provides helper functions for executing workflow files.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from stepflow.config.settings import EngineConfig
from stepflow.engine.execution import Execution
from stepflow.engine.workflow import WorkflowEngine
from stepflow.executor.base import Executor
from stepflow.executor.registry import load_executor

# Verbose console for logging (stderr)
_verbose_console = Console(stderr=True)


def verbose_log(message: str, style: str = "dim") -> None:
    """Log a message if verbose mode is enabled.

    Args:
        message: The message to log.
        style: Rich style for the message.
    """
    from stepflow.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[{style}]{message}[/{style}]")


def verbose_log_timing(operation: str, elapsed: float) -> None:
    """Log timing information if verbose mode is enabled.

    Args:
        operation: Description of the operation.
        elapsed: Elapsed time in seconds.
    """
    from stepflow.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[dim]⏱ {operation}: {elapsed:.2f}s[/dim]")


def parse_input_flags(raw_inputs: list[str]) -> dict[str, Any]:
    """Parse name=value flags into a dictionary.

    Supports type coercion for common types:
    - "true"/"false" -> bool
    - numeric strings -> int/float
    - JSON arrays/objects -> parsed JSON
    - everything else -> string

    Args:
        raw_inputs: List of "name=value" strings from CLI.

    Returns:
        Dictionary of parsed name-value pairs.

    Raises:
        typer.BadParameter: If input format is invalid.
    """
    inputs: dict[str, Any] = {}

    for raw in raw_inputs:
        # Split on first = only
        if "=" not in raw:
            raise typer.BadParameter(
                f"Invalid input format: '{raw}'. Expected format: name=value"
            )

        name, value = raw.split("=", 1)
        name = name.strip()
        value = value.strip()

        if not name:
            raise typer.BadParameter(f"Empty input name in: '{raw}'")

        inputs[name] = coerce_value(value)

    return inputs


def coerce_value(value: str) -> Any:
    """Coerce a string value to an appropriate Python type.

    Args:
        value: The string value to coerce.

    Returns:
        The coerced value (bool, int, float, list, dict, None or str).
    """
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    if value.lower() == "null":
        return None

    # Try JSON for arrays and objects
    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    return value


def parse_executor_flags(raw_executors: list[str]) -> dict[str, Executor]:
    """Parse type=module:attribute flags into executors.

    Args:
        raw_executors: List of "type=module:attribute" strings from CLI.

    Returns:
        Step type mapped to the imported executor.

    Raises:
        typer.BadParameter: If a flag is malformed.
        StepflowError: If a reference cannot be imported.
    """
    plugins: dict[str, Executor] = {}

    for raw in raw_executors:
        if "=" not in raw:
            raise typer.BadParameter(
                f"Invalid executor format: '{raw}'. Expected format: type=module:attribute"
            )

        step_type, reference = raw.split("=", 1)
        step_type = step_type.strip()
        if not step_type:
            raise typer.BadParameter(f"Empty step type in: '{raw}'")

        plugins[step_type] = load_executor(reference.strip())

    return plugins


async def run_workflow_async(
    workflow_path: Path,
    inputs: dict[str, Any],
    external_context: dict[str, Any] | None = None,
    executors: dict[str, Executor] | None = None,
) -> Execution:
    """Load and execute a workflow file.

    Args:
        workflow_path: Path to the workflow file.
        inputs: Workflow inputs.
        external_context: Business context merged into the template scope.
        executors: Plugin step types to register before running.

    Returns:
        The finished execution record.

    Raises:
        StepflowError: If loading or execution fails.
    """
    engine = WorkflowEngine(config=EngineConfig.from_env())

    start = time.perf_counter()
    definition = engine.load_workflow_file(workflow_path)
    verbose_log_timing(f"Loaded '{definition.name}'", time.perf_counter() - start)

    for step_type, executor in (executors or {}).items():
        engine.register_node_type(step_type, executor)
        verbose_log(f"Registered step type '{step_type}'")

    verbose_log(f"Executing workflow: {definition.name}", style="cyan bold")
    start = time.perf_counter()
    result = await engine.execute_workflow(definition.name, inputs, external_context)
    verbose_log_timing("Workflow execution", time.perf_counter() - start)

    return engine.require_execution(result.execution_id)


def display_step_summary(execution: Execution, console: Console) -> None:
    """Display a table of the execution's steps.

    Args:
        execution: The finished execution.
        console: Rich console for output.
    """
    table = Table(title=f"Workflow: {execution.workflow_name}", show_lines=False)
    table.add_column("Step", style="cyan")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Duration", justify="right")

    for result in execution.step_results:
        status_style = "green" if result.status == "completed" else "yellow"
        duration = f"{result.duration:.3f}s" if result.duration is not None else "-"
        table.add_row(
            result.step_id,
            result.step_type,
            f"[{status_style}]{result.status}[/{status_style}]",
            str(result.attempts),
            duration,
        )

    console.print(table)
    console.print(
        f"[dim]Execution {execution.id} {execution.status.value} "
        f"in {execution.duration or 0:.3f}s[/dim]"
    )

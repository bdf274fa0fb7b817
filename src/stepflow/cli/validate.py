# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Implementation of the 'stepflow validate' and 'stepflow list' commands.

This module provides functionality to validate workflow files without
executing them, displaying detailed error information.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stepflow.config.loader import WorkflowLoader
from stepflow.exceptions import StepflowError

if TYPE_CHECKING:
    from stepflow.config.schema import StepDef, WorkflowDefinition
    from stepflow.engine.store import DirectoryLoadResult, WorkflowStore


def validate_workflow(
    workflow_path: Path,
    console: Console | None = None,
) -> tuple[bool, WorkflowDefinition | None, list[str]]:
    """Validate a workflow file.

    Attempts to load and validate the workflow definition, reporting any
    errors encountered during the process.

    Args:
        workflow_path: Path to the workflow file.
        console: Optional Rich console for output.

    Returns:
        A tuple of (is_valid, definition_or_none, warnings).
    """
    output_console = console if console is not None else Console()
    loader = WorkflowLoader()

    try:
        definition = loader.load_file(workflow_path)
        return True, definition, loader.warnings
    except StepflowError as e:
        display_validation_error(e, workflow_path, output_console)
        return False, None, []


def display_validation_error(
    error: StepflowError,
    workflow_path: Path,
    console: Console,
) -> None:
    """Display a validation error with Rich formatting.

    Args:
        error: The StepflowError that occurred.
        workflow_path: Path to the workflow file.
        console: Rich console for output.
    """
    content = f"[bold red]{error.error_type}[/bold red]\n\n"
    content += f"[dim]File:[/dim] {workflow_path}\n\n"
    content += error.message

    if error.suggestion:
        content += f"\n\n[yellow]💡 Suggestion:[/yellow] {error.suggestion}"

    console.print(
        Panel(
            content,
            title="[red]Validation Failed[/red]",
            border_style="red",
        )
    )


def _count_steps(steps: list[StepDef]) -> tuple[int, int]:
    """Count all steps (branches included) and conditional steps."""
    total = conditionals = 0
    for step in steps:
        total += 1
        if step.is_conditional:
            conditionals += 1
        for branch in (step.if_true, step.if_false):
            if branch:
                sub_total, sub_conditionals = _count_steps(branch)
                total += sub_total
                conditionals += sub_conditionals
    return total, conditionals


def display_validation_success(
    definition: WorkflowDefinition,
    workflow_path: Path,
    console: Console,
    warnings: list[str] | None = None,
) -> None:
    """Display validation success with workflow summary.

    Args:
        definition: The validated workflow definition.
        workflow_path: Path to the workflow file.
        console: Rich console for output.
        warnings: Non-fatal issues found while loading.
    """
    total_steps, conditional_count = _count_steps(definition.steps)
    retry_count = sum(1 for s in definition.steps if s.on_error == "retry")
    required_inputs = [name for name, i in definition.inputs.items() if i.required]

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Name", definition.name)
    if definition.version:
        table.add_row("Version", definition.version)
    if definition.description:
        table.add_row("Description", definition.description)
    table.add_row("File", str(workflow_path))
    table.add_row("Steps", str(len(definition.steps)))
    if total_steps != len(definition.steps):
        table.add_row("Steps (incl. branches)", str(total_steps))
    if conditional_count:
        table.add_row("Conditionals", str(conditional_count))
    if retry_count:
        table.add_row("Retrying steps", str(retry_count))
    if definition.inputs:
        table.add_row(
            "Inputs",
            ", ".join(
                f"{name}*" if name in required_inputs else name
                for name in definition.inputs
            ),
        )
    table.add_row("Outputs", ", ".join(definition.outputs) if definition.outputs else "last step")

    console.print(
        Panel(
            table,
            title="[green]Validation Successful[/green]",
            border_style="green",
        )
    )

    step_table = Table(title="Steps", show_lines=True)
    step_table.add_column("Id", style="cyan")
    step_table.add_column("Type", width=14)
    step_table.add_column("On Error", width=10)
    step_table.add_column("Description")

    for step in definition.steps:
        step_table.add_row(
            step.id,
            step.type,
            step.on_error,
            step.description or "[dim]-[/dim]",
        )

    console.print(step_table)

    for warning in warnings or []:
        console.print(f"[yellow]⚠ Warning:[/yellow] {warning}")


def display_workflow_list(
    store: WorkflowStore,
    result: DirectoryLoadResult,
    console: Console,
) -> None:
    """Display the workflows loaded from a directory and any failures.

    Args:
        store: The store the directory was loaded into.
        result: The directory load result.
        console: Rich console for output.
    """
    if result.loaded:
        table = Table(title="Workflows")
        table.add_column("Name", style="cyan")
        table.add_column("Version")
        table.add_column("Steps", justify="right")
        table.add_column("Inputs")
        table.add_column("Source", style="dim")

        for name in store.list():
            definition = store.get(name)
            if definition is None:
                continue
            table.add_row(
                definition.name,
                definition.version or "-",
                str(len(definition.steps)),
                ", ".join(definition.inputs) or "-",
                Path(definition.source_path).name if definition.source_path else "-",
            )

        console.print(table)
    else:
        console.print("[yellow]No workflows found.[/yellow]")

    for path, error in result.errors.items():
        console.print(
            Panel(
                f"[bold red]{error.error_type}[/bold red]\n\n{error.message}",
                title=f"[red]{Path(path).name}[/red]",
                border_style="red",
            )
        )

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Typer application definition for the Stepflow CLI.

This module defines the main Typer app and global options.
"""

from __future__ import annotations

import contextvars
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from stepflow import __version__

# Create the main Typer app
app = typer.Typer(
    name="stepflow",
    help="Stepflow - Run sequential workflows defined in YAML or JSON.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console(stderr=True)
output_console = Console()

# Context variable for verbose mode (--verbose flag)
verbose_mode: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "verbose_mode", default=False
)


def is_verbose() -> bool:
    """Check if verbose mode is enabled (--verbose flag)."""
    return verbose_mode.get()


def configure_logging(verbose: bool) -> None:
    """Route the stepflow logger through Rich.

    Without --verbose only warnings and errors are shown.

    Args:
        verbose: Whether to log at DEBUG level.
    """
    logger = logging.getLogger("stepflow")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def format_error(error: Exception) -> Panel:
    """Format an exception for Rich console display.

    Creates a styled Panel with error type, message, the failing step and
    execution (if available), and suggestion (if available).

    Args:
        error: The exception to format.

    Returns:
        Rich Panel with formatted error content.
    """
    from stepflow.exceptions import StepflowError

    content = Text()

    if isinstance(error, StepflowError):
        content.append(error.message, style="bold red")

        if error.step_id or error.execution_id:
            content.append("\n")
        if error.step_id:
            content.append("\n")
            content.append("📍 Step: ", style="yellow")
            content.append(error.step_id, style="cyan")
        if error.execution_id:
            content.append("\n")
            content.append("🔖 Execution: ", style="yellow")
            content.append(error.execution_id, style="cyan")

        if error.suggestion:
            content.append("\n\n")
            content.append("💡 Suggestion: ", style="green")
            content.append(error.suggestion, style="white")

        error_type = error.error_type
    else:
        content.append(str(error), style="red")
        error_type = type(error).__name__

    return Panel(
        content,
        title=f"[bold red]❌ {error_type}[/bold red]",
        border_style="red",
        padding=(1, 2),
    )


def print_error(error: Exception) -> None:
    """Print a formatted error to stderr.

    Args:
        error: The exception to print.
    """
    console.print(format_error(error))


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        output_console.print(f"Stepflow v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-V",
            help="Show engine debug logging and step details.",
        ),
    ] = False,
) -> None:
    """Stepflow - Run sequential workflows defined in YAML or JSON."""
    verbose_mode.set(verbose)
    configure_logging(verbose)


@app.command()
def run(
    workflow: Annotated[
        Path,
        typer.Argument(
            help="Path to the workflow file (.yaml, .yml or .json).",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    raw_inputs: Annotated[
        list[str] | None,
        typer.Option(
            "--input",
            "-i",
            help="Workflow inputs in name=value format. Can be repeated.",
        ),
    ] = None,
    raw_context: Annotated[
        list[str] | None,
        typer.Option(
            "--context",
            "-c",
            help="External context values in name=value format. Can be repeated.",
        ),
    ] = None,
    executors: Annotated[
        list[str] | None,
        typer.Option(
            "--executor",
            "-e",
            help="Step type plugins in type=module:attribute format. Can be repeated.",
        ),
    ] = None,
    json_only: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print only the outputs as JSON, without the step summary.",
        ),
    ] = False,
) -> None:
    """Run a workflow file.

    Loads the workflow, registers any plugin step types, executes it and
    prints the outputs as JSON.

    \b
    Examples:
        stepflow run workflow.yaml
        stepflow run workflow.yaml --input amount=150
        stepflow run workflow.yaml -i amount=150 -c user_id=42
        stepflow run workflow.yaml --executor send_email=myapp.nodes:send_email
    """
    import asyncio
    import json

    # Import here to defer heavy imports
    from stepflow.cli.run import (
        display_step_summary,
        parse_executor_flags,
        parse_input_flags,
        run_workflow_async,
    )
    from stepflow.exceptions import StepflowError

    try:
        inputs = parse_input_flags(raw_inputs or [])
        context = parse_input_flags(raw_context or [])
        plugins = parse_executor_flags(executors or [])

        execution = asyncio.run(run_workflow_async(workflow, inputs, context, plugins))
    except StepflowError as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    if not json_only:
        display_step_summary(execution, console)

    output_console.print_json(json.dumps(execution.outputs, default=str))


@app.command()
def validate(
    workflow: Annotated[
        Path,
        typer.Argument(
            help="Path to the workflow file to validate.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
) -> None:
    """Validate a workflow file without executing it.

    Checks the workflow file for:
    - Valid YAML or JSON syntax
    - A name and a non-empty steps list
    - An id and a type on every step, with unique ids
    - A condition on every conditional step

    \b
    Examples:
        stepflow validate workflow.yaml
        stepflow validate ./workflows/order.json
    """
    from stepflow.cli.validate import (
        display_validation_success,
        validate_workflow,
    )

    is_valid, definition, warnings = validate_workflow(workflow, output_console)

    if is_valid and definition is not None:
        display_validation_success(definition, workflow, output_console, warnings)
    else:
        raise typer.Exit(code=1)


@app.command("list")
def list_workflows(
    directory: Annotated[
        Path,
        typer.Argument(
            help="Directory containing workflow files.",
            exists=True,
            file_okay=False,
            dir_okay=True,
            readable=True,
            resolve_path=True,
        ),
    ],
) -> None:
    """List the workflows in a directory.

    Loads every .yaml, .yml and .json file and shows the workflows found,
    followed by any files that failed to load.

    \b
    Examples:
        stepflow list ./workflows
    """
    from stepflow.cli.validate import display_workflow_list
    from stepflow.engine.store import InMemoryWorkflowStore

    store = InMemoryWorkflowStore()
    result = store.load_directory(directory)
    display_workflow_list(store, result, output_console)

    if result.errors:
        raise typer.Exit(code=1)

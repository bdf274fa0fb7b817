"""CLI module for Stepflow.

This module provides the command-line interface using Typer.
"""

from stepflow.cli.app import app

__all__ = ["app"]

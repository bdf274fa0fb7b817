# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Entry point for running stepflow as a module.

Usage:
    python -m stepflow
"""

from stepflow.cli.app import app


def main() -> None:
    """Main entry point for the stepflow CLI."""
    app()


if __name__ == "__main__":
    main()

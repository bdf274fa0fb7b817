# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Stepflow - A workflow execution engine for business automation.

Stepflow loads declarative step graphs from YAML or JSON and executes them
by dispatching each step to a pluggable executor selected by the step's
type. Steps share a growing execution context, configuration strings are
resolved against it through ``{{ path }}`` tokens, and every step carries
its own failure policy.

Example:
    Run a workflow from the command line::

        $ stepflow run workflow.yaml --input x=5

    Or use the library programmatically::

        from stepflow.engine.workflow import WorkflowEngine

        engine = WorkflowEngine()
        engine.load_workflow_file("workflow.yaml")
        engine.register_node_type("http", http_executor)
        result = await engine.execute_workflow("W1", {"x": 5})

Modules:
    config: Definition schema, YAML/JSON loading and rule validation.
    engine: Workflow store, execution context, dispatcher, ledger and orchestrator.
    executor: Executor contract, registry, variable resolver and built-in step types.
    cli: Command-line interface commands.
    exceptions: Custom exception hierarchy.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

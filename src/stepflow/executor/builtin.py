# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Built-in step types that need no external service.

- transform: compute a value from inputs and earlier step outputs
- output: return the resolved configuration as the step's output
- template: render text with Jinja2

The ``conditional`` step type lives with the dispatcher because it runs
sub-steps (see stepflow.engine.conditions).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from stepflow.exceptions import ExecutorError
from stepflow.executor.base import Executor
from stepflow.executor.expressions import ExpressionEvaluator
from stepflow.executor.template import TemplateRenderer

if TYPE_CHECKING:
    from stepflow.config.schema import StepDef
    from stepflow.engine.context import ExecutionContext


class TransformExecutor(Executor):
    """Evaluates ``config.expression`` and returns the result.

    The expression sees ``inputs``, ``steps``, ``env`` and ``workflow``.
    Because configuration is resolved before the executor runs, an
    expression that is a single {{ }} token arrives already substituted;
    non-string values are returned unchanged.

    Example step::

        - id: total
          type: transform
          config:
            expression: "inputs.price * inputs.quantity"
    """

    def __init__(self, evaluator: ExpressionEvaluator | None = None) -> None:
        self.evaluator = evaluator or ExpressionEvaluator()

    async def execute(self, step: StepDef, config: Any, context: ExecutionContext) -> Any:
        expression = config.get("expression") if isinstance(config, dict) else None
        if expression is None or expression == "":
            raise ExecutorError(
                "Transform node requires an expression",
                suggestion="Add 'expression' under the step's config",
                step_id=step.id,
                step_type=step.type,
            )
        if not isinstance(expression, str):
            return expression
        return self.evaluator.evaluate(expression, context.data_scope())


class OutputExecutor(Executor):
    """Returns the resolved configuration unchanged."""

    async def execute(self, step: StepDef, config: Any, context: ExecutionContext) -> Any:
        return config


class TemplateExecutor(Executor):
    """Renders ``config.template`` with Jinja2 against the context.

    The template source is read from the step definition before token
    resolution, so Jinja2 alone resolves its variables and substituted
    values are never compiled. ``vars`` and ``key`` are read from the
    resolved configuration.

    Returns the rendered text, or ``{key: text}`` when ``config.key`` is set.
    """

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    async def execute(self, step: StepDef, config: Any, context: ExecutionContext) -> Any:
        source = step.config.get("template") if isinstance(step.config, dict) else None
        if not isinstance(source, str) or not isinstance(config, dict):
            raise ExecutorError(
                "Template node requires a 'template' string",
                step_id=step.id,
                step_type=step.type,
            )

        variables = context.as_scope()
        extra_vars = config.get("vars")
        if isinstance(extra_vars, dict):
            variables.update(extra_vars)

        rendered = self.renderer.render(source, variables)
        key = config.get("key")
        return {key: rendered} if key else rendered


def builtin_executors() -> dict[str, Executor]:
    """Return fresh instances of the built-in executors keyed by step type."""
    return {
        "transform": TransformExecutor(),
        "output": OutputExecutor(),
        "template": TemplateExecutor(),
    }

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Conditional branching for Stepflow.

This module provides the ConditionEvaluator, which decides a branch
condition, and the ConditionalExecutor behind the ``conditional`` step
type, which runs the sub-steps of the chosen branch.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from stepflow.exceptions import ExpressionError
from stepflow.executor.base import Executor
from stepflow.executor.expressions import ExpressionEvaluator
from stepflow.executor.resolver import VariableResolver

if TYPE_CHECKING:
    from stepflow.config.schema import StepDef
    from stepflow.engine.context import ExecutionContext
    from stepflow.engine.dispatcher import StepDispatcher

logger = logging.getLogger(__name__)


class ConditionEvaluator:
    """Evaluates branch conditions.

    Booleans are used directly. Strings are evaluated as restricted
    expressions that can see ``inputs``, ``steps`` and each input by name.
    Their {{ path }} tokens are bound as values rather than pasted into the
    expression text, so ``'{{ inputs.status }}' == 'ok'`` compares the
    status as a string whatever it contains. Any other value is
    coerced with ``bool()``. A condition that reads a name, key or
    attribute that does not exist is logged and counts as false.

    Example:
        >>> evaluator = ConditionEvaluator()
        >>> evaluator.evaluate("amount > 100", context)  # inputs = {"amount": 150}
        True
        >>> evaluator.evaluate("{{ inputs.amount }} > 100", context)
        True
    """

    def __init__(
        self,
        resolver: VariableResolver | None = None,
        expressions: ExpressionEvaluator | None = None,
    ) -> None:
        self.resolver = resolver or VariableResolver()
        self.expressions = expressions or ExpressionEvaluator()

    def evaluate(self, condition: Any, context: ExecutionContext) -> bool:
        """Decide a condition against the current context.

        Args:
            condition: A boolean, an expression string or another scalar.
            context: The execution context.

        Returns:
            The condition's truth value.

        Raises:
            ExpressionError: If the condition is missing, empty or malformed.
        """
        if isinstance(condition, bool):
            return condition
        if condition is None:
            raise ExpressionError(
                "Conditional step has no condition",
                suggestion="Add a 'condition' expression to the step",
            )
        if not isinstance(condition, str):
            return bool(condition)

        if not condition.strip():
            raise ExpressionError(
                "Condition is empty",
                expression=condition,
            )

        scope = context.expression_scope()
        bound = self.resolver.bind(condition, context.as_scope(), reserved=scope)
        if bound.missing:
            logger.warning(
                f"Condition '{condition}' references a missing value, "
                f"treating it as false: {', '.join(bound.missing)}"
            )
            return False
        try:
            return self.expressions.evaluate_bool(bound.text, {**scope, **bound.values})
        except ExpressionError as e:
            if not e.missing_reference:
                raise
            logger.warning(
                f"Condition '{condition}' references a missing value, "
                f"treating it as false: {e.message}"
            )
            return False


class ConditionalExecutor(Executor):
    """Executor for the ``conditional`` step type.

    Runs the ``if_true`` or ``if_false`` sub-steps in order through the
    dispatcher, so each sub-step keeps its own ``on_error`` policy.
    Sub-step outputs are returned inside this step's own output and are not
    recorded in the top-level step map.

    Output shapes::

        {"condition": True, "results": [<sub-step outputs>]}
        {"condition": False, "skipped": True}   # no branch for the outcome
    """

    def __init__(
        self,
        dispatcher: StepDispatcher,
        evaluator: ConditionEvaluator | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.evaluator = evaluator or ConditionEvaluator(resolver=dispatcher.resolver)

    async def execute(self, step: StepDef, config: Any, context: ExecutionContext) -> Any:
        condition = self.evaluator.evaluate(step.condition, context)
        branch = step.if_true if condition else step.if_false

        logger.debug(
            f"Condition of step '{step.id}' is {condition}"
            + ("" if branch is not None else "; no branch to run")
        )

        if branch is None:
            return {"condition": condition, "skipped": True}

        results = []
        for sub_step in branch:
            outcome = await self.dispatcher.dispatch(sub_step, context)
            results.append(outcome.output)
        return {"condition": condition, "results": results}

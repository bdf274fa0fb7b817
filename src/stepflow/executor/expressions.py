# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Restricted expression evaluation.

Conditions and transform steps are written as small Python-like
expressions. They are evaluated with simpleeval against an explicit scope
and a whitelist of functions, never with eval().
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from simpleeval import (
    AttributeDoesNotExist,
    EvalWithCompoundTypes,
    InvalidExpression,
    NameNotDefined,
)

from stepflow.exceptions import ExpressionError

SAFE_FUNCTIONS: dict[str, Any] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "sum": sum,
    "sorted": sorted,
    "lower": lambda value: str(value).lower(),
    "upper": lambda value: str(value).upper(),
}


class _ScopeEval(EvalWithCompoundTypes):
    """simpleeval evaluator that reads mapping keys before attributes.

    Without this, ``inputs.items`` would be the dict method rather than an
    input named ``items``.
    """

    def _eval_attribute(self, node: Any) -> Any:
        if not node.attr.startswith("_"):
            value = self._eval(node.value)
            if isinstance(value, Mapping) and node.attr in value:
                return value[node.attr]
        return super()._eval_attribute(node)


class ExpressionEvaluator:
    """Evaluates expressions against an explicit scope.

    Supports comparisons, boolean logic, arithmetic, list/dict literals and
    dotted access into mappings (``steps.fetch.output.total``). Only the
    names in the scope and the whitelisted functions are reachable.

    Example:
        >>> evaluator = ExpressionEvaluator()
        >>> evaluator.evaluate("inputs.x + 1", {"inputs": {"x": 5}})
        6
        >>> evaluator.evaluate("score > 7 and status == 'ok'", {"score": 9, "status": "ok"})
        True
    """

    def __init__(self, functions: Mapping[str, Any] | None = None) -> None:
        """Initialize the evaluator.

        Args:
            functions: Functions callable from expressions. Defaults to
                SAFE_FUNCTIONS.
        """
        self.functions = dict(SAFE_FUNCTIONS if functions is None else functions)

    def evaluate(self, expression: str, scope: Mapping[str, Any]) -> Any:
        """Evaluate an expression.

        Args:
            expression: The expression text.
            scope: Names available to the expression.

        Returns:
            The expression's value.

        Raises:
            ExpressionError: If the expression cannot be parsed, references
                an unknown name, or fails while evaluating.
        """
        evaluator = _ScopeEval(names=dict(scope), functions=self.functions)
        try:
            return evaluator.eval(expression)
        except NameNotDefined as e:
            raise ExpressionError(
                f"Unknown variable in expression '{expression}': {e}",
                expression=expression,
                missing_reference=True,
            ) from e
        except (AttributeDoesNotExist, KeyError, IndexError) as e:
            raise ExpressionError(
                f"Expression '{expression}' references a missing value: {e}",
                expression=expression,
                missing_reference=True,
            ) from e
        except InvalidExpression as e:
            raise ExpressionError(
                f"Expression '{expression}' is not allowed: {e}",
                expression=expression,
            ) from e
        except SyntaxError as e:
            raise ExpressionError(
                f"Invalid expression syntax '{expression}': {e.msg}",
                expression=expression,
            ) from e
        except Exception as e:
            raise ExpressionError(
                f"Failed to evaluate expression '{expression}': {e}",
                expression=expression,
            ) from e

    def evaluate_bool(self, expression: str, scope: Mapping[str, Any]) -> bool:
        """Evaluate an expression and coerce the result to a boolean.

        Raises:
            ExpressionError: If evaluation fails.
        """
        return bool(self.evaluate(expression, scope))

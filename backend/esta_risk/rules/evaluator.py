"""Sandboxed evaluation of alert rule expressions."""
from typing import Any, Dict, Iterable, List
import ast
import logging

from simpleeval import FeatureNotAvailable, NameNotDefined, SimpleEval

logger = logging.getLogger(__name__)

SAFE_FUNCTIONS = {
    "abs": abs,
    "len": len,
    "max": max,
    "min": min,
    "round": round,
}


class RuleEvaluationError(Exception):
    """An alert rule expression could not be evaluated."""


class RuleEvaluator:
    """
    Evaluates alert rule expressions over a flat dict of score metrics.

    Expressions run through simpleeval: comparisons, boolean logic,
    arithmetic and a few builtins (abs, len, max, min, round). Attribute
    access, imports and assignments are rejected by the interpreter.

    Example:
        >>> RuleEvaluator().evaluate("denial_rate_score >= 50", {"denial_rate_score": 62.5})
        True
    """

    def __init__(self, functions: Dict[str, Any] = None):
        self.functions = dict(SAFE_FUNCTIONS if functions is None else functions)

    def evaluate(self, expression: str, context: Dict[str, Any]) -> bool:
        """
        Evaluate `expression` with `context` as its variables.

        Raises:
            RuleEvaluationError: empty or malformed expression, unknown metric,
                or a failure inside the expression itself
        """
        if not expression or not expression.strip():
            raise RuleEvaluationError("Expression cannot be empty")

        interpreter = SimpleEval(names=context, functions=self.functions)
        try:
            return bool(interpreter.eval(expression))
        except NameNotDefined as e:
            raise RuleEvaluationError(
                f"Metric '{e.name}' not available. Available: {sorted(context)}"
            ) from e
        except FeatureNotAvailable as e:
            raise RuleEvaluationError(f"Unsupported construct in expression: {e}") from e
        except SyntaxError as e:
            raise RuleEvaluationError(f"Invalid expression syntax: {e.msg}") from e
        except TypeError as e:
            raise RuleEvaluationError(f"Type error in expression: {e}") from e
        except Exception as e:
            raise RuleEvaluationError(f"Failed to evaluate expression: {type(e).__name__}: {e}") from e

    def evaluate_safe(self, expression: str, context: Dict[str, Any], default: bool = False) -> bool:
        """Like evaluate(), but logs the failure and returns `default`."""
        try:
            return self.evaluate(expression, context)
        except RuleEvaluationError as e:
            logger.warning(f"Rule '{expression}' skipped: {e}")
            return default

    def referenced_names(self, expression: str) -> List[str]:
        """
        Variables an expression reads, excluding the allowed functions.

        Example:
            >>> RuleEvaluator().referenced_names("has_previous_score and max(score_change, 0) >= 10")
            ['has_previous_score', 'score_change']
        """
        tree = ast.parse(expression, mode="eval")
        names = {node.id for node in ast.walk(tree) if isinstance(node, ast.Name)}
        return sorted(names - set(self.functions))

    def check_expression(self, expression: str, available: Iterable[str]) -> List[str]:
        """
        Problems that would make `expression` fail against metrics named in
        `available`. An empty list means the expression is usable.
        """
        if not expression or not expression.strip():
            return ["Expression cannot be empty"]
        try:
            names = self.referenced_names(expression)
        except SyntaxError as e:
            return [f"Invalid syntax: {e.msg}"]
        known = set(available)
        return [f"Unknown metric '{name}'" for name in names if name not in known]

"""Rule evaluation module for safe, sandboxed alert rule expressions."""
from .evaluator import RuleEvaluator, RuleEvaluationError
from .schema import AlertRuleDefinition

__all__ = ["RuleEvaluator", "RuleEvaluationError", "AlertRuleDefinition"]

"""
Expressions package.

Combinator expression trees (AND, OR, NOT, check and constant leaves)
with tri-state results, the short-circuit evaluator, and the trace
renderer.
"""

from .evaluator import evaluate
from .formatting import AnsiTraceFormatter, PlainTraceFormatter, render
from .models import (
    AndNode,
    CheckLeaf,
    CheckResult,
    ConstantLeaf,
    ExpressionNode,
    NotNode,
    OrNode,
    failure,
    not_shareable,
)

__all__ = [
    "AndNode",
    "AnsiTraceFormatter",
    "CheckLeaf",
    "CheckResult",
    "ConstantLeaf",
    "ExpressionNode",
    "NotNode",
    "OrNode",
    "PlainTraceFormatter",
    "evaluate",
    "failure",
    "not_shareable",
    "render",
]

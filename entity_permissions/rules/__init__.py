"""
Rules package.

Parses declarative permission rule strings ("A AND (B OR NOT C)") into
an immutable AST of check references. Parsing is independent of check
execution so rules can be validated when entities are bound.

Modules of interest:
- models: Rule AST node types.
- parser: Recursive-descent parser producing the AST.
"""

from .models import AndRule, CheckRef, NotRule, OrRule, RuleNode, iter_check_names
from .parser import parse_expression

__all__ = [
    "AndRule",
    "CheckRef",
    "NotRule",
    "OrRule",
    "RuleNode",
    "iter_check_names",
    "parse_expression",
]

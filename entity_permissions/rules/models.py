"""
Rule AST models.

A parsed permission rule is an immutable tree of check references
combined with AND, OR and NOT. The AST carries no evaluation state;
the expression builder turns it into evaluable expression nodes.
"""

from dataclasses import dataclass
from typing import Iterator, Union


@dataclass(frozen=True)
class CheckRef:
    """Reference to a named check."""
    name: str


@dataclass(frozen=True)
class AndRule:
    """Both operands must pass."""
    left: "RuleNode"
    right: "RuleNode"


@dataclass(frozen=True)
class OrRule:
    """Either operand must pass."""
    left: "RuleNode"
    right: "RuleNode"


@dataclass(frozen=True)
class NotRule:
    """Negation of the operand."""
    operand: "RuleNode"


RuleNode = Union[CheckRef, AndRule, OrRule, NotRule]


def iter_check_names(node: RuleNode) -> Iterator[str]:
    """Yield every check name referenced by a rule, left to right."""
    if isinstance(node, CheckRef):
        yield node.name
    elif isinstance(node, (AndRule, OrRule)):
        yield from iter_check_names(node.left)
        yield from iter_check_names(node.right)
    elif isinstance(node, NotRule):
        yield from iter_check_names(node.operand)
    else:
        raise TypeError(f"Unknown rule node: {node!r}")

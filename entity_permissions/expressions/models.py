"""
Expression tree models.

Trees are built once per logical operation and evaluated at most once;
the structure never changes after construction, only each node's
``result`` moves from UNEVALUATED to PASSED or FAILED.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ..cache.result_cache import ExpressionResultCache
    from ..checks.base import Check
    from ..resource import ChangeSpec, PersistentResource, RequestScope


class CheckResult(str, Enum):
    """Tri-state result of a node."""
    UNEVALUATED = "unevaluated"
    PASSED = "passed"
    FAILED = "failed"

    @classmethod
    def from_bool(cls, value: bool) -> "CheckResult":
        return cls.PASSED if value else cls.FAILED

    def negate(self) -> "CheckResult":
        if self is CheckResult.PASSED:
            return CheckResult.FAILED
        if self is CheckResult.FAILED:
            return CheckResult.PASSED
        return self


class _Node:

    def __str__(self) -> str:
        from .formatting import render
        return render(self)


@dataclass(eq=False)
class CheckLeaf(_Node):
    """Invokes one check, through the shared cache."""
    check_name: str
    check: "Check"
    resource: "PersistentResource"
    change_spec: Optional["ChangeSpec"]
    request_scope: Optional["RequestScope"]
    cache: "ExpressionResultCache"
    result: CheckResult = CheckResult.UNEVALUATED

    @property
    def cache_key(self) -> Hashable:
        return self.check.cache_key(self.check_name, self.resource, self.change_spec, self.request_scope)


@dataclass(eq=False)
class AndNode(_Node):
    left: "ExpressionNode"
    right: "ExpressionNode"
    result: CheckResult = CheckResult.UNEVALUATED


@dataclass(eq=False)
class OrNode(_Node):
    left: "ExpressionNode"
    right: "ExpressionNode"
    result: CheckResult = CheckResult.UNEVALUATED


@dataclass(eq=False)
class NotNode(_Node):
    child: "ExpressionNode"
    result: CheckResult = CheckResult.UNEVALUATED


@dataclass(eq=False)
class ConstantLeaf(_Node):
    """Fixed verdict. ``colored`` constants render in their verdict's colour."""
    label: str
    result: CheckResult = CheckResult.FAILED
    colored: bool = field(default=True)


ExpressionNode = Union[CheckLeaf, AndNode, OrNode, NotNode, ConstantLeaf]


FAILURE_LABEL = "FAILURE"
NOT_SHAREABLE_LABEL = "NOT MARKED SHAREABLE"


def failure() -> ConstantLeaf:
    """Fail-closed term for a scope that declares no rule."""
    return ConstantLeaf(FAILURE_LABEL, CheckResult.FAILED, colored=True)


def not_shareable() -> ConstantLeaf:
    """Denies sharing for a type with no share rule; renders as a plain literal."""
    return ConstantLeaf(NOT_SHAREABLE_LABEL, CheckResult.FAILED, colored=False)

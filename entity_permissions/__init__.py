"""
Entity permission evaluation.

Evaluates declarative access rules attached to entity types and their
fields and keeps an auditable trace of every decision:

- annotations: Permission markers and the ``include`` decorator.
- dictionary: Check registry and bound entity metadata.
- rules: Rule-string parser and AST.
- expressions: Expression trees, short-circuit evaluator, trace renderer.
- cache: Per-operation check result cache.
- builder: Builds operation/commit expressions per permission scope.
- executor: Evaluates expressions for a request and raises on denial.

Guidelines:
- One RequestScope (and one cache) per logical operation.
- Building never runs checks; evaluation is always explicit.
- Check faults propagate; they are never turned into denials.
"""

from .annotations import (
    CreatePermission,
    DeletePermission,
    PermissionKind,
    ReadPermission,
    SharePermission,
    UpdatePermission,
    include,
)
from .builder import EvaluationResult, ExpressionScope, Expressions, PermissionExpression, PermissionExpressionBuilder
from .cache import ExpressionResultCache
from .dictionary import EntityDictionary
from .executor import PermissionExecutor
from .expressions import CheckResult
from .resource import ChangeSpec, PersistentResource, RequestScope, User

__all__ = [
    "ChangeSpec",
    "CheckResult",
    "CreatePermission",
    "DeletePermission",
    "EntityDictionary",
    "EvaluationResult",
    "ExpressionResultCache",
    "ExpressionScope",
    "Expressions",
    "PermissionExecutor",
    "PermissionExpression",
    "PermissionExpressionBuilder",
    "PermissionKind",
    "PersistentResource",
    "ReadPermission",
    "RequestScope",
    "SharePermission",
    "UpdatePermission",
    "User",
    "include",
]

"""
Permission executor.

Front door for resource-access code: builds the expressions for a
request, evaluates the operation phase immediately, queues the commit
phase, and turns a FAILED verdict into ForbiddenAccessError carrying the
audit trace.
"""

from typing import List, Optional

from shared.config import get_config
from shared.errors import ForbiddenAccessError
from shared.logging import get_logger
from .annotations import PermissionKind
from .builder import Expressions, PermissionExpression, PermissionExpressionBuilder
from .expressions import CheckResult, PlainTraceFormatter
from .resource import ChangeSpec, PersistentResource, RequestScope


class PermissionExecutor:
    """Evaluates permission expressions within one request scope."""

    def __init__(self, request_scope: RequestScope, builder: Optional[PermissionExpressionBuilder] = None):
        self.request_scope = request_scope
        self.builder = builder or PermissionExpressionBuilder(request_scope.cache, request_scope.dictionary)
        self.logger = get_logger("entity_permissions.executor")
        self.log_traces = get_config().log_traces
        self._plain = PlainTraceFormatter()
        self._commit_queue: List[PermissionExpression] = []

    def check_permission(self, kind, resource: PersistentResource, change_spec: Optional[ChangeSpec] = None) -> CheckResult:
        """Entity-level check: any field for READ/UPDATE, entity rule for CREATE/DELETE."""
        kind = PermissionKind.coerce(kind)
        if kind is PermissionKind.SHARE:
            return self.check_share_permission(resource)
        if kind in (PermissionKind.READ, PermissionKind.UPDATE):
            return self.check_any_field_permissions(resource, kind, change_spec)
        return self._execute(self.builder.build_entity_expressions(resource, kind, change_spec))

    def check_any_field_permissions(
        self,
        resource: PersistentResource,
        kind,
        change_spec: Optional[ChangeSpec] = None
    ) -> CheckResult:
        return self._execute(self.builder.build_any_field_expressions(resource, kind, change_spec))

    def check_specific_field_permissions(
        self,
        resource: PersistentResource,
        kind,
        field_name: str,
        change_spec: Optional[ChangeSpec] = None
    ) -> CheckResult:
        return self._execute(
            self.builder.build_specific_field_expressions(resource, kind, field_name, change_spec)
        )

    def check_share_permission(self, resource: PersistentResource) -> CheckResult:
        return self._execute(self.builder.build_share_permission_expressions(resource))

    def execute_commit_checks(self) -> int:
        """Evaluate every queued commit expression; returns how many ran."""
        executed = 0
        while self._commit_queue:
            expression = self._commit_queue.pop(0)
            self._evaluate(expression)
            executed += 1
        return executed

    @property
    def pending_commit_checks(self) -> int:
        return len(self._commit_queue)

    def _execute(self, expressions: Expressions) -> CheckResult:
        if expressions.operation_expression is None:
            return self._evaluate(expressions.commit_expression)

        result = self._evaluate(expressions.operation_expression)
        self._commit_queue.append(expressions.commit_expression)
        return result

    def _evaluate(self, expression: PermissionExpression) -> CheckResult:
        if self.log_traces:
            self.logger.debug("Evaluating permission", expression=expression.render(self._plain))

        result = expression.evaluate()
        trace_text = expression.render(self._plain)

        if self.log_traces:
            self.logger.debug("Permission evaluated", expression=trace_text, result=result.value)

        if result is not CheckResult.PASSED:
            self.logger.info(
                "Permission denied",
                permission=expression.kind.value,
                type=expression.resource.type,
                scope=expression.scope.value
            )
            raise ForbiddenAccessError(trace_text, {"permission": expression.kind.value})
        return result

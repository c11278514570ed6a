"""
Permission expression builder.

Turns the rule ASTs declared on an entity type and its fields into
evaluable expression trees for one resource, wired to the checks in the
dictionary and to the operation's shared result cache.
"""

import time
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import Callable, Optional

from opentelemetry import trace

from shared.errors import ConfigurationError
from shared.logging import get_logger
from shared.metrics import get_metrics_collector
from .annotations import PermissionKind
from .cache.result_cache import ExpressionResultCache
from .dictionary import EntityDictionary
from .expressions import (
    AndNode,
    CheckLeaf,
    CheckResult,
    ExpressionNode,
    NotNode,
    OrNode,
    PlainTraceFormatter,
    evaluate,
    failure,
    not_shareable,
    render,
)
from .resource import ChangeSpec, PersistentResource
from .rules import AndRule, CheckRef, NotRule, OrRule, RuleNode

tracer = trace.get_tracer("entity_permissions")


class ExpressionScope(str, Enum):
    """What a commit expression was built from."""
    ENTITY = "entity"
    FIELD = "field"
    ANY_FIELD = "any_field"
    SHARE = "share"


@dataclass
class EvaluationResult:
    """Outcome of one evaluation with its audit traces."""
    result: CheckResult
    trace_before: str
    trace_after: str
    evaluation_time_ms: float = 0.0

    @property
    def allowed(self) -> bool:
        return self.result is CheckResult.PASSED


class PermissionExpression:
    """An expression tree bound to the permission kind and resource it answers for."""

    def __init__(
        self,
        kind: PermissionKind,
        resource: PersistentResource,
        change_spec: Optional[ChangeSpec],
        scope: ExpressionScope,
        root: ExpressionNode,
        fields_term: Optional[ExpressionNode] = None,
        entity_term: Optional[ExpressionNode] = None
    ):
        self.kind = kind
        self.resource = resource
        self.change_spec = change_spec
        self.scope = scope
        self.root = root
        self.fields_term = fields_term
        self.entity_term = entity_term

    @property
    def result(self) -> CheckResult:
        return self.root.result

    def evaluate(self) -> CheckResult:
        """Run the checks; calling again reuses every result already reached."""
        metrics = get_metrics_collector()
        start_time = time.time()
        with tracer.start_as_current_span("permission.evaluate") as span:
            span.set_attribute("permission.kind", self.kind.value)
            span.set_attribute("permission.type", self.resource.type)
            span.set_attribute("permission.scope", self.scope.value)
            try:
                result = evaluate(self.root)
            except Exception:
                metrics.record_evaluation(self.kind.value, "error", time.time() - start_time)
                raise
            span.set_attribute("permission.result", result.value)
        metrics.record_evaluation(self.kind.value, result.value, time.time() - start_time)
        return result

    def evaluate_with_trace(self, formatter: Optional[PlainTraceFormatter] = None) -> EvaluationResult:
        """Evaluate and capture the trace before and after."""
        trace_before = self.render(formatter)
        start_time = time.time()
        result = self.evaluate()
        return EvaluationResult(
            result=result,
            trace_before=trace_before,
            trace_after=self.render(formatter),
            evaluation_time_ms=(time.time() - start_time) * 1000
        )

    def render(self, formatter: Optional[PlainTraceFormatter] = None) -> str:
        if self.scope is ExpressionScope.ANY_FIELD:
            body = f"FIELDS({render(self.fields_term, formatter)}) OR ENTITY({render(self.entity_term, formatter)})"
        elif self.scope is ExpressionScope.FIELD:
            body = f"FIELD({render(self.root, formatter)})"
        elif self.scope is ExpressionScope.SHARE:
            body = f"SHARE ENTITY({render(self.root, formatter)})"
        else:
            body = f"ENTITY({render(self.root, formatter)})"

        changes = f"WITH CHANGES {self.change_spec}" if self.change_spec is not None else ""
        return f"{self.kind.label} WAS INVOKED ON {self.resource} {changes} FOR EXPRESSION [{body}]"

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"<PermissionExpression {self.kind.value} {self.scope.value} {self.result.value}>"


@dataclass
class Expressions:
    """The operation-phase and commit-phase expressions for one request."""
    operation_expression: Optional[PermissionExpression]
    commit_expression: PermissionExpression


class PermissionExpressionBuilder:
    """Builds permission expressions for resources of bound entity types."""

    def __init__(self, cache: ExpressionResultCache, dictionary: EntityDictionary):
        self.cache = cache
        self.dictionary = dictionary
        self.logger = get_logger("entity_permissions.builder")

    def build_any_field_expressions(
        self,
        resource: PersistentResource,
        kind,
        change_spec: Optional[ChangeSpec] = None
    ) -> Expressions:
        """Passes if the entity rule passes or any one field's rule passes.

        Fields are fail-closed: with no field rule the fields term is FAILURE.
        With no entity rule the entity term renders ENTITY(FAILURE), which
        decides the same as leaving that OR term out.
        """
        kind = PermissionKind.coerce(kind)
        binding = self.dictionary.get_binding(resource.resource_class)

        def build() -> PermissionExpression:
            field_trees = [
                self._build_tree(binding.field_rules[name][kind], resource, change_spec)
                for name in binding.fields
                if kind in binding.field_rules.get(name, {})
            ]
            fields_term = reduce(OrNode, field_trees) if field_trees else failure()
            entity_term = self._build_optional(binding.entity_rules.get(kind), resource, change_spec)
            return PermissionExpression(
                kind, resource, change_spec, ExpressionScope.ANY_FIELD,
                OrNode(fields_term, entity_term), fields_term=fields_term, entity_term=entity_term
            )

        return self._bundle(build, kind, resource, ExpressionScope.ANY_FIELD)

    def build_specific_field_expressions(
        self,
        resource: PersistentResource,
        kind,
        field_name: str,
        change_spec: Optional[ChangeSpec] = None
    ) -> Expressions:
        """Uses the field's rule, falling back to the entity's rule for ``kind``."""
        kind = PermissionKind.coerce(kind)
        cls = resource.resource_class
        rule = self.dictionary.get_field_rule(cls, field_name, kind)
        if rule is None:
            rule = self.dictionary.get_entity_rule(cls, kind)

        def build() -> PermissionExpression:
            root = self._build_optional(rule, resource, change_spec)
            return PermissionExpression(kind, resource, change_spec, ExpressionScope.FIELD, root)

        return self._bundle(build, kind, resource, ExpressionScope.FIELD)

    def build_entity_expressions(
        self,
        resource: PersistentResource,
        kind,
        change_spec: Optional[ChangeSpec] = None
    ) -> Expressions:
        """Uses only the entity-level rule for ``kind``."""
        kind = PermissionKind.coerce(kind)
        rule = self.dictionary.get_entity_rule(resource.resource_class, kind)

        def build() -> PermissionExpression:
            root = self._build_optional(rule, resource, change_spec)
            return PermissionExpression(kind, resource, change_spec, ExpressionScope.ENTITY, root)

        return self._bundle(build, kind, resource, ExpressionScope.ENTITY)

    def build_share_permission_expressions(self, resource: PersistentResource) -> Expressions:
        """Entity share rule, or NOT MARKED SHAREABLE when the type declares none."""
        kind = PermissionKind.SHARE
        rule = self.dictionary.get_entity_rule(resource.resource_class, kind)
        root = self._build_tree(rule, resource, None) if rule is not None else not_shareable()
        commit = PermissionExpression(kind, resource, None, ExpressionScope.SHARE, root)

        self.logger.debug(
            "Permission expressions built",
            permission=kind.value,
            type=resource.type,
            scope=ExpressionScope.SHARE.value,
            shareable=rule is not None
        )
        return Expressions(operation_expression=None, commit_expression=commit)

    def _bundle(
        self,
        build: Callable[[], PermissionExpression],
        kind: PermissionKind,
        resource: PersistentResource,
        scope: ExpressionScope
    ) -> Expressions:
        # Two tree instances; the shared cache makes the commit phase reuse operation-phase results.
        expressions = Expressions(operation_expression=build(), commit_expression=build())
        self.logger.debug(
            "Permission expressions built",
            permission=kind.value,
            type=resource.type,
            scope=scope.value
        )
        return expressions

    def _build_optional(
        self,
        rule: Optional[RuleNode],
        resource: PersistentResource,
        change_spec: Optional[ChangeSpec]
    ) -> ExpressionNode:
        if rule is None:
            return failure()
        return self._build_tree(rule, resource, change_spec)

    def _build_tree(
        self,
        rule: RuleNode,
        resource: PersistentResource,
        change_spec: Optional[ChangeSpec]
    ) -> ExpressionNode:
        if isinstance(rule, CheckRef):
            return CheckLeaf(
                check_name=rule.name,
                check=self.dictionary.get_check(rule.name),
                resource=resource,
                change_spec=change_spec,
                request_scope=resource.request_scope,
                cache=self.cache
            )
        elif isinstance(rule, AndRule):
            return AndNode(
                self._build_tree(rule.left, resource, change_spec),
                self._build_tree(rule.right, resource, change_spec)
            )
        elif isinstance(rule, OrRule):
            return OrNode(
                self._build_tree(rule.left, resource, change_spec),
                self._build_tree(rule.right, resource, change_spec)
            )
        elif isinstance(rule, NotRule):
            return NotNode(self._build_tree(rule.operand, resource, change_spec))
        else:
            raise ConfigurationError(f"Malformed rule node: {rule!r}", {"type": resource.type})

"""
Short-circuit evaluation of expression trees.

All evaluation rules live in ``evaluate``: AND stops at the first
failure, OR at the first pass, and the skipped operand keeps its
UNEVALUATED state. Leaves go through the shared result cache so a check
runs at most once per (check, subject, change) within an operation.
"""

from shared.errors import CheckExecutionError
from shared.logging import get_logger
from shared.metrics import get_metrics_collector
from .models import AndNode, CheckLeaf, CheckResult, ConstantLeaf, ExpressionNode, NotNode, OrNode

logger = get_logger("entity_permissions.evaluator")


def evaluate(node: ExpressionNode) -> CheckResult:
    """Evaluate ``node`` in place and return its result.

    Raises:
        CheckExecutionError: a check raised or returned a non-boolean. Nodes
            evaluated before the fault keep their states.
    """
    if isinstance(node, CheckLeaf):
        if node.result is CheckResult.UNEVALUATED:
            node.result = _evaluate_check(node)

    elif isinstance(node, AndNode):
        if evaluate(node.left) is CheckResult.FAILED:
            node.result = CheckResult.FAILED
        else:
            node.result = evaluate(node.right)

    elif isinstance(node, OrNode):
        if evaluate(node.left) is CheckResult.PASSED:
            node.result = CheckResult.PASSED
        else:
            node.result = evaluate(node.right)

    elif isinstance(node, NotNode):
        node.result = evaluate(node.child).negate()

    elif isinstance(node, ConstantLeaf):
        pass

    else:
        raise TypeError(f"Cannot evaluate expression node: {node!r}")

    return node.result


def _evaluate_check(leaf: CheckLeaf) -> CheckResult:
    metrics = get_metrics_collector()

    def invoke() -> CheckResult:
        obj = leaf.resource.obj if leaf.resource is not None else None
        try:
            value = leaf.check.ok(obj, leaf.request_scope, leaf.change_spec)
        except Exception as e:
            metrics.record_check_invocation(leaf.check_name, "error")
            logger.error(
                "Check raised during evaluation",
                check=leaf.check_name,
                resource=str(leaf.resource),
                error=str(e)
            )
            raise CheckExecutionError(leaf.check_name, f"check raised {type(e).__name__}: {e}") from e

        if not isinstance(value, bool):
            metrics.record_check_invocation(leaf.check_name, "error")
            raise CheckExecutionError(
                leaf.check_name,
                f"check returned {type(value).__name__}, expected bool"
            )

        result = CheckResult.from_bool(value)
        metrics.record_check_invocation(leaf.check_name, result.value)
        logger.debug("Check evaluated", check=leaf.check_name, result=result.value)
        return result

    result, hit = leaf.cache.get_or_compute(leaf.cache_key, invoke)
    if hit:
        metrics.record_cache_hit(leaf.check_name)
    return result

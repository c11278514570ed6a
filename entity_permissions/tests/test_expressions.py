"""
Unit tests for expression evaluation and rendering.
"""

import pytest

from entity_permissions.cache import ExpressionResultCache
from entity_permissions.checks import OperationCheck, UserCheck
from entity_permissions.expressions import (
    AndNode,
    AnsiTraceFormatter,
    CheckLeaf,
    CheckResult,
    NotNode,
    OrNode,
    PlainTraceFormatter,
    evaluate,
    failure,
    not_shareable,
    render,
)
from entity_permissions.resource import PersistentResource
from shared.errors import CheckExecutionError

from .conftest import CountingCheck

PLAIN = PlainTraceFormatter()


class Document:
    def __init__(self, id=None):
        self.id = id


@pytest.fixture
def resource(dictionary, new_resource):
    dictionary.bind_entity(Document)
    return new_resource(Document(id=1))


@pytest.fixture
def leaf(resource, cache):
    """Factory for check leaves over one resource."""
    def factory(name, check, change_spec=None, target=None):
        target = target or resource
        return CheckLeaf(name, check, target, change_spec, target.request_scope, cache)
    return factory


class TestEvaluator:
    """Test cases for short-circuit evaluation."""

    def test_and_short_circuits_on_failure(self, leaf):
        """Test right operand of AND is never invoked when left fails."""
        a, b = CountingCheck(False), CountingCheck(True)
        node = AndNode(leaf("A", a), leaf("B", b))

        assert evaluate(node) is CheckResult.FAILED
        assert a.calls == 1
        assert b.calls == 0
        assert node.right.result is CheckResult.UNEVALUATED

    def test_and_passes_when_both_pass(self, leaf):
        node = AndNode(leaf("A", CountingCheck(True)), leaf("B", CountingCheck(True)))

        assert evaluate(node) is CheckResult.PASSED

    def test_and_fails_when_right_fails(self, leaf):
        node = AndNode(leaf("A", CountingCheck(True)), leaf("B", CountingCheck(False)))

        assert evaluate(node) is CheckResult.FAILED
        assert render(node, PLAIN) == "((A PASSED)) AND ((B FAILED))"

    def test_or_short_circuits_on_pass(self, leaf):
        """Test right operand of OR is never invoked when left passes."""
        a, b = CountingCheck(True), CountingCheck(False)
        node = OrNode(leaf("A", a), leaf("B", b))

        assert evaluate(node) is CheckResult.PASSED
        assert b.calls == 0
        assert render(node, PLAIN) == "((A PASSED)) OR ((B WAS UNEVALUATED))"

    def test_or_fails_when_both_fail(self, leaf):
        node = OrNode(leaf("A", CountingCheck(False)), leaf("B", CountingCheck(False)))

        assert evaluate(node) is CheckResult.FAILED

    def test_not_negates_child(self, leaf):
        node = NotNode(leaf("A", CountingCheck(False)))

        assert render(node, PLAIN) == "NOT ((A WAS UNEVALUATED))"
        assert evaluate(node) is CheckResult.PASSED
        assert render(node, PLAIN) == "NOT ((A FAILED))"

    def test_second_evaluation_is_idempotent(self, leaf):
        """Test re-evaluating invokes nothing and renders identically."""
        a, b, c = CountingCheck(True), CountingCheck(False), CountingCheck(True)
        node = OrNode(AndNode(leaf("A", a), leaf("B", b)), leaf("C", c))

        evaluate(node)
        first = render(node, AnsiTraceFormatter())
        evaluate(node)

        assert render(node, AnsiTraceFormatter()) == first
        assert (a.calls, b.calls, c.calls) == (1, 1, 1)

    def test_same_check_shares_cache_across_leaves(self, leaf):
        """Test identical checks on the same subject run once."""
        check = CountingCheck(True)
        node = AndNode(leaf("A", check), leaf("A", check))

        assert evaluate(node) is CheckResult.PASSED
        assert check.calls == 1
        assert node.right.result is CheckResult.PASSED

    def test_different_subjects_are_cached_separately(self, leaf, new_resource):
        """Test operation checks are keyed by subject identity."""
        check = CountingCheck(True)
        other = new_resource(Document(id=2))
        node = AndNode(leaf("A", check), leaf("A", check, target=other))

        evaluate(node)

        assert check.calls == 2

    def test_user_checks_collapse_across_subjects(self, leaf, resource):
        """Test user checks ignore the subject in their cache key."""
        class CountingUserCheck(UserCheck):
            calls = 0

            def ok_user(self, user):
                CountingUserCheck.calls += 1
                return user.user_id == "user-1"

        check = CountingUserCheck()
        other = PersistentResource(Document(id=2), resource.request_scope)
        node = AndNode(leaf("owner", check), leaf("owner", check, target=other))

        assert evaluate(node) is CheckResult.PASSED
        assert CountingUserCheck.calls == 1

    def test_user_checks_are_keyed_per_request_scope(self, leaf, resource, new_resource):
        class CountingUserCheck(UserCheck):
            calls = 0

            def ok_user(self, user):
                CountingUserCheck.calls += 1
                return True

        check = CountingUserCheck()
        other = new_resource(Document(id=1))
        evaluate(AndNode(leaf("owner", check), leaf("owner", check, target=other)))

        assert CountingUserCheck.calls == 2

    def test_resources_without_id_are_keyed_by_object(self, leaf, resource):
        """Test unsaved objects share results only with themselves."""
        check = CountingCheck(True)
        unsaved = PersistentResource(Document(), resource.request_scope)
        same = PersistentResource(unsaved.obj, resource.request_scope)
        another = PersistentResource(Document(), resource.request_scope)

        evaluate(AndNode(AndNode(leaf("A", check, target=unsaved), leaf("A", check, target=same)),
                         leaf("A", check, target=another)))

        assert check.calls == 2
        assert unsaved.identity == same.identity
        assert unsaved.identity != another.identity

    def test_check_error_aborts_and_keeps_states(self, leaf):
        """Test check faults propagate and earlier states stay visible."""
        a = CountingCheck(True)
        broken = CountingCheck(error=RuntimeError("database down"))
        c = CountingCheck(True)
        node = AndNode(AndNode(leaf("A", a), leaf("Broken", broken)), leaf("C", c))

        with pytest.raises(CheckExecutionError) as exc_info:
            evaluate(node)

        assert exc_info.value.check_name == "Broken"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert c.calls == 0
        assert render(node, PLAIN) == (
            "(((A PASSED)) AND ((Broken WAS UNEVALUATED))) AND ((C WAS UNEVALUATED))"
        )
        assert node.result is CheckResult.UNEVALUATED

    def test_check_error_is_not_cached(self, leaf, cache):
        broken = CountingCheck(error=ValueError("boom"))
        node = leaf("Broken", broken)

        with pytest.raises(CheckExecutionError):
            evaluate(node)

        assert len(cache) == 0

    def test_non_boolean_result_is_an_error(self, leaf):
        """Test truthy values are not accepted as verdicts."""
        class Sloppy(OperationCheck):
            def ok(self, obj, request_scope, change_spec):
                return "yes"

        with pytest.raises(CheckExecutionError):
            evaluate(leaf("Sloppy", Sloppy()))

    def test_check_receives_object_scope_and_change(self, leaf, resource):
        seen = {}

        class Recording(OperationCheck):
            def ok(self, obj, request_scope, change_spec):
                seen.update(obj=obj, scope=request_scope, change=change_spec)
                return True

        change = object()
        evaluate(leaf("Recording", Recording(), change_spec=change))

        assert seen["obj"] is resource.obj
        assert seen["scope"] is resource.request_scope
        assert seen["change"] is change


class TestConstants:
    """Test cases for constant leaves."""

    def test_failure_constant_is_prefailed(self):
        node = failure()

        assert node.result is CheckResult.FAILED
        assert render(node, AnsiTraceFormatter()) == "\u001B[31mFAILURE\u001B[m"
        assert render(node, PLAIN) == "FAILURE"

    def test_not_shareable_is_plain_and_inert(self):
        node = not_shareable()

        assert render(node, AnsiTraceFormatter()) == "NOT MARKED SHAREABLE"
        assert evaluate(node) is CheckResult.FAILED
        assert render(node, AnsiTraceFormatter()) == "NOT MARKED SHAREABLE"

    def test_or_with_failure_constant_evaluates_right(self, leaf):
        node = OrNode(failure(), leaf("A", CountingCheck(True)))

        assert evaluate(node) is CheckResult.PASSED


class TestFormatting:
    """Test cases for status colouring."""

    @pytest.mark.parametrize("result,expected", [
        (CheckResult.UNEVALUATED, "\u001B[34mWAS UNEVALUATED\u001B[m"),
        (CheckResult.PASSED, "\u001B[32mPASSED\u001B[m"),
        (CheckResult.FAILED, "\u001B[31mFAILED\u001B[m"),
    ])
    def test_ansi_status(self, result, expected):
        assert AnsiTraceFormatter().status(result) == expected

    def test_plain_status_keeps_tokens(self):
        assert PLAIN.status(CheckResult.UNEVALUATED) == "WAS UNEVALUATED"

    def test_render_rejects_unknown_nodes(self):
        with pytest.raises(TypeError):
            render(object(), PLAIN)

    def test_cache_type_is_shared_reference(self, leaf, cache):
        node = leaf("A", CountingCheck(True))

        assert node.cache is cache
        assert isinstance(node.cache, ExpressionResultCache)

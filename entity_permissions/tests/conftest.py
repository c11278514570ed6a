"""
Shared fixtures for entity permission tests.
"""

import pytest

from entity_permissions.cache import ExpressionResultCache
from entity_permissions.checks import OperationCheck, Role
from entity_permissions.dictionary import EntityDictionary
from entity_permissions.builder import PermissionExpressionBuilder
from entity_permissions.resource import PersistentResource, RequestScope, User


class CountingCheck(OperationCheck):
    """Returns a fixed value (or raises) and counts invocations."""

    def __init__(self, value=True, error=None):
        self.value = value
        self.error = error
        self.calls = 0

    def ok(self, obj, request_scope, change_spec):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


@pytest.fixture
def passing_check():
    return CountingCheck(True)


@pytest.fixture
def failing_check():
    return CountingCheck(False)


@pytest.fixture
def dictionary(passing_check, failing_check):
    """Dictionary with the prefab role checks and two counting checks."""
    return EntityDictionary({
        "user has all access": Role.ALL,
        "user has no access": Role.NONE,
        "always passes": passing_check,
        "always fails": failing_check,
    })


@pytest.fixture
def cache():
    return ExpressionResultCache()


@pytest.fixture
def builder(cache, dictionary):
    return PermissionExpressionBuilder(cache, dictionary)


@pytest.fixture
def new_resource(dictionary):
    """Factory wrapping an object in a fresh request scope."""
    def factory(obj, user=None):
        request_scope = RequestScope(user or User(user_id="user-1"), dictionary)
        return PersistentResource(obj, request_scope)
    return factory

"""
Check base classes.

A check is a named, stateless predicate. The expression engine treats
checks as opaque and only cares about two things: the boolean they
return, and what their results may be cached against.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..resource import ChangeSpec, PersistentResource, RequestScope, User


class Check(ABC):
    """Predicate over (object, request scope, optional change)."""

    @abstractmethod
    def ok(self, obj: Any, request_scope: "RequestScope", change_spec: Optional["ChangeSpec"]) -> bool:
        ...

    def cache_key(
        self,
        name: str,
        resource: "PersistentResource",
        change_spec: Optional["ChangeSpec"],
        request_scope: Optional["RequestScope"]
    ) -> Hashable:
        # Scope and change spec hash by identity; holding them in the key keeps them alive.
        return (name, request_scope, resource.identity, change_spec)


class OperationCheck(Check):
    """Check evaluated against one resource; results are cached per resource and change."""


class UserCheck(Check):
    """Check that depends only on the requesting user."""

    @abstractmethod
    def ok_user(self, user: Optional["User"]) -> bool:
        ...

    def ok(self, obj: Any, request_scope: "RequestScope", change_spec: Optional["ChangeSpec"]) -> bool:
        return self.ok_user(request_scope.user if request_scope is not None else None)

    def cache_key(self, name, resource, change_spec, request_scope) -> Hashable:
        # One user per request scope, so one result per check and scope.
        return (name, request_scope, None, None)


class PredicateCheck(OperationCheck):
    """Adapts a plain callable ``fn(obj, request_scope, change_spec) -> bool``."""

    def __init__(self, fn: Callable[[Any, "RequestScope", Optional["ChangeSpec"]], bool]):
        self.fn = fn

    def ok(self, obj, request_scope, change_spec) -> bool:
        return self.fn(obj, request_scope, change_spec)

    def __repr__(self) -> str:
        return f"PredicateCheck({getattr(self.fn, '__name__', self.fn)!r})"

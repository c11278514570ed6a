"""
Request-scoped subjects handed to checks.
"""

from dataclasses import dataclass, field
from typing import Any, Hashable, Optional, TYPE_CHECKING

from shared.errors import ConfigurationError
from .cache.result_cache import ExpressionResultCache

if TYPE_CHECKING:
    from .dictionary import EntityDictionary


def _render(value: Any) -> str:
    return "null" if value is None else str(value)


@dataclass
class User:
    """The principal a request is made on behalf of."""
    user_id: Optional[str] = None
    roles: Any = field(default_factory=set)


class RequestScope:
    """State for one logical operation: the user, the dictionary and the result cache."""

    def __init__(
        self,
        user: Optional[User],
        dictionary: "EntityDictionary",
        cache: Optional[ExpressionResultCache] = None
    ):
        self.user = user
        self.dictionary = dictionary
        self.cache = cache if cache is not None else ExpressionResultCache()

    def close(self):
        """Discard request-scoped state at operation end."""
        self.cache.clear()


class _ObjectIdentity:
    """Hashes and compares by object identity, keeping the object alive."""

    __slots__ = ("obj",)

    def __init__(self, obj: Any):
        self.obj = obj

    def __hash__(self) -> int:
        return id(self.obj)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _ObjectIdentity) and other.obj is self.obj


class PersistentResource:
    """An entity instance bound to the request it is being accessed in."""

    def __init__(self, obj: Any, request_scope: Optional[RequestScope], dictionary: Optional["EntityDictionary"] = None):
        if request_scope is None and dictionary is None:
            raise ConfigurationError("PersistentResource needs a request scope or a dictionary")
        self.obj = obj
        self.request_scope = request_scope
        self.dictionary = dictionary or request_scope.dictionary
        self.type = self.dictionary.get_type_name(type(obj))

    @property
    def resource_class(self) -> type:
        return type(self.obj)

    @property
    def id(self) -> Optional[Any]:
        return getattr(self.obj, self.dictionary.get_id_field(type(self.obj)), None)

    @property
    def identity(self) -> Hashable:
        """Cache identity: (type, id), or the object itself while it has no id."""
        resource_id = self.id
        if resource_id is None:
            return (self.type, _ObjectIdentity(self.obj))
        return (self.type, resource_id)

    def __str__(self) -> str:
        return f"PersistentResource {{ type={self.type}, id={_render(self.id)} }}"

    __repr__ = __str__


@dataclass(eq=False)
class ChangeSpec:
    """A proposed change to one field of a resource."""
    resource: PersistentResource
    field_name: str
    original: Any
    modified: Any

    def __str__(self) -> str:
        return (
            f"ChangeSpec {{ resource={self.resource}, field={self.field_name}, "
            f"original={_render(self.original)}, modified={_render(self.modified)}}}"
        )

"""
Permission declarations for entity classes and their fields.

Entity-level rules are applied as class decorators; field-level rules are
attached through ``typing.Annotated`` metadata::

    @include()
    @UpdatePermission("user has no access")
    class Book:
        title: Annotated[str, UpdatePermission("user has all access")]
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Type, Union

ENTITY_PERMISSIONS_ATTR = "__entity_permissions__"
INCLUDE_ATTR = "__entity_include__"


class PermissionKind(str, Enum):
    """Permission kinds a rule can be declared for."""
    READ = "read"
    UPDATE = "update"
    CREATE = "create"
    DELETE = "delete"
    SHARE = "share"

    @property
    def label(self) -> str:
        return f"{self.name} PERMISSION"

    @classmethod
    def coerce(cls, value: Union["PermissionKind", str, Type["PermissionAnnotation"]]) -> "PermissionKind":
        """Accept a kind, its string value, or a permission marker class."""
        if isinstance(value, cls):
            return value
        if isinstance(value, type) and issubclass(value, PermissionAnnotation) and value.kind is not None:
            return value.kind
        if isinstance(value, str):
            return cls(value.lower())
        raise ValueError(f"Not a permission kind: {value!r}")


@dataclass(frozen=True)
class PermissionAnnotation:
    """Base marker carrying a rule expression."""
    expression: str

    kind: ClassVar[Optional[PermissionKind]] = None

    def __call__(self, cls: Type[Any]) -> Type[Any]:
        # Copy so a subclass never writes into its parent's declarations.
        declared = dict(getattr(cls, ENTITY_PERMISSIONS_ATTR, {}))
        declared[self.kind] = self.expression
        setattr(cls, ENTITY_PERMISSIONS_ATTR, declared)
        return cls


@dataclass(frozen=True)
class ReadPermission(PermissionAnnotation):
    kind: ClassVar[PermissionKind] = PermissionKind.READ


@dataclass(frozen=True)
class UpdatePermission(PermissionAnnotation):
    kind: ClassVar[PermissionKind] = PermissionKind.UPDATE


@dataclass(frozen=True)
class CreatePermission(PermissionAnnotation):
    kind: ClassVar[PermissionKind] = PermissionKind.CREATE


@dataclass(frozen=True)
class DeletePermission(PermissionAnnotation):
    kind: ClassVar[PermissionKind] = PermissionKind.DELETE


@dataclass(frozen=True)
class SharePermission(PermissionAnnotation):
    kind: ClassVar[PermissionKind] = PermissionKind.SHARE


def include(type_name: Optional[str] = None):
    """Mark a class as an exposed entity, optionally naming its type."""
    def decorator(cls: Type[Any]) -> Type[Any]:
        setattr(cls, INCLUDE_ATTR, type_name or default_type_name(cls))
        return cls
    return decorator


def default_type_name(cls: Type[Any]) -> str:
    name = cls.__name__
    return name[:1].lower() + name[1:]

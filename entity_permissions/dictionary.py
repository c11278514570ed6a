"""
Entity dictionary: the metadata catalog and check registry.

Binding an entity class reads its permission declarations, parses every
rule and verifies that each referenced check is registered, so a bad
configuration fails when the entity is bound rather than when a request
is authorized.
"""

import typing
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, Union

from shared.errors import ConfigurationError, RuleParseError
from shared.logging import get_logger
from .annotations import (
    ENTITY_PERMISSIONS_ATTR,
    INCLUDE_ATTR,
    PermissionAnnotation,
    PermissionKind,
    default_type_name,
)
from .checks.base import Check, PredicateCheck
from .rules import RuleNode, iter_check_names, parse_expression

CheckSpec = Union[Type[Check], Check, Callable[..., bool]]


@dataclass
class EntityBinding:
    """Permission metadata for one bound entity class."""
    cls: type
    type_name: str
    id_field: str = "id"
    fields: List[str] = field(default_factory=list)
    entity_rules: Dict[PermissionKind, RuleNode] = field(default_factory=dict)
    field_rules: Dict[str, Dict[PermissionKind, RuleNode]] = field(default_factory=dict)


class EntityDictionary:
    """Registry of checks and bound entity types."""

    def __init__(self, checks: Optional[Mapping[str, CheckSpec]] = None):
        self.logger = get_logger("entity_permissions.dictionary")
        self._checks: Dict[str, Check] = {}
        self._bindings: Dict[type, EntityBinding] = {}
        self._types_by_name: Dict[str, type] = {}
        for name, spec in (checks or {}).items():
            self.register_check(name, spec)

    def register_check(self, name: str, check: CheckSpec) -> Check:
        """Register a check class, instance or plain predicate under a name."""
        if isinstance(check, type) and issubclass(check, Check):
            instance = check()
        elif isinstance(check, Check):
            instance = check
        elif callable(check):
            instance = PredicateCheck(check)
        else:
            raise ConfigurationError(f"Check '{name}' is not a Check or callable", {"check": name})
        self._checks[name] = instance
        return instance

    def get_check(self, name: str) -> Check:
        """Resolve a check by name."""
        try:
            return self._checks[name]
        except KeyError:
            raise ConfigurationError(f"Unregistered check '{name}'", {"check": name}) from None

    def bind_entity(self, cls: type) -> EntityBinding:
        """Read, parse and validate the permission declarations of ``cls``."""
        type_name = cls.__dict__.get(INCLUDE_ATTR) or default_type_name(cls)
        if type_name in self._types_by_name and self._types_by_name[type_name] is not cls:
            raise ConfigurationError(
                f"Type name '{type_name}' already bound to {self._types_by_name[type_name].__name__}",
                {"type": type_name}
            )

        binding = EntityBinding(cls=cls, type_name=type_name)

        declared = getattr(cls, ENTITY_PERMISSIONS_ATTR, {})
        for kind, expression in declared.items():
            binding.entity_rules[kind] = self._parse_rule(expression, type_name)

        for field_name, hint in self._field_hints(cls).items():
            binding.fields.append(field_name)
            for marker in getattr(hint, "__metadata__", ()):
                if isinstance(marker, PermissionAnnotation):
                    rules = binding.field_rules.setdefault(field_name, {})
                    rules[marker.kind] = self._parse_rule(marker.expression, f"{type_name}.{field_name}")

        self._bindings[cls] = binding
        self._types_by_name[type_name] = cls
        self.logger.info(
            "Entity bound",
            type=type_name,
            entity_rules=[kind.value for kind in binding.entity_rules],
            field_rules=sorted(binding.field_rules)
        )
        return binding

    def _field_hints(self, cls: type) -> Dict[str, Any]:
        try:
            hints = typing.get_type_hints(cls, include_extras=True)
        except NameError as e:
            raise ConfigurationError(f"Cannot resolve field annotations of {cls.__name__}: {e}") from e
        return {
            name: hint for name, hint in hints.items()
            if typing.get_origin(hint) is not typing.ClassVar and not name.startswith("_")
        }

    def _parse_rule(self, expression: str, owner: str) -> RuleNode:
        try:
            rule = parse_expression(expression)
        except RuleParseError as e:
            e.details["owner"] = owner
            raise
        for name in iter_check_names(rule):
            if name not in self._checks:
                raise ConfigurationError(
                    f"Rule on '{owner}' references unregistered check '{name}'",
                    {"check": name, "owner": owner, "expression": expression}
                )
        return rule

    def get_binding(self, cls: type) -> EntityBinding:
        try:
            return self._bindings[cls]
        except KeyError:
            raise ConfigurationError(
                f"Entity type {cls.__name__} is not bound", {"class": cls.__name__}
            ) from None

    def is_bound(self, cls: type) -> bool:
        return cls in self._bindings

    def get_type_name(self, cls: type) -> str:
        return self.get_binding(cls).type_name

    def get_entity_class(self, type_name: str) -> type:
        try:
            return self._types_by_name[type_name]
        except KeyError:
            raise ConfigurationError(f"Unknown entity type '{type_name}'", {"type": type_name}) from None

    def get_id_field(self, cls: type) -> str:
        return self.get_binding(cls).id_field

    def get_entity_rule(self, cls: type, kind: PermissionKind) -> Optional[RuleNode]:
        return self.get_binding(cls).entity_rules.get(kind)

    def get_field_rule(self, cls: type, field_name: str, kind: PermissionKind) -> Optional[RuleNode]:
        binding = self.get_binding(cls)
        if field_name not in binding.fields:
            raise ConfigurationError(
                f"Unknown field '{field_name}' on type '{binding.type_name}'",
                {"type": binding.type_name, "field": field_name}
            )
        return binding.field_rules.get(field_name, {}).get(kind)

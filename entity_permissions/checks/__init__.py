"""
Checks package.

Named predicates referenced from permission rules. Register them with an
EntityDictionary under the name used in rule strings.
"""

from .base import Check, OperationCheck, PredicateCheck, UserCheck
from .prefab import Role

__all__ = ["Check", "OperationCheck", "PredicateCheck", "Role", "UserCheck"]

"""
Cache package.

Provides the request-scoped ExpressionResultCache that collapses repeated
check invocations across every expression tree built in one operation.
"""

from .result_cache import ExpressionResultCache

__all__ = ["ExpressionResultCache"]

"""
Shared utilities for entity permission evaluation.

This package aggregates the ambient building blocks used by the
permission core:

- config: Settings via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus counters for checks and evaluations
- errors: Canonical error types and responses

Do not import from entity_permissions into shared/.
"""

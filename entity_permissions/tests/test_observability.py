"""
Tests for configuration, metrics and error responses.
"""

from prometheus_client import CollectorRegistry

from entity_permissions.expressions.formatting import AnsiTraceFormatter, PlainTraceFormatter, default_formatter
from shared.config import PermissionsConfig, get_config
from shared.errors import CheckExecutionError, ConfigurationError
from shared.metrics import MetricsCollector, get_metrics_collector


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv("PERMISSIONS_TRACE_COLORS", "false")
    monkeypatch.setenv("PERMISSIONS_LOG_LEVEL", "debug")

    config = PermissionsConfig()

    assert config.trace_colors is False
    assert config.log_level == "debug"


def test_default_formatter_follows_config(monkeypatch):
    get_config.cache_clear()
    monkeypatch.setenv("PERMISSIONS_TRACE_COLORS", "false")
    try:
        assert type(default_formatter()) is PlainTraceFormatter

        monkeypatch.delenv("PERMISSIONS_TRACE_COLORS")
        get_config.cache_clear()
        assert isinstance(default_formatter(), AnsiTraceFormatter)
    finally:
        get_config.cache_clear()


def test_metrics_collector_counts():
    registry = CollectorRegistry()
    collector = MetricsCollector(registry=registry)

    collector.record_check_invocation("is owner", "passed")
    collector.record_check_invocation("is owner", "passed")
    collector.record_cache_hit("is owner")
    collector.record_evaluation("read", "failed", 0.01)

    assert registry.get_sample_value(
        "permission_check_invocations_total", {"check": "is owner", "outcome": "passed"}
    ) == 2.0
    assert registry.get_sample_value("permission_check_cache_hits_total", {"check": "is owner"}) == 1.0
    assert registry.get_sample_value(
        "permission_expression_evaluations_total", {"permission": "read", "result": "failed"}
    ) == 1.0


def test_disabled_metrics_record_nothing():
    registry = CollectorRegistry()
    collector = MetricsCollector(registry=registry, enabled=False)

    collector.record_cache_hit("is owner")

    assert registry.get_sample_value("permission_check_cache_hits_total", {"check": "is owner"}) is None


def test_global_collector_is_singleton():
    assert get_metrics_collector() is get_metrics_collector()


def test_error_responses():
    response = CheckExecutionError("is owner", "check raised KeyError").to_response()

    assert response.code == "CHECK_EXECUTION_ERROR"
    assert response.details == {"check": "is owner"}
    assert response.message == "is owner: check raised KeyError"
    assert ConfigurationError().code == "CONFIGURATION_ERROR"

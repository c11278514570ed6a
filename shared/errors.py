"""
Shared error handling for entity permission evaluation.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for permission evaluation."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(AccessLayerException):
    """Invalid permission configuration: unknown check, unbound type, bad rule."""

    def __init__(self, message: str = "Invalid permission configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class RuleParseError(ConfigurationError):
    """A rule expression string could not be parsed."""

    def __init__(self, expression: str, message: str, position: Optional[int] = None):
        details: Dict[str, Any] = {"expression": expression}
        if position is not None:
            details["position"] = position
        super().__init__(f"Cannot parse rule '{expression}': {message}", details)
        self.expression = expression
        self.position = position


class CheckExecutionError(AccessLayerException):
    """A check predicate raised or returned a non-boolean value."""

    def __init__(self, check_name: str, message: str = "Check execution failed", details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details["check"] = check_name
        super().__init__("CHECK_EXECUTION_ERROR", f"{check_name}: {message}", details)
        self.check_name = check_name


class AuthorizationError(AccessLayerException):
    """Authorization-related errors."""

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class ForbiddenAccessError(AuthorizationError):
    """A permission expression evaluated to FAILED."""

    def __init__(self, trace_text: str, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details["expression"] = trace_text
        super().__init__("Forbidden", details)
        self.trace_text = trace_text

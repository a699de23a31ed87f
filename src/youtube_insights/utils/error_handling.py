"""Error handling utilities and custom exceptions.

Provides the pipeline exception hierarchy and structured error logging.
"""
import logging
from typing import Optional, Dict, Any
from fastapi import status

logger = logging.getLogger(__name__)


# Custom Exception Classes
class InsightsException(Exception):
    """Base exception for all pipeline-specific errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "PIPELINE_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(InsightsException):
    """Input validation errors."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **(details or {})},
            status_code=status.HTTP_400_BAD_REQUEST
        )


class ConfigurationError(InsightsException):
    """Missing credentials or malformed settings. Fatal for the whole run."""

    def __init__(self, message: str, setting: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting, **(details or {})},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class InvalidVideoIdError(ConfigurationError):
    """The source identifier is not a YouTube URL or video ID."""

    def __init__(self, source: str):
        super().__init__(
            message=f"Impossible to retrieve YouTube video ID from '{source}'",
            details={"source": source}
        )
        self.error_code = "INVALID_VIDEO_ID"
        self.status_code = status.HTTP_400_BAD_REQUEST


class ExternalServiceError(InsightsException):
    """External service (YouTube, OpenAI, etc.) errors."""

    def __init__(self, message: str, service: str, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"service": service, **(details or {})},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class RateLimitedError(ExternalServiceError):
    """Provider rejected a request because of its rate limit."""

    def __init__(self, message: str, service: str, details: Optional[Dict] = None):
        super().__init__(message=message, service=service, details=details)
        self.error_code = "RATE_LIMITED"
        self.status_code = status.HTTP_429_TOO_MANY_REQUESTS


class LLMResponseParseError(InsightsException):
    """The structured document returned by the LLM could not be parsed."""

    def __init__(self, message: str, response: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="LLM_PARSE_ERROR",
            details={"response": response, **(details or {})},
            status_code=status.HTTP_502_BAD_GATEWAY
        )


class EmbeddingAlignmentError(InsightsException):
    """Returned embeddings do not cover every requested text."""

    def __init__(self, expected: int, received: int, details: Optional[Dict] = None):
        super().__init__(
            message=f"Expected {expected} embeddings but received {received}",
            error_code="EMBEDDING_ALIGNMENT_ERROR",
            details={"expected": expected, "received": received, **(details or {})}
        )


class FlowDefinitionError(InsightsException):
    """Malformed workflow graph or undeclared action."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="FLOW_DEFINITION_ERROR",
            details=details
        )


class TooManyVisitsError(InsightsException):
    """A node was visited more often than the flow's visit cap allows."""

    def __init__(self, stage: str, max_visits: int):
        super().__init__(
            message=f"Node '{stage}' exceeded {max_visits} visits",
            error_code="TOO_MANY_VISITS",
            details={"stage": stage, "max_visits": max_visits}
        )


class NodeExecutionError(InsightsException):
    """A node failed inside a flow traversal."""

    def __init__(self, stage: str, cause: Exception, item_index: Optional[int] = None):
        location = f"'{stage}'" if item_index is None else f"'{stage}' (item {item_index})"
        super().__init__(
            message=f"Node {location} failed: {cause}",
            error_code=getattr(cause, "error_code", "NODE_EXECUTION_ERROR"),
            details={"stage": stage, "item_index": item_index, "cause": type(cause).__name__},
            status_code=getattr(cause, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
        )
        self.stage = stage
        self.item_index = item_index


class ResultSlotError(InsightsException):
    """A fan-out branch wrote to a result slot it does not own, or twice."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(
            message=message,
            error_code="RESULT_SLOT_ERROR",
            details={"index": index}
        )


# Logging Helpers
def log_error(
    error: Exception,
    context: Optional[str] = None,
    extra: Optional[Dict] = None
):
    """
    Log error with context and structured data.

    Args:
        error: The exception to log
        context: Context description (e.g., stage name)
        extra: Additional context data
    """
    log_data = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        **(extra or {})
    }

    if isinstance(error, InsightsException):
        log_data["error_code"] = error.error_code
        log_data["details"] = error.details

    logger.error(
        f"Error in {context}: {str(error)}",
        extra={"log_data": log_data},
        exc_info=error
    )


def log_warning(
    message: str,
    context: Optional[str] = None,
    extra: Optional[Dict] = None
):
    """
    Log warning with structured data.

    Args:
        message: Warning message
        context: Context description
        extra: Additional data
    """
    log_data = {
        "context": context,
        **(extra or {})
    }

    logger.warning(message, extra={"log_data": log_data})

"""
Custom exceptions for the training planner.

This module defines a hierarchy of exceptions that provide clear error
handling throughout the plan generation pipeline. Each exception includes:
- A descriptive message
- An error code for API responses
- HTTP status code mapping
- Optional details for debugging

Only two classes of failure ever leave the pipeline: programmer-error
inputs (``InvalidInputError``, ``InvalidPlanShapeError``) and transport
exhaustion (``AIGenerationFailure``). Everything else is repaired locally.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent error responses."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Plan errors
    INVALID_PLAN_SHAPE = "INVALID_PLAN_SHAPE"
    PLAN_GENERATION_FAILED = "PLAN_GENERATION_FAILED"

    # Response parsing errors
    EMPTY_OR_NULL_RESPONSE = "EMPTY_OR_NULL_RESPONSE"
    UNPARSABLE_RESPONSE = "UNPARSABLE_RESPONSE"

    # LLM errors
    LLM_SERVICE_UNAVAILABLE = "LLM_SERVICE_UNAVAILABLE"
    LLM_RATE_LIMITED = "LLM_RATE_LIMITED"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_API_ERROR = "LLM_API_ERROR"
    AI_GENERATION_FAILED = "AI_GENERATION_FAILED"


class TrainingPlannerError(Exception):
    """
    Base exception for all training planner errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code for API responses
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# ============================================================================
# Input Errors (400)
# ============================================================================

class InvalidInputError(TrainingPlannerError):
    """Raised when a calculator receives an out-of-range numeric input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        if value is not None:
            error_details["value"] = value
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_INPUT,
            status_code=400,
            details=error_details,
        )


class InvalidPlanShapeError(TrainingPlannerError):
    """Raised when the repairer is handed something that is not a JSON object."""

    def __init__(
        self,
        received_type: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        error_details["received_type"] = received_type
        super().__init__(
            message=f"Plan must be a JSON object, got {received_type}",
            code=ErrorCode.INVALID_PLAN_SHAPE,
            status_code=500,
            details=error_details,
        )


# ============================================================================
# Response Parsing Errors
# ============================================================================

class ResponseParseError(TrainingPlannerError):
    """Base class for model-output parsing failures."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNPARSABLE_RESPONSE,
        raw_response: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if raw_response:
            error_details["raw_response_preview"] = raw_response[:500]
        super().__init__(
            message=message,
            code=code,
            status_code=502,
            details=error_details,
        )


class EmptyOrNullResponseError(ResponseParseError):
    """The model explicitly returned no plan (empty text, ``null`` or ``undefined``)."""

    def __init__(
        self,
        raw_response: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message="Model returned an empty or null response",
            code=ErrorCode.EMPTY_OR_NULL_RESPONSE,
            raw_response=raw_response,
            details=details,
        )


class UnparsableResponseError(ResponseParseError):
    """Every parsing strategy failed to recover a plan object."""

    def __init__(
        self,
        raw_response: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message="Could not recover a plan object from the model response",
            code=ErrorCode.UNPARSABLE_RESPONSE,
            raw_response=raw_response,
            details=details,
        )


# ============================================================================
# LLM Service Errors (500/503)
# ============================================================================

class LLMError(TrainingPlannerError):
    """Base class for LLM transport errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_API_ERROR,
        status_code: int = 500,
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.upstream_status = upstream_status
        error_details = details or {}
        if upstream_status is not None:
            error_details["upstream_status"] = upstream_status
        super().__init__(
            message=message,
            code=code,
            status_code=status_code,
            details=error_details,
        )


class LLMServiceUnavailableError(LLMError):
    """Raised on connection failures and upstream 5xx responses."""

    def __init__(
        self,
        message: str = "LLM service is currently unavailable",
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.LLM_SERVICE_UNAVAILABLE,
            status_code=503,
            upstream_status=upstream_status,
            details=details,
        )


class LLMRateLimitError(LLMError):
    """Raised when LLM rate limits are hit."""

    def __init__(
        self,
        retry_after: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if retry_after:
            error_details["retry_after_seconds"] = retry_after
        super().__init__(
            message="LLM service rate limit exceeded",
            code=ErrorCode.LLM_RATE_LIMITED,
            status_code=429,
            upstream_status=429,
            details=error_details,
        )


class LLMTimeoutError(LLMError):
    """Raised when an LLM request times out."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if timeout_seconds:
            error_details["timeout_seconds"] = timeout_seconds
        super().__init__(
            message="LLM request timed out",
            code=ErrorCode.LLM_TIMEOUT,
            status_code=504,
            details=error_details,
        )


class LLMAPIError(LLMError):
    """Raised on upstream 4xx responses that must not be retried."""

    def __init__(
        self,
        message: str,
        upstream_status: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.LLM_API_ERROR,
            status_code=502,
            upstream_status=upstream_status,
            details=details,
        )


class AIGenerationFailure(LLMError):
    """
    Raised when every configured provider exhausted its attempts.

    This is the only failure ``generate_plan`` surfaces to callers.
    ``upstream_status`` holds the last status seen (500 when none was).
    """

    def __init__(
        self,
        upstream_status: Optional[int] = None,
        attempts: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        error_details["attempts"] = attempts
        super().__init__(
            message="Training plan generation failed after all retries",
            code=ErrorCode.AI_GENERATION_FAILED,
            status_code=502,
            upstream_status=upstream_status if upstream_status is not None else 500,
            details=error_details,
        )
        self.attempts = attempts

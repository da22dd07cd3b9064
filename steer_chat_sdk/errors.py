"""
Error taxonomy for the chat client.

This module provides the exceptions raised by the client and the mapping
from HTTP error responses to ServiceError instances.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from .config.constants import CANCELLED_ERROR_TYPE


class ChatClientError(Exception):
    """Base exception for all chat client errors."""


class ServiceError(ChatClientError):
    """
    Error returned by the remote chat-completion service.

    Attributes:
        message: Error message
        status_code: HTTP status code of the failed response
        reason_phrase: HTTP reason phrase (e.g. "Too Many Requests")
        error_code: Service specific error code, if any
        retry_after: Seconds to wait before retry if the service said so
        is_retryable: Whether this error should be retried
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        reason_phrase: str = "",
        error_code: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.error_code = error_code
        self.retry_after = retry_after
        self.is_retryable = False  # set by ErrorMapper


class StreamStateError(ChatClientError, RuntimeError):
    """Raised when a streaming response is used in an invalid state."""


class OperationCancelledError(asyncio.CancelledError):
    """Raised when a call is cancelled through its CancellationToken."""


class ErrorMapper:
    """Maps failed HTTP responses to ServiceError."""

    # Common HTTP status codes that indicate retryable errors
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    @staticmethod
    def get_retry_after(response: httpx.Response) -> Optional[float]:
        """
        Extract retry-after value from the response headers if available.

        Args:
            response: The failed response

        Returns:
            Optional[float]: Seconds to wait before retry, or None
        """
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        return None

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"]
        return {}

    @staticmethod
    def from_response(response: httpx.Response) -> ServiceError:
        """
        Map a failed (already read) response to ServiceError.

        Args:
            response: The failed response with its body buffered

        Returns:
            ServiceError with status and service error details
        """
        error = ErrorMapper._error_body(response)
        detail = error.get("message") or response.text or response.reason_phrase
        code = error.get("code") or error.get("type")

        service_error = ServiceError(
            message=f"Service request failed with status {response.status_code} "
                    f"({response.reason_phrase}): {detail}",
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            error_code=str(code) if code is not None else None,
            retry_after=ErrorMapper.get_retry_after(response),
        )
        service_error.is_retryable = response.status_code in ErrorMapper.RETRYABLE_STATUS_CODES
        return service_error


def get_error_type(error: BaseException) -> str:
    """
    Classify an exception for the ``error.type`` telemetry attribute.

    Cancellation maps to ``"cancelled"``, service errors to their HTTP status
    code and everything else to the qualified exception class name.
    """
    if isinstance(error, asyncio.CancelledError):
        return CANCELLED_ERROR_TYPE
    if isinstance(error, ServiceError):
        return str(error.status_code)

    error_class = type(error)
    if error_class.__module__ == "builtins":
        return error_class.__qualname__
    return f"{error_class.__module__}.{error_class.__qualname__}"

"""
Error handling utilities for the Sleeper MCP Server.

This module provides the typed upstream error hierarchy raised by the Sleeper
client, plus the standardized response helpers and decorators that turn those
errors into consistent failure results for every tool.
"""

import logging
import httpx
from functools import wraps
from typing import Any, Dict, Optional, Callable


logger = logging.getLogger(__name__)


class ErrorType:
    """Standard error type constants."""
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found_error"
    RATE_LIMITED = "rate_limited_error"
    UPSTREAM = "upstream_error"
    TIMEOUT = "timeout_error"
    NETWORK = "network_error"
    CACHE_IO = "cache_io_error"
    DECLINED = "declined"
    UNEXPECTED = "unexpected_error"


class SleeperAPIError(Exception):
    """Base class for failures reported by the Sleeper API."""

    error_type = ErrorType.UPSTREAM

    def __init__(self, message: str, endpoint: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class NotFoundError(SleeperAPIError):
    """The requested remote entity does not exist (HTTP 404)."""

    error_type = ErrorType.NOT_FOUND


class RateLimitedError(SleeperAPIError):
    """The Sleeper API throttled the request (HTTP 429)."""

    error_type = ErrorType.RATE_LIMITED


class UpstreamError(SleeperAPIError):
    """Any other non-success response or transport failure."""

    error_type = ErrorType.UPSTREAM


class CacheIOError(Exception):
    """Durable snapshot read/write/parse failure.

    Raised only inside the snapshot store and always absorbed there.
    """


def create_error_response(
    error_message: str,
    error_type: str = ErrorType.UNEXPECTED,
    data: Optional[Dict[str, Any]] = None,
    success: bool = False
) -> Dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        error_message: Human-readable error description
        error_type: Type of error (see ErrorType constants)
        data: Tool-specific data to include in response
        success: Whether the operation was successful

    Returns:
        Standardized error response dictionary
    """
    response = {
        "success": success,
        "error": error_message,
        "error_type": error_type
    }

    if data:
        response.update(data)

    if not success:
        if error_type == ErrorType.DECLINED:
            logger.info(f"Declined: {error_message}")
        else:
            logger.error(f"Error ({error_type}): {error_message}")

    return response


def create_success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: Tool-specific data to include in response

    Returns:
        Standardized success response dictionary
    """
    response = {
        "success": True,
        "error": None,
        "error_type": None
    }
    response.update(data)
    return response


def handle_validation_error(
    error_message: str,
    default_data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Create a standardized validation error response.

    Args:
        error_message: Validation error message
        default_data: Default data structure to return

    Returns:
        Standardized validation error response
    """
    return create_error_response(
        error_message,
        ErrorType.VALIDATION,
        default_data or {}
    )


def handle_http_errors(
    default_data: Optional[Dict[str, Any]] = None,
    operation_name: str = "operation"
) -> Callable:
    """
    Decorator for standardizing Sleeper API error handling.

    Typed client errors keep their own error type; raw httpx errors that slip
    past the client are mapped the same way the client would map them.

    Args:
        default_data: Default data structure to return on errors
        operation_name: Name of the operation for error messages

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Dict[str, Any]:
            try:
                return await func(*args, **kwargs)

            except NotFoundError as e:
                return create_error_response(
                    f"Not found while {operation_name}: {e}",
                    ErrorType.NOT_FOUND,
                    default_data or {}
                )

            except RateLimitedError as e:
                return create_error_response(
                    f"Rate limit exceeded while {operation_name}: {e}",
                    ErrorType.RATE_LIMITED,
                    default_data or {}
                )

            except SleeperAPIError as e:
                return create_error_response(
                    f"Sleeper API error while {operation_name}: {e}",
                    e.error_type,
                    default_data or {}
                )

            except httpx.TimeoutException:
                return create_error_response(
                    f"Request timed out while {operation_name}",
                    ErrorType.TIMEOUT,
                    default_data or {}
                )

            except httpx.HTTPStatusError as e:
                return create_error_response(
                    f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
                    ErrorType.UPSTREAM,
                    default_data or {}
                )

            except httpx.NetworkError as e:
                return create_error_response(
                    f"Network error while {operation_name}: {str(e)}",
                    ErrorType.NETWORK,
                    default_data or {}
                )

            except Exception as e:
                logger.exception(f"Unhandled failure during {operation_name}")
                return create_error_response(
                    f"Unexpected error during {operation_name}: {str(e)}",
                    ErrorType.UNEXPECTED,
                    default_data or {}
                )

        return wrapper
    return decorator

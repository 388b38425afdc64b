"""
Standardized error handling utilities for API endpoints.

Domain errors raised by the PTO services are HTTPException subclasses, so they
reach the client unchanged through ``handle_endpoint_errors``.
"""
from functools import wraps
from typing import Callable, Any, Optional, List, Dict
from decimal import Decimal
from uuid import UUID
from fastapi import HTTPException, status
import logging

from ptoflow.core.config import settings

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    """Malformed or out-of-range input. Raised before any write."""

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation error"):
        self.errors = errors
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": message, "errors": errors},
        )

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message=message)


class InsufficientBalanceError(HTTPException):
    def __init__(self, available: Decimal, requested: Decimal):
        self.available = available
        self.requested = requested
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": (
                    f"Insufficient PTO balance. Available: {available} days, "
                    f"Required: {requested} days."
                ),
                "available": float(available),
                "requested": float(requested),
            },
        )


class AuthorizationError(HTTPException):
    def __init__(self, message: str = "You are not authorized to perform this action."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)


class InvalidStateTransitionError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=message)


class PersistenceError(HTTPException):
    """Transaction failure. The session has already been rolled back."""

    def __init__(self, operation: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {operation}. Please try again.",
        )


def parse_uuid(uuid_string: str, entity_name: str = "ID") -> UUID:
    """
    Parse a UUID string and raise a standardized error if invalid.

    Args:
        uuid_string: String to parse as UUID
        entity_name: Name of the entity (for error message)

    Returns:
        Parsed UUID

    Raises:
        HTTPException: If UUID is invalid
    """
    try:
        return UUID(uuid_string)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {entity_name.lower()}: '{uuid_string}'. Must be a valid UUID.",
        )


def handle_endpoint_errors(
    operation_name: Optional[str] = None,
    log_error: bool = True,
):
    """
    Decorator to standardize error handling across all endpoints.

    Catches unexpected exceptions, logs them, and returns appropriate HTTP responses.

    Args:
        operation_name: Name of the operation (for logging)
        log_error: Whether to log errors (default: True)

    Usage:
        @handle_endpoint_errors(operation_name="submit_leave_request")
        async def submit_leave_request_endpoint(...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            op_name = operation_name or func.__name__
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                # Domain errors and HTTP errors are already properly formatted
                raise
            except ValueError as e:
                if log_error:
                    logger.warning(f"Value error in {op_name}: {str(e)}")
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid input: {str(e)}",
                )
            except Exception as e:
                error_detail = str(e)
                error_type = type(e).__name__

                if log_error:
                    logger.error(
                        f"Unexpected error in {op_name}",
                        exc_info=True,
                        extra={
                            "operation": op_name,
                            "error": error_detail,
                            "error_type": error_type
                        }
                    )

                is_dev = settings.ENVIRONMENT.lower() not in ["prod", "production"]

                if is_dev:
                    detail_msg = f"Error in {op_name}: {error_type}: {error_detail}"
                else:
                    detail_msg = "An unexpected error occurred while processing your request. Please try again later."

                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=detail_msg,
                )
        return wrapper
    return decorator

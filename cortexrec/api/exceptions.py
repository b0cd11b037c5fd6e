"""Custom exceptions for the CortexRec API.

Defines specific exception types for better error handling and reporting.
"""

from typing import Any, Dict, Optional


class CortexRecException(Exception):
    """Base exception for CortexRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class UserNotFoundError(CortexRecException):
    """Raised when a user id is not in the interaction store."""

    def __init__(self, user_id: int):
        super().__init__(
            message=f"User {user_id} not found.",
            status_code=404,
            details={"user_id": user_id},
        )


class ItemNotFoundError(CortexRecException):
    """Raised when an item id is not in the catalog."""

    def __init__(self, item_id: int):
        super().__init__(
            message=f"Item {item_id} not found.",
            status_code=404,
            details={"item_id": item_id},
        )


class RecommendationError(CortexRecException):
    """Raised when recommendation generation fails unexpectedly."""

    def __init__(self, operation: str, error: Exception):
        message = f"Failed to {operation}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "operation": operation,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class PermissionDeniedError(CortexRecException):
    """Raised when a user's role does not grant the requested action."""

    def __init__(self, user_id: int, capability: str):
        super().__init__(
            message=f"User {user_id} is not allowed to {capability.replace('_', ' ')}.",
            status_code=403,
            details={"user_id": user_id, "capability": capability},
        )

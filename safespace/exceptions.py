"""
Custom exceptions for the Safespace application.
"""

from typing import Any


class SafespaceError(Exception):
    """Base exception for Safespace application."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SafespaceError):
    """Raised when input is malformed before any storage call."""
    pass


# === Lookup Exceptions ===

class NotFoundError(SafespaceError):
    """Raised when a referenced record does not exist."""
    pass


class RequestNotFoundError(NotFoundError):
    """Raised when a chat request is not found."""

    def __init__(self, request_id: Any):
        super().__init__(
            message=f"Chat request not found: {request_id}",
            details={"request_id": str(request_id)}
        )


class SpecialistNotFoundError(NotFoundError):
    """Raised when a specialist is not found."""

    def __init__(self, identifier: str | int):
        super().__init__(
            message=f"Specialist not found: {identifier}",
            details={"identifier": identifier}
        )


# === Request State Exceptions ===

class AlreadyClaimedError(SafespaceError):
    """Raised when accept loses the race: the request is no longer pending."""

    def __init__(self, request_id: Any, current_status: str):
        super().__init__(
            message=f"Chat request already claimed: {request_id}",
            details={
                "request_id": str(request_id),
                "current_status": current_status,
            }
        )


class InvalidTransitionError(SafespaceError):
    """Raised when a request is not in the state the operation expects."""

    def __init__(self, request_id: Any, current_status: str, expected_status: str):
        super().__init__(
            message=f"Invalid request state: expected {expected_status}, got {current_status}",
            details={
                "request_id": str(request_id),
                "current_status": current_status,
                "expected_status": expected_status,
            }
        )


# === Access Exceptions ===

class AuthenticationError(SafespaceError):
    """Raised when the bearer token is missing, malformed or expired."""
    pass


class PermissionDeniedError(SafespaceError):
    """Raised when an authenticated caller may not perform the operation."""
    pass


class NotSpecialistError(PermissionDeniedError):
    """Raised when the caller has no (verified) directory entry."""

    def __init__(self, user_id: Any):
        super().__init__(
            message="Only specialists can perform this action",
            details={"user_id": str(user_id)}
        )


class NotRequestOwnerError(PermissionDeniedError):
    """Raised when a specialist acts on a request accepted by someone else."""

    def __init__(self, request_id: Any, specialist_id: int):
        super().__init__(
            message=f"Chat request {request_id} was accepted by another specialist",
            details={"request_id": str(request_id), "specialist_id": specialist_id}
        )


# === Infrastructure Exceptions ===

class PersistenceError(SafespaceError):
    """Raised when the database rejects or fails an operation."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(
            message=message,
            details={"original_error": str(original_error) if original_error else None}
        )
        self.original_error = original_error


class StorageError(SafespaceError):
    """Raised when the object store request fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            message=message,
            details={"status_code": status_code}
        )
        self.status_code = status_code

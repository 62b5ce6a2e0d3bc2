"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class CivicSenseException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(CivicSenseException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not_found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class ConflictError(CivicSenseException):
    """Raised when a request conflicts with current state."""

    def __init__(self, message: str = "conflict", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details, status_code=409)


class InvalidStatusTransitionError(ConflictError):
    """Raised when a report status change is not allowed by the workflow."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move report from {current} to {requested}",
            details={"from": current, "to": requested},
        )
        self.error_code = "INVALID_STATUS_TRANSITION"


class RateLimitExceeded(CivicSenseException):
    """Raised at the HTTP edge when a submitter is denied by the rate limiter."""

    def __init__(self, *, reason: str, reset_at: str | None = None, blocked_until: str | None = None):
        headers: Dict[str, str] = {}
        if reset_at:
            headers["X-RateLimit-Reset"] = reset_at
        super().__init__(
            "rate_limit_exceeded",
            error_code="RATE_LIMIT",
            details={"reason": reason, "reset_at": reset_at, "blocked_until": blocked_until},
            status_code=429,
            headers=headers or None,
        )


# ===== AUTHENTICATION/AUTHORIZATION EXCEPTIONS =====


class AuthenticationException(CivicSenseException):
    """Base exception for authentication errors."""


class InsufficientPermissionsError(AuthenticationException):
    """Raised when user lacks required permissions."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, error_code="INSUFFICIENT_PERMISSIONS", status_code=403)


# ===== DATABASE EXCEPTIONS =====


class DatabaseException(CivicSenseException):
    """Base exception for database errors."""


class ReportPersistenceError(DatabaseException):
    """Raised when a report mutation could not be written."""

    def __init__(self, message: str = "Failed to persist report", *, report_id: Optional[str] = None):
        details = {"report_id": report_id} if report_id else {}
        super().__init__(message, error_code="REPORT_PERSISTENCE_ERROR", details=details, status_code=500)

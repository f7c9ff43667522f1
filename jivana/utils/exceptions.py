"""
Custom Exception Hierarchy

Each error carries a code, a message, optional details and the HTTP
status the API layer answers with.
"""
from typing import Optional, Dict, Any


class JivanaError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class InvalidUploadError(JivanaError):
    """Malformed upload input: missing file, bad date, bad results."""

    status_code = 400

    def __init__(self, message: str, field: str = "unknown", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="INVALID_UPLOAD",
            details={"field": field, **(details or {})}
        )
        self.field = field


def _format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):g}MB"
    if size >= 1024:
        return f"{size / 1024:g}KB"
    return f"{size} bytes"


class FileTooLargeError(InvalidUploadError):
    """Uploaded file exceeds the configured size cap."""

    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(
            message=f"File too large (max {_format_size(limit)})",
            field="file",
            details={"size": size, "limit": limit}
        )
        self.code = "FILE_TOO_LARGE"


class StorageError(JivanaError):
    """Object store failures."""

    status_code = 502

    def __init__(self, message: str, key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            details={"key": key, **(details or {})}
        )
        self.key = key


class RecordStoreError(JivanaError):
    """Relational store failures."""

    status_code = 500

    def __init__(self, message: str, operation: str = "unknown", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="RECORD_STORE_ERROR",
            details={"operation": operation, **(details or {})}
        )
        self.operation = operation


class AnalysisError(JivanaError):
    """Analysis service failures. Never leaves the analysis adapter."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="ANALYSIS_ERROR", details=details)


class NotFoundError(JivanaError):
    """Unknown identifier or access token."""

    status_code = 404

    def __init__(self, message: str, resource: str = "unknown", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="NOT_FOUND",
            details={"resource": resource, **(details or {})}
        )
        self.resource = resource


class AuthenticationError(JivanaError):
    """Missing, invalid or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message=message, code="AUTHENTICATION_ERROR")


class ConflictError(JivanaError):
    """Write rejected because the state already exists."""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="CONFLICT", details=details)

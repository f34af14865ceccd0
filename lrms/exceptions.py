"""Custom exceptions for the application"""
from typing import Optional, Dict, Any


class AppException(Exception):
    """Base exception for the application"""
    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NOT_FOUND", status_code=404, details=details)


class PersistenceError(AppException):
    """A write to the land record store failed"""
    def __init__(
        self,
        message: str = "Failed to persist record",
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.table = table
        details = dict(details or {})
        if table:
            details.setdefault("table", table)
        super().__init__(message=message, code="PERSISTENCE_ERROR", status_code=500, details=details)

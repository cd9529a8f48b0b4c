"""
Error taxonomy shared by every function and the mapping to HTTP status codes.
"""

import logging
from typing import Optional, Tuple
from postgrest.exceptions import APIError as PostgrestAPIError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base error carrying an HTTP status code and optional machine code."""

    def __init__(self, message: str, status_code: int = 400, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthenticationError(APIError):
    """Raised when the caller cannot be authenticated."""

    def __init__(self, message: str = "ไม่ได้รับอนุญาต"):
        super().__init__(message, 401, "UNAUTHORIZED")


class AuthorizationError(APIError):
    """Raised when the caller's role level is too low."""

    def __init__(self, message: str = "ไม่มีสิทธิ์เข้าถึง"):
        super().__init__(message, 403, "FORBIDDEN")


class NotFoundError(APIError):
    """Raised when a resource is not found."""

    def __init__(self, message: str = "ไม่พบข้อมูล"):
        super().__init__(message, 404, "NOT_FOUND")


class ValidationError(APIError):
    """Raised when request input is invalid."""

    def __init__(self, message: str):
        super().__init__(message, 400, "VALIDATION_ERROR")


class ConflictError(APIError):
    """Raised when a write collides with existing data."""

    def __init__(self, message: str = "ข้อมูลซ้ำ"):
        super().__init__(message, 409, "CONFLICT")


class DatabaseError(APIError):
    """Raised when a database call fails."""

    def __init__(self, message: str = "เกิดข้อผิดพลาดในการเข้าถึงข้อมูล"):
        super().__init__(message, 500, "DATABASE_ERROR")


def _postgrest_message(err: Exception) -> str:
    if isinstance(err, PostgrestAPIError):
        return err.message or str(err)
    return str(err)


def is_unique_violation(err: Exception) -> bool:
    """Check whether a PostgREST error is a unique constraint violation."""
    if isinstance(err, PostgrestAPIError) and err.code == "23505":
        return True
    return "duplicate key" in _postgrest_message(err)


def handle_error(err: Exception) -> Tuple[str, int, Optional[str]]:
    """
    Map any exception to an HTTP error.

    Args:
        err: The exception raised by a handler or service

    Returns:
        Tuple of (message, status_code, code)
    """
    if isinstance(err, APIError):
        return err.message, err.status_code, err.code

    message = _postgrest_message(err)

    if "JWT" in message:
        return "Session หมดอายุกรุณาเข้าใช้งานใหม่", 401, None

    if is_unique_violation(err):
        return "ข้อมูลซ้ำ", 409, None

    if any(marker in message for marker in (
        "foreign key", "is still referenced", "FK_", "fkey"
    )):
        return "มีข้อมูลอ้างอิงที่ใช้งานอยู่ ไม่สามารถลบได้", 409, "FOREIGN_KEY_VIOLATION"

    if "null value in column" in message or "violates not-null constraint" in message:
        return "กรุณากรอกข้อมูลที่จำเป็นให้ครบ", 400, "VALIDATION_ERROR"

    return message or "เกิดข้อผิดพลาดที่ไม่ทราบสาเหตุ", 500, None

# Shared utilities for the field-service functions
from .config import Settings, ConfigurationError, get_settings
from .errors import (
    APIError, AuthenticationError, AuthorizationError, NotFoundError,
    ValidationError, ConflictError, DatabaseError, handle_error
)
from .auth import authenticate, AuthContext
from .supabase_client import get_supabase_client
from .responses import (
    success_response, paginated_response, created_response,
    error_response, error_from_exception, calculate_pagination
)
from .permissions import require_min_level, get_employee_level, is_admin

__all__ = [
    "Settings",
    "ConfigurationError",
    "get_settings",
    "APIError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",
    "handle_error",
    "authenticate",
    "AuthContext",
    "get_supabase_client",
    "success_response",
    "paginated_response",
    "created_response",
    "error_response",
    "error_from_exception",
    "calculate_pagination",
    "require_min_level",
    "get_employee_level",
    "is_admin",
]

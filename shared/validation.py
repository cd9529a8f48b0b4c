"""
Request validation utilities.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple
import azure.functions as func
from .errors import ValidationError

UUID_REGEX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_uuid(value: Optional[str]) -> bool:
    """Check whether a string looks like a UUID."""
    return bool(value) and bool(UUID_REGEX.match(value))


def validate_uuid(value: Optional[str], field_name: str = "ID") -> None:
    """
    Validate UUID format.

    Raises:
        ValidationError: If the value is not a UUID
    """
    if not is_uuid(value):
        raise ValidationError(f"{field_name} ไม่ถูกต้อง")


def validate_required(value: Any, field_name: str) -> None:
    """
    Validate that a field is present.

    Raises:
        ValidationError: If the value is None or an empty string
    """
    if value is None or value == "":
        raise ValidationError(f"{field_name} จำเป็นต้องระบุ")


def validate_date_format(value: Optional[str], field_name: str = "date") -> Optional[str]:
    """
    Validate a YYYY-MM-DD date string.

    Args:
        value: Date string or None
        field_name: Name used in the error message

    Returns:
        The value unchanged, or None when not provided

    Raises:
        ValidationError: If the format or the date itself is invalid
    """
    if not value:
        return None

    if not DATE_REGEX.match(value):
        raise ValidationError(f"Invalid {field_name} format. Expected YYYY-MM-DD, got: {value}")

    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValidationError(f"Invalid {field_name}. Not a valid date: {value}")

    return value


def parse_request_body(req: func.HttpRequest) -> Dict[str, Any]:
    """
    Parse a JSON object body.

    Raises:
        ValidationError: If the body is missing, not JSON, or not an object
    """
    try:
        body = req.get_json()
    except ValueError:
        raise ValidationError("Invalid JSON body")

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    return body


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


def parse_pagination_params(
    req: func.HttpRequest,
    default_limit: int = 50,
    max_limit: int = 100
) -> Tuple[int, int]:
    """
    Parse page/limit query parameters.

    Returns:
        Tuple of (page, limit) with page >= 1 and 1 <= limit <= max_limit
    """
    page = max(1, _parse_int(req.params.get("page"), 1))
    limit = min(max_limit, max(1, _parse_int(req.params.get("limit"), default_limit)))
    return page, limit


def parse_bool_param(value: Optional[str]) -> Optional[bool]:
    """Parse "true"/"false" query values; anything else is None."""
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    return None


def sanitize_data(data: Any, allowed_fields: Iterable[str]) -> Dict[str, Any]:
    """Keep only allowed keys whose value is not None."""
    if not isinstance(data, dict):
        return {}
    allowed = set(allowed_fields)
    return {key: value for key, value in data.items() if key in allowed and value is not None}


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _quote_filter_value(value: str) -> str:
    # PostgREST reserves , . : ( ) inside logic trees; double quotes make the value literal
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_ilike_filter(columns: Iterable[str], term: str) -> str:
    """
    Build an or_() filter matching `term` as a case-insensitive substring of any column.

    The term is LIKE-escaped and quoted, so user text can neither add wildcards
    nor extend the filter expression.

    Args:
        columns: Column names (trusted identifiers)
        term: Free text from the caller

    Returns:
        Filter string such as 'name_th.ilike."%foo%",name_en.ilike."%foo%"'
    """
    pattern = _quote_filter_value(f"%{escape_like(term)}%")
    return ",".join(f"{column}.ilike.{pattern}" for column in columns)

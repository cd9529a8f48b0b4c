"""
Standard HTTP response helpers for the uniform JSON envelope.

Success bodies look like {"data": ...} (plus "pagination" for paged lists),
error bodies like {"error": "...", "code": "..."}.
"""

import json
import math
import logging
import dataclasses
from typing import Any, Optional, Dict, List, Union
import azure.functions as func
from .errors import handle_error

logger = logging.getLogger(__name__)


def json_serialize(obj: Any) -> str:
    """
    Serialize object to JSON, handling datetime, UUID and dataclass types.
    """
    import datetime
    import uuid

    def default_serializer(o):
        if isinstance(o, (datetime.datetime, datetime.date)):
            return o.isoformat()
        if isinstance(o, uuid.UUID):
            return str(o)
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return dataclasses.asdict(o)
        raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")

    return json.dumps(obj, default=default_serializer, ensure_ascii=False)


def calculate_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Build pagination info for a paged list.

    Args:
        page: Current page (1-based)
        limit: Page size
        total: Total number of rows

    Returns:
        dict with page, limit, total, totalPages, hasNext, hasPrevious
    """
    total_pages = math.ceil(total / limit) if limit else 0

    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrevious": page > 1,
    }


def _json_response(body: Dict, status_code: int, headers: Optional[Dict[str, str]] = None) -> func.HttpResponse:
    response_headers = {
        "Content-Type": "application/json",
        **(headers or {})
    }

    return func.HttpResponse(
        json_serialize(body),
        status_code=status_code,
        mimetype="application/json",
        headers=response_headers
    )


def success_response(
    data: Union[Dict, List, Any],
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None
) -> func.HttpResponse:
    """
    Create a successful JSON response.

    Args:
        data: Response data to serialize under "data"
        status_code: HTTP status code (default: 200)
        headers: Optional additional headers

    Returns:
        Azure Functions HttpResponse
    """
    return _json_response({"data": data}, status_code, headers)


def paginated_response(
    data: List[Any],
    pagination: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None
) -> func.HttpResponse:
    """
    Create a successful response carrying pagination info.

    Args:
        data: Page of rows
        pagination: Output of calculate_pagination()
        extra: Additional top-level keys (e.g. unread_count)

    Returns:
        Azure Functions HttpResponse with 200 status
    """
    body = {"data": data, "pagination": pagination}
    if extra:
        body.update(extra)
    return _json_response(body, 200)


def created_response(
    data: Union[Dict, List, Any],
    headers: Optional[Dict[str, str]] = None
) -> func.HttpResponse:
    """Create a 201 Created response."""
    return success_response(data, status_code=201, headers=headers)


def error_response(
    message: str,
    status_code: int = 400,
    code: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None
) -> func.HttpResponse:
    """
    Create an error JSON response.

    Args:
        message: Error message
        status_code: HTTP status code (default: 400)
        code: Optional machine-readable error code
        headers: Optional additional headers

    Returns:
        Azure Functions HttpResponse with error details
    """
    error_body = {"error": message}

    if code:
        error_body["code"] = code

    return _json_response(error_body, status_code, headers)


def error_from_exception(err: Exception) -> func.HttpResponse:
    """Translate an exception into an error response via handle_error()."""
    message, status_code, code = handle_error(err)
    if status_code >= 500:
        logger.error(f"Request failed: {message}")
    return error_response(message, status_code, code)


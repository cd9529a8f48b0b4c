"""
HTTP route handlers for notification endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.errors import ValidationError
from shared.responses import paginated_response, success_response, error_from_exception
from shared.validation import parse_pagination_params, parse_bool_param, validate_uuid
from .service import NotificationService

logger = logging.getLogger(__name__)


async def list_notifications(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/notifications?page=1&limit=20&unread_only=true&search=<text>
    List the caller's notifications.
    """
    try:
        auth = await authenticate(req)

        page, limit = parse_pagination_params(req, default_limit=20)
        unread_only = parse_bool_param(req.params.get("unread_only")) or False
        search = (req.params.get("search") or "").strip() or None

        service = NotificationService()
        result = await service.list_for_recipient(
            auth.employee["id"],
            page=page,
            limit=limit,
            unread_only=unread_only,
            search=search,
        )

        return paginated_response(
            result["data"],
            result["pagination"],
            extra={"unread_count": result["unread_count"]}
        )

    except Exception as e:
        return error_from_exception(e)


async def mark_notifications_read(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT|PATCH /api/notifications/read
    Body: {"notification_ids": [...]} or {} to mark everything read.
    """
    try:
        auth = await authenticate(req)

        body = req.get_body()
        notification_ids = None
        if body:
            try:
                payload = req.get_json()
            except ValueError:
                raise ValidationError("Invalid JSON body")
            notification_ids = payload.get("notification_ids") if isinstance(payload, dict) else None

        if notification_ids is not None:
            if not isinstance(notification_ids, list):
                raise ValidationError("notification_ids ต้องเป็น array")
            for notification_id in notification_ids:
                validate_uuid(notification_id, "Notification ID")

        service = NotificationService()
        result = await service.mark_as_read(auth.employee["id"], notification_ids)

        return success_response(result)

    except Exception as e:
        return error_from_exception(e)


def register_notification_routes(app: func.FunctionApp):
    """Register notification routes with the function app."""
    app.route(route="notifications", methods=["GET"])(list_notifications)
    app.route(route="notifications/read", methods=["PUT", "PATCH"])(mark_notifications_read)

"""
HTTP route handlers for announcement endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.permissions import require_min_level
from shared.responses import success_response, error_from_exception
from .service import AnnouncementService

logger = logging.getLogger(__name__)


async def list_announcements(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/announcements
    List announcements with photos and files.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        service = AnnouncementService()
        announcements = await service.list_announcements()

        return success_response(announcements)

    except Exception as e:
        return error_from_exception(e)


def register_announcement_routes(app: func.FunctionApp):
    """Register announcement routes with the function app."""
    app.route(route="announcements", methods=["GET"])(list_announcements)

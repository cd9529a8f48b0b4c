"""
HTTP route handlers for prize endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.permissions import require_min_level
from shared.responses import (
    success_response, created_response, paginated_response, error_from_exception
)
from shared.validation import (
    parse_request_body, parse_pagination_params, validate_uuid, validate_required
)
from .service import PrizeService

logger = logging.getLogger(__name__)


async def list_prizes(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/prizes?page=1&limit=50
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        page, limit = parse_pagination_params(req)

        service = PrizeService()
        prizes, pagination = await service.list_prizes(page, limit)

        return paginated_response(prizes, pagination)

    except Exception as e:
        return error_from_exception(e)


async def list_prize_winners(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/prizes/winners?user_id=<uuid>&prize_id=<uuid>
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        page, limit = parse_pagination_params(req)
        user_id = req.params.get("user_id")
        prize_id = req.params.get("prize_id")
        if user_id:
            validate_uuid(user_id, "User ID")
        if prize_id:
            validate_uuid(prize_id, "Prize ID")

        service = PrizeService()
        winners, pagination = await service.list_winners(page, limit, user_id, prize_id)

        return paginated_response(winners, pagination)

    except Exception as e:
        return error_from_exception(e)


async def get_prize(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/prizes/{prize_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        prize_id = req.route_params.get("prize_id")
        validate_uuid(prize_id, "Prize ID")

        service = PrizeService()
        prize = await service.get_prize(prize_id)

        return success_response(prize)

    except Exception as e:
        return error_from_exception(e)


async def create_prize(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/prizes
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        body = parse_request_body(req)

        service = PrizeService()
        prize = await service.create_prize(body)

        return created_response(prize)

    except Exception as e:
        return error_from_exception(e)


async def update_prize(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT /api/prizes/{prize_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        prize_id = req.route_params.get("prize_id")
        validate_uuid(prize_id, "Prize ID")
        body = parse_request_body(req)

        service = PrizeService()
        prize = await service.update_prize(prize_id, body)

        return success_response(prize)

    except Exception as e:
        return error_from_exception(e)


async def delete_prize(req: func.HttpRequest) -> func.HttpResponse:
    """
    DELETE /api/prizes/{prize_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        prize_id = req.route_params.get("prize_id")
        validate_uuid(prize_id, "Prize ID")

        service = PrizeService()
        await service.delete_prize(prize_id)

        return success_response({"message": "ลบรางวัลสำเร็จ"})

    except Exception as e:
        return error_from_exception(e)


async def assign_prize(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/prizes/{prize_id}/assign
    Body: {"user_id": "<employee uuid>"}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        prize_id = req.route_params.get("prize_id")
        validate_uuid(prize_id, "Prize ID")
        body = parse_request_body(req)
        validate_required(body.get("user_id"), "User ID")
        validate_uuid(body["user_id"], "User ID")

        service = PrizeService()
        assignment = await service.assign_prize(prize_id, body["user_id"])

        return created_response(assignment)

    except Exception as e:
        return error_from_exception(e)


async def unassign_prize(req: func.HttpRequest) -> func.HttpResponse:
    """
    DELETE /api/prizes/{prize_id}/unassign/{user_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        prize_id = req.route_params.get("prize_id")
        user_id = req.route_params.get("user_id")
        validate_uuid(prize_id, "Prize ID")
        validate_uuid(user_id, "User ID")

        service = PrizeService()
        await service.unassign_prize(prize_id, user_id)

        return success_response({"message": "ยกเลิกการมอบรางวัลสำเร็จ"})

    except Exception as e:
        return error_from_exception(e)


def register_prize_routes(app: func.FunctionApp):
    """Register all prize routes with the function app."""
    app.route(route="prizes", methods=["GET"])(list_prizes)
    app.route(route="prizes", methods=["POST"])(create_prize)
    app.route(route="prizes/winners", methods=["GET"])(list_prize_winners)
    app.route(route="prizes/{prize_id}", methods=["GET"])(get_prize)
    app.route(route="prizes/{prize_id}", methods=["PUT"])(update_prize)
    app.route(route="prizes/{prize_id}", methods=["DELETE"])(delete_prize)
    app.route(route="prizes/{prize_id}/assign", methods=["POST"])(assign_prize)
    app.route(route="prizes/{prize_id}/unassign/{user_id}", methods=["DELETE"])(unassign_prize)

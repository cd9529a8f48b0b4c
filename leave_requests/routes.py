"""
HTTP route handlers for leave request endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.permissions import require_min_level
from shared.responses import (
    success_response, created_response, paginated_response, error_from_exception
)
from shared.validation import (
    parse_request_body, parse_pagination_params, validate_uuid,
    validate_required, validate_date_format
)
from .service import LeaveRequestService

logger = logging.getLogger(__name__)


async def list_leave_requests(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/leave-requests
    Query: page, limit, status, leave_type_id, employee_id, start_date, end_date
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        page, limit = parse_pagination_params(req)
        filters = {
            "status": req.params.get("status"),
            "leave_type_id": req.params.get("leave_type_id"),
            "employee_id": req.params.get("employee_id"),
            "start_date": validate_date_format(req.params.get("start_date"), "start_date"),
            "end_date": validate_date_format(req.params.get("end_date"), "end_date"),
        }

        service = LeaveRequestService()
        leave_requests, pagination = await service.list_leave_requests(page, limit, filters)

        return paginated_response(leave_requests, pagination)

    except Exception as e:
        return error_from_exception(e)


async def get_leave_request(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/leave-requests/{leave_request_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        leave_request_id = req.route_params.get("leave_request_id")
        validate_uuid(leave_request_id, "Leave Request ID")

        service = LeaveRequestService()
        leave_request = await service.get_leave_request(leave_request_id)

        return success_response(leave_request)

    except Exception as e:
        return error_from_exception(e)


async def create_leave_request(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/leave-requests
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        body = parse_request_body(req)
        validate_required(body.get("employee_id"), "Employee ID")
        validate_required(body.get("leave_type_id"), "Leave Type ID")
        validate_required(body.get("start_date"), "Start Date")
        validate_required(body.get("end_date"), "End Date")
        validate_date_format(body["start_date"], "start_date")
        validate_date_format(body["end_date"], "end_date")

        service = LeaveRequestService()
        leave_request = await service.create_leave_request(body)

        return created_response(leave_request)

    except Exception as e:
        return error_from_exception(e)


async def update_leave_request(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT /api/leave-requests/{leave_request_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        leave_request_id = req.route_params.get("leave_request_id")
        validate_uuid(leave_request_id, "Leave Request ID")
        body = parse_request_body(req)

        service = LeaveRequestService()
        leave_request = await service.update_leave_request(leave_request_id, body)

        return success_response(leave_request)

    except Exception as e:
        return error_from_exception(e)


async def delete_leave_request(req: func.HttpRequest) -> func.HttpResponse:
    """
    DELETE /api/leave-requests/{leave_request_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        leave_request_id = req.route_params.get("leave_request_id")
        validate_uuid(leave_request_id, "Leave Request ID")

        service = LeaveRequestService()
        await service.delete_leave_request(leave_request_id)

        return success_response({"message": "ลบคำขอลาสำเร็จ"})

    except Exception as e:
        return error_from_exception(e)


async def approve_leave_request(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/leave-requests/{leave_request_id}/approve
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        leave_request_id = req.route_params.get("leave_request_id")
        validate_uuid(leave_request_id, "Leave Request ID")

        service = LeaveRequestService()
        leave_request = await service.approve(leave_request_id, auth.employee["id"])

        return success_response(leave_request)

    except Exception as e:
        return error_from_exception(e)


async def reject_leave_request(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/leave-requests/{leave_request_id}/reject
    Body (optional): {"reason": "..."}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        leave_request_id = req.route_params.get("leave_request_id")
        validate_uuid(leave_request_id, "Leave Request ID")
        body = parse_request_body(req) if req.get_body() else {}

        service = LeaveRequestService()
        leave_request = await service.reject(leave_request_id, auth.employee["id"], body.get("reason"))

        return success_response(leave_request)

    except Exception as e:
        return error_from_exception(e)


async def cancel_leave_request(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/leave-requests/{leave_request_id}/cancel
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        leave_request_id = req.route_params.get("leave_request_id")
        validate_uuid(leave_request_id, "Leave Request ID")

        service = LeaveRequestService()
        leave_request = await service.cancel(leave_request_id)

        return success_response(leave_request)

    except Exception as e:
        return error_from_exception(e)


def register_leave_request_routes(app: func.FunctionApp):
    """Register all leave request routes with the function app."""
    app.route(route="leave-requests", methods=["GET"])(list_leave_requests)
    app.route(route="leave-requests", methods=["POST"])(create_leave_request)
    app.route(route="leave-requests/{leave_request_id}", methods=["GET"])(get_leave_request)
    app.route(route="leave-requests/{leave_request_id}", methods=["PUT"])(update_leave_request)
    app.route(route="leave-requests/{leave_request_id}", methods=["DELETE"])(delete_leave_request)
    app.route(route="leave-requests/{leave_request_id}/approve", methods=["POST"])(approve_leave_request)
    app.route(route="leave-requests/{leave_request_id}/reject", methods=["POST"])(reject_leave_request)
    app.route(route="leave-requests/{leave_request_id}/cancel", methods=["POST"])(cancel_leave_request)

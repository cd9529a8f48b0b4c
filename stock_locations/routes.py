"""
HTTP route handlers for stock location endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.permissions import require_min_level
from shared.responses import success_response, created_response, error_from_exception
from shared.validation import (
    parse_request_body, parse_bool_param, validate_uuid, validate_required
)
from .service import StockLocationService

logger = logging.getLogger(__name__)


async def list_stock_locations(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/stock/locations?type_id=&site_id=&employee_id=&is_active=
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        filters = {
            "type_id": req.params.get("type_id"),
            "site_id": req.params.get("site_id"),
            "employee_id": req.params.get("employee_id"),
            "is_active": parse_bool_param(req.params.get("is_active")),
        }

        service = StockLocationService()
        locations = await service.list_locations(filters)

        return success_response(locations)

    except Exception as e:
        return error_from_exception(e)


async def get_stock_location(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/stock/locations/{location_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        location_id = req.route_params.get("location_id")
        validate_uuid(location_id, "Location ID")

        service = StockLocationService()
        location = await service.get_location(location_id)

        return success_response(location)

    except Exception as e:
        return error_from_exception(e)


async def create_stock_location(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/stock/locations
    Body: name, code, location_type_id (uuid or type code), optional site_id,
    employee_id, address, is_active.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        body = parse_request_body(req)
        validate_required(body.get("name"), "ชื่อตำแหน่ง")
        validate_required(body.get("code"), "รหัสตำแหน่ง")
        validate_required(body.get("location_type_id"), "ประเภทตำแหน่ง")

        service = StockLocationService()
        location = await service.create_location(body)

        return created_response(location)

    except Exception as e:
        return error_from_exception(e)


async def update_stock_location(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT /api/stock/locations/{location_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        location_id = req.route_params.get("location_id")
        validate_uuid(location_id, "Location ID")
        body = parse_request_body(req)

        service = StockLocationService()
        location = await service.update_location(location_id, body)

        return success_response(location)

    except Exception as e:
        return error_from_exception(e)


async def delete_stock_location(req: func.HttpRequest) -> func.HttpResponse:
    """
    DELETE /api/stock/locations/{location_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        location_id = req.route_params.get("location_id")
        validate_uuid(location_id, "Location ID")

        service = StockLocationService()
        await service.delete_location(location_id)

        return success_response({"message": "ลบตำแหน่งจัดเก็บสำเร็จ"})

    except Exception as e:
        return error_from_exception(e)


def register_stock_location_routes(app: func.FunctionApp):
    """Register all stock location routes with the function app."""
    app.route(route="stock/locations", methods=["GET"])(list_stock_locations)
    app.route(route="stock/locations", methods=["POST"])(create_stock_location)
    app.route(route="stock/locations/{location_id}", methods=["GET"])(get_stock_location)
    app.route(route="stock/locations/{location_id}", methods=["PUT"])(update_stock_location)
    app.route(route="stock/locations/{location_id}", methods=["DELETE"])(delete_stock_location)

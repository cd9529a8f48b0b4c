"""
HTTP route handlers for fleet endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.errors import NotFoundError, ValidationError
from shared.permissions import require_min_level
from shared.responses import success_response, created_response, error_from_exception
from shared.validation import parse_request_body, validate_uuid
from .service import FleetService

logger = logging.getLogger(__name__)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


async def list_fleet(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/fleet
    List all vehicles, optionally filtered by status.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        service = FleetService()
        vehicles = await service.list_vehicles(req.params.get("status"))

        return success_response(vehicles)

    except Exception as e:
        return error_from_exception(e)


async def get_fleet_vehicle(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/fleet/{vehicle_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        vehicle_id = req.route_params.get("vehicle_id")

        service = FleetService()
        vehicle = await service.get_vehicle(vehicle_id)
        if not vehicle:
            raise NotFoundError("ไม่พบข้อมูลรถ")

        return success_response(vehicle)

    except Exception as e:
        return error_from_exception(e)


async def update_fleet_vehicle(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT /api/fleet/{vehicle_id}
    Set driver / plate overrides.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        vehicle_id = req.route_params.get("vehicle_id")
        body = parse_request_body(req)

        service = FleetService()
        vehicle = await service.update_vehicle(vehicle_id, body)

        return success_response(vehicle)

    except Exception as e:
        return error_from_exception(e)


async def get_fleet_vehicle_route(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/fleet/{vehicle_id}/route?date=YYYY-MM-DD
    GET /api/fleet/{vehicle_id}/route?start_date=...&end_date=...
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        vehicle_id = req.route_params.get("vehicle_id")

        service = FleetService()
        history = await service.get_route_history(
            vehicle_id,
            date=req.params.get("date"),
            start_date=req.params.get("start_date"),
            end_date=req.params.get("end_date"),
        )

        return success_response(history)

    except Exception as e:
        return error_from_exception(e)


async def get_fleet_work_locations(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/fleet/{vehicle_id}/work-locations?date=YYYY-MM-DD
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        vehicle_id = req.route_params.get("vehicle_id")

        service = FleetService()
        locations = await service.get_work_locations(vehicle_id, req.params.get("date"))

        return success_response(locations)

    except Exception as e:
        return error_from_exception(e)


async def add_fleet_vehicle_employee(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/fleet/{vehicle_id}/employees
    Body: {"employee_id": "<uuid>"}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        vehicle_id = req.route_params.get("vehicle_id")
        body = parse_request_body(req)
        employee_id = body.get("employee_id")
        validate_uuid(employee_id, "Employee ID")

        service = FleetService()
        employees = await service.add_vehicle_employee(vehicle_id, employee_id)

        return success_response(employees)

    except Exception as e:
        return error_from_exception(e)


async def set_fleet_vehicle_employees(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT /api/fleet/{vehicle_id}/employees
    Body: {"employee_ids": ["<uuid>", ...]} replaces all assignments.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        vehicle_id = req.route_params.get("vehicle_id")
        body = parse_request_body(req)
        employee_ids = body.get("employee_ids")

        if not isinstance(employee_ids, list):
            raise ValidationError("employee_ids ต้องเป็น array")
        for employee_id in employee_ids:
            validate_uuid(employee_id, "Employee ID")

        service = FleetService()
        employees = await service.set_vehicle_employees(vehicle_id, employee_ids)

        return success_response(employees)

    except Exception as e:
        return error_from_exception(e)


async def remove_fleet_vehicle_employee(req: func.HttpRequest) -> func.HttpResponse:
    """
    DELETE /api/fleet/{vehicle_id}/employees/{employee_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        vehicle_id = req.route_params.get("vehicle_id")
        employee_id = req.route_params.get("employee_id")
        validate_uuid(employee_id, "Employee ID")

        service = FleetService()
        await service.remove_vehicle_employee(vehicle_id, employee_id)

        return success_response({"message": "ลบพนักงานออกจากรถสำเร็จ"})

    except Exception as e:
        return error_from_exception(e)


async def list_fleet_garages(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/fleet/garages
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        service = FleetService()
        garages = await service.list_garages()

        return success_response(garages)

    except Exception as e:
        return error_from_exception(e)


async def create_fleet_garage(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/fleet/garages
    Body: name, latitude, longitude, optional description and radius_meters.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        body = parse_request_body(req)

        if not body.get("name") or not isinstance(body.get("name"), str):
            raise ValidationError("กรุณาระบุชื่อโรงรถ")
        if not _is_number(body.get("latitude")) or not _is_number(body.get("longitude")):
            raise ValidationError("กรุณาระบุพิกัด")

        data = {
            "name": body["name"],
            "description": body.get("description"),
            "latitude": body["latitude"],
            "longitude": body["longitude"],
            "radius_meters": body["radius_meters"] if _is_number(body.get("radius_meters")) else None,
        }

        service = FleetService()
        garage = await service.create_garage(data)

        return created_response(garage)

    except Exception as e:
        return error_from_exception(e)


async def update_fleet_garage(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT /api/fleet/garages/{garage_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        garage_id = req.route_params.get("garage_id")
        validate_uuid(garage_id, "Garage ID")
        body = parse_request_body(req)

        service = FleetService()
        garage = await service.update_garage(garage_id, body)

        return success_response(garage)

    except Exception as e:
        return error_from_exception(e)


async def delete_fleet_garage(req: func.HttpRequest) -> func.HttpResponse:
    """
    DELETE /api/fleet/garages/{garage_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 2)

        garage_id = req.route_params.get("garage_id")
        validate_uuid(garage_id, "Garage ID")

        service = FleetService()
        await service.delete_garage(garage_id)

        return success_response({"message": "ลบโรงรถสำเร็จ"})

    except Exception as e:
        return error_from_exception(e)


def register_fleet_routes(app: func.FunctionApp):
    """Register all fleet routes with the function app."""
    app.route(route="fleet", methods=["GET"])(list_fleet)

    app.route(route="fleet/garages", methods=["GET"])(list_fleet_garages)
    app.route(route="fleet/garages", methods=["POST"])(create_fleet_garage)
    app.route(route="fleet/garages/{garage_id}", methods=["PUT"])(update_fleet_garage)
    app.route(route="fleet/garages/{garage_id}", methods=["DELETE"])(delete_fleet_garage)

    app.route(route="fleet/{vehicle_id}", methods=["GET"])(get_fleet_vehicle)
    app.route(route="fleet/{vehicle_id}", methods=["PUT"])(update_fleet_vehicle)
    app.route(route="fleet/{vehicle_id}/route", methods=["GET"])(get_fleet_vehicle_route)
    app.route(route="fleet/{vehicle_id}/work-locations", methods=["GET"])(get_fleet_work_locations)
    app.route(route="fleet/{vehicle_id}/employees", methods=["POST"])(add_fleet_vehicle_employee)
    app.route(route="fleet/{vehicle_id}/employees", methods=["PUT"])(set_fleet_vehicle_employees)
    app.route(route="fleet/{vehicle_id}/employees/{employee_id}", methods=["DELETE"])(remove_fleet_vehicle_employee)

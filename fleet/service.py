"""
Business logic for the fleet read API.

Vehicle rows are written by the fleet sync job; this service only reads them,
applies operator overrides and manages garages and employee assignments.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from shared.supabase_client import get_supabase_client
from shared.errors import DatabaseError, NotFoundError, is_unique_violation
from shared.validation import validate_date_format
from fleet_sync.geo import calculate_distance
from fleet_sync.service import VEHICLE_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_GARAGE_RADIUS_METERS = 100

VEHICLE_SELECT = """
    id,
    name,
    plate_number,
    plate_number_override,
    driver_name,
    driver_name_override,
    status,
    speed,
    latitude,
    longitude,
    heading,
    signal_strength,
    address,
    current_garage_id,
    last_sync_at,
    fleet_garages!current_garage_id (
        id,
        name,
        latitude,
        longitude
    ),
    jct_fleet_vehicle_employees (
        employee_id,
        main_employees (
            id,
            name
        )
    )
"""

VEHICLE_EMPLOYEES_SELECT = "employee_id, main_employees (id, name)"

WORK_LOCATION_SELECT = """
    ticket_id,
    main_tickets!inner (
        id,
        ticket_code,
        site_id,
        main_sites!inner (
            id,
            name,
            latitude,
            longitude,
            address_detail
        ),
        main_appointments!main_tickets_appointment_id_fkey (
            appointment_date,
            appointment_time_start,
            appointment_time_end
        ),
        ref_ticket_work_types!inner (
            code,
            name
        ),
        ref_ticket_statuses!inner (
            code,
            name
        )
    )
"""

GARAGE_FIELDS = ("name", "description", "latitude", "longitude", "radius_meters")


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _map_employees(rows: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Flatten junction rows to {id, name}, dropping dangling assignments."""
    employees = []
    for row in rows or []:
        employee = row.get("main_employees")
        if employee:
            employees.append({"id": employee.get("id"), "name": employee.get("name")})
    return employees


def map_vehicle(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the vehicle view: override values win, the current garage is embedded
    with its distance from the vehicle.
    """
    garage = row.get("fleet_garages")
    garage_info = None

    if garage and row.get("latitude") is not None and row.get("longitude") is not None:
        distance = calculate_distance(
            row["latitude"], row["longitude"], garage["latitude"], garage["longitude"]
        )
        garage_info = {
            "id": garage.get("id"),
            "name": garage.get("name"),
            "distance_meters": round(distance),
        }

    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "plate_number": row.get("plate_number_override") or row.get("plate_number"),
        "driver_name": row.get("driver_name_override") or row.get("driver_name"),
        "employees": _map_employees(row.get("jct_fleet_vehicle_employees")),
        "status": row.get("status"),
        "speed": row.get("speed"),
        "latitude": row.get("latitude"),
        "longitude": row.get("longitude"),
        "heading": row.get("heading"),
        "signal_strength": row.get("signal_strength"),
        "address": row.get("address"),
        "garage": garage_info,
        "last_sync_at": row.get("last_sync_at"),
    }


def resolve_date_range(
    date: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None
) -> Dict[str, str]:
    """
    Turn route history query params into an inclusive timestamp window.

    A start/end pair wins over a single date; with neither, today is used.

    Raises:
        ValidationError: If any date is not YYYY-MM-DD
    """
    date = validate_date_format(date, "date")
    start_date = validate_date_format(start_date, "start_date")
    end_date = validate_date_format(end_date, "end_date")

    if start_date and end_date:
        first, last = start_date, end_date
    elif date:
        first = last = date
    else:
        first = last = _today()

    return {"start": f"{first}T00:00:00", "end": f"{last}T23:59:59"}


class FleetService:
    """Service class for fleet read and management operations."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    async def list_vehicles(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List all vehicles ordered by name.

        Args:
            status: Optional status filter; unknown values are ignored

        Returns:
            List of vehicle views
        """
        query = self.client.table("fleet_vehicles") \
            .select(VEHICLE_SELECT) \
            .order("name")

        if status in VEHICLE_STATUSES:
            query = query.eq("status", status)

        try:
            result = query.execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงข้อมูลรถได้: {str(e)}")

        return [map_vehicle(row) for row in result.data or []]

    async def get_vehicle(self, vehicle_id: str) -> Optional[Dict[str, Any]]:
        """Get one vehicle view, or None when it does not exist."""
        try:
            result = self.client.table("fleet_vehicles") \
                .select(VEHICLE_SELECT) \
                .eq("id", vehicle_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงข้อมูลรถได้: {str(e)}")

        return map_vehicle(result.data[0]) if result.data else None

    async def update_vehicle(self, vehicle_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update operator overrides for a vehicle.

        Only driver_name_override and plate_number_override are writable; the
        sync job never touches them.

        Raises:
            NotFoundError: If the vehicle does not exist
        """
        update_data: Dict[str, Any] = {"updated_at": _now()}
        for field in ("driver_name_override", "plate_number_override"):
            if field in data:
                update_data[field] = data[field]

        try:
            self.client.table("fleet_vehicles") \
                .update(update_data) \
                .eq("id", vehicle_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถแก้ไขข้อมูลรถได้: {str(e)}")

        vehicle = await self.get_vehicle(vehicle_id)
        if not vehicle:
            raise NotFoundError("ไม่พบข้อมูลรถ")

        return vehicle

    async def get_route_history(
        self,
        vehicle_id: str,
        date: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Get history points for a vehicle in chronological order.

        Raises:
            ValidationError: If a date parameter is malformed
        """
        window = resolve_date_range(date, start_date, end_date)

        try:
            result = self.client.table("fleet_vehicle_history") \
                .select("latitude, longitude, speed, heading, status, address, recorded_at") \
                .eq("vehicle_id", vehicle_id) \
                .gte("recorded_at", window["start"]) \
                .lte("recorded_at", window["end"]) \
                .order("recorded_at") \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงประวัติเส้นทางได้: {str(e)}")

        return [
            {
                "latitude": row.get("latitude"),
                "longitude": row.get("longitude"),
                "speed": row.get("speed"),
                "heading": row.get("heading"),
                "status": row.get("status"),
                "address": row.get("address"),
                "recorded_at": row.get("recorded_at"),
            }
            for row in result.data or []
        ]

    async def get_work_locations(self, vehicle_id: str, date: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get the job sites confirmed for the vehicle's employees on a date.

        Tickets shared by several employees appear once. Sites without
        coordinates and tickets without an appointment date are skipped.

        Args:
            vehicle_id: Vehicle id
            date: YYYY-MM-DD (defaults to today)

        Returns:
            List of work locations
        """
        target_date = validate_date_format(date, "date") or _today()

        try:
            assignments = self.client.table("jct_fleet_vehicle_employees") \
                .select("employee_id") \
                .eq("vehicle_id", vehicle_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงข้อมูลพนักงานของรถได้: {str(e)}")

        employee_ids = [row["employee_id"] for row in assignments.data or []]
        if not employee_ids:
            return []

        try:
            result = self.client.table("jct_ticket_employees_cf") \
                .select(WORK_LOCATION_SELECT) \
                .in_("employee_id", employee_ids) \
                .eq("date", target_date) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงข้อมูลงานได้: {str(e)}")

        locations = []
        seen_ticket_ids = set()

        for row in result.data or []:
            ticket_id = row.get("ticket_id")
            if ticket_id in seen_ticket_ids:
                continue
            seen_ticket_ids.add(ticket_id)

            ticket = row.get("main_tickets") or {}
            site = ticket.get("main_sites") or {}
            appointment = ticket.get("main_appointments") or {}
            work_type = ticket.get("ref_ticket_work_types") or {}
            ticket_status = ticket.get("ref_ticket_statuses") or {}

            if site.get("latitude") is None or site.get("longitude") is None:
                continue
            if not appointment.get("appointment_date"):
                continue

            locations.append({
                "ticket_id": ticket.get("id"),
                "ticket_code": ticket.get("ticket_code"),
                "site_id": site.get("id"),
                "site_name": site.get("name"),
                "latitude": site.get("latitude"),
                "longitude": site.get("longitude"),
                "address_detail": site.get("address_detail"),
                "appointment_date": appointment.get("appointment_date"),
                "appointment_time_start": appointment.get("appointment_time_start"),
                "appointment_time_end": appointment.get("appointment_time_end"),
                "work_type_code": work_type.get("code"),
                "work_type_name": work_type.get("name"),
                "status_code": ticket_status.get("code"),
                "status_name": ticket_status.get("name"),
            })

        return locations

    # Garages

    async def list_garages(self) -> List[Dict[str, Any]]:
        """List all garages ordered by name."""
        try:
            result = self.client.table("fleet_garages") \
                .select("*") \
                .order("name") \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงข้อมูลโรงรถได้: {str(e)}")

        return result.data or []

    async def create_garage(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a garage.

        Args:
            data: name, latitude, longitude and optional description, radius_meters

        Returns:
            The created garage row
        """
        garage_data = {
            "name": data["name"],
            "description": data.get("description"),
            "latitude": data["latitude"],
            "longitude": data["longitude"],
            "radius_meters": data.get("radius_meters") or DEFAULT_GARAGE_RADIUS_METERS,
        }

        try:
            result = self.client.table("fleet_garages") \
                .insert(garage_data) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถสร้างโรงรถได้: {str(e)}")

        logger.info(f"Created garage {garage_data['name']}")
        return result.data[0] if result.data else garage_data

    async def update_garage(self, garage_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a garage.

        Raises:
            NotFoundError: If the garage does not exist
        """
        update_data: Dict[str, Any] = {"updated_at": _now()}
        for field in GARAGE_FIELDS:
            if field in data:
                update_data[field] = data[field]

        try:
            result = self.client.table("fleet_garages") \
                .update(update_data) \
                .eq("id", garage_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถแก้ไขโรงรถได้: {str(e)}")

        if not result.data:
            raise NotFoundError("ไม่พบข้อมูลโรงรถ")

        return result.data[0]

    async def delete_garage(self, garage_id: str) -> None:
        """Delete a garage."""
        try:
            self.client.table("fleet_garages") \
                .delete() \
                .eq("id", garage_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถลบโรงรถได้: {str(e)}")

        logger.info(f"Deleted garage {garage_id}")

    # Employee assignments

    def _list_vehicle_employees(self, vehicle_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.client.table("jct_fleet_vehicle_employees") \
                .select(VEHICLE_EMPLOYEES_SELECT) \
                .eq("vehicle_id", vehicle_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงข้อมูลพนักงานได้: {str(e)}")

        return _map_employees(result.data)

    async def set_vehicle_employees(self, vehicle_id: str, employee_ids: List[str]) -> List[Dict[str, Any]]:
        """Replace every employee assignment of a vehicle."""
        try:
            self.client.table("jct_fleet_vehicle_employees") \
                .delete() \
                .eq("vehicle_id", vehicle_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถลบพนักงานเดิมได้: {str(e)}")

        if not employee_ids:
            return []

        rows = [
            {"vehicle_id": vehicle_id, "employee_id": employee_id}
            for employee_id in dict.fromkeys(employee_ids)
        ]

        try:
            self.client.table("jct_fleet_vehicle_employees") \
                .insert(rows) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถเพิ่มพนักงานได้: {str(e)}")

        return self._list_vehicle_employees(vehicle_id)

    async def add_vehicle_employee(self, vehicle_id: str, employee_id: str) -> List[Dict[str, Any]]:
        """Assign one employee; an existing assignment is left as is."""
        try:
            self.client.table("jct_fleet_vehicle_employees") \
                .insert({"vehicle_id": vehicle_id, "employee_id": employee_id}) \
                .execute()
        except Exception as e:
            if not is_unique_violation(e):
                raise DatabaseError(f"ไม่สามารถเพิ่มพนักงานได้: {str(e)}")

        return self._list_vehicle_employees(vehicle_id)

    async def remove_vehicle_employee(self, vehicle_id: str, employee_id: str) -> None:
        """Remove one employee assignment."""
        try:
            self.client.table("jct_fleet_vehicle_employees") \
                .delete() \
                .eq("vehicle_id", vehicle_id) \
                .eq("employee_id", employee_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถลบพนักงานได้: {str(e)}")

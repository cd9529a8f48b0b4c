"""
Business logic for stock locations (main_stock_locations).

A location is a warehouse, a site store or an employee's vehicle stock,
typed through ref_stock_location_types.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from shared.supabase_client import get_supabase_client
from shared.errors import ConflictError, DatabaseError, NotFoundError, ValidationError, is_unique_violation
from shared.validation import is_uuid

logger = logging.getLogger(__name__)

LOCATION_SELECT = """
    id, name, code, location_type_id, site_id, employee_id, address, is_active, created_at, updated_at,
    location_type:ref_stock_location_types(id, code, name_th),
    site:main_sites(id, name),
    employee:main_employees(id, name)
"""

LOCATION_LIST_SELECT = """
    id, name, code, location_type_id, site_id, employee_id, is_active, created_at,
    location_type:ref_stock_location_types(id, code, name_th)
"""

DUPLICATE_CODE_MESSAGE = "รหัสตำแหน่งซ้ำกับที่มีอยู่แล้ว"

# Empty strings clear these references
NULLABLE_FIELDS = ("site_id", "employee_id", "address")


class StockLocationService:
    """Service class for stock location operations."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    def resolve_location_type_id(self, type_id_or_code: str) -> str:
        """
        Accept a location type uuid or its code (e.g. "warehouse").

        Raises:
            ValidationError: If the code is unknown
        """
        if is_uuid(type_id_or_code):
            return type_id_or_code

        result = self.client.table("ref_stock_location_types") \
            .select("id") \
            .eq("code", str(type_id_or_code).lower()) \
            .limit(1) \
            .execute()

        if not result.data:
            raise ValidationError(f"ไม่พบประเภทตำแหน่ง: {type_id_or_code}")

        return result.data[0]["id"]

    async def list_locations(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        List locations ordered by name.

        Args:
            filters: Optional type_id, site_id, employee_id, is_active
        """
        filters = filters or {}

        query = self.client.table("main_stock_locations") \
            .select(LOCATION_LIST_SELECT) \
            .order("name")

        if filters.get("type_id"):
            query = query.eq("location_type_id", filters["type_id"])
        if filters.get("site_id"):
            query = query.eq("site_id", filters["site_id"])
        if filters.get("employee_id"):
            query = query.eq("employee_id", filters["employee_id"])
        if filters.get("is_active") is not None:
            query = query.eq("is_active", filters["is_active"])

        try:
            result = query.execute()
        except Exception as e:
            raise DatabaseError(f"Failed to list locations: {str(e)}")

        return result.data or []

    async def get_location(self, location_id: str) -> Dict[str, Any]:
        """
        Get a location with its type, site and employee.

        Raises:
            NotFoundError: If the location does not exist
        """
        try:
            result = self.client.table("main_stock_locations") \
                .select(LOCATION_SELECT) \
                .eq("id", location_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"Failed to get location: {str(e)}")

        if not result.data:
            raise NotFoundError("ไม่พบตำแหน่งจัดเก็บ")

        return result.data[0]

    async def create_location(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a location.

        Raises:
            ValidationError: If the location type is unknown
            ConflictError: If the code is already used
        """
        location_data = {
            "name": data["name"],
            "code": data["code"],
            "location_type_id": self.resolve_location_type_id(data["location_type_id"]),
            "site_id": data.get("site_id") or None,
            "employee_id": data.get("employee_id") or None,
            "address": data.get("address") or None,
            "is_active": data.get("is_active", True),
        }

        try:
            result = self.client.table("main_stock_locations") \
                .insert(location_data) \
                .execute()
        except Exception as e:
            if is_unique_violation(e):
                raise ConflictError(DUPLICATE_CODE_MESSAGE)
            raise DatabaseError(f"Failed to create location: {str(e)}")

        logger.info(f"Created stock location {location_data['code']}")
        return await self.get_location(result.data[0]["id"])

    async def update_location(self, location_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a location.

        Raises:
            NotFoundError: If the location does not exist
            ConflictError: If the new code is already used
        """
        update_data: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}

        for field in ("name", "code", "is_active"):
            if field in data:
                update_data[field] = data[field]
        for field in NULLABLE_FIELDS:
            if field in data:
                update_data[field] = data[field] or None
        if "location_type_id" in data:
            update_data["location_type_id"] = self.resolve_location_type_id(data["location_type_id"])

        try:
            result = self.client.table("main_stock_locations") \
                .update(update_data) \
                .eq("id", location_id) \
                .execute()
        except Exception as e:
            if is_unique_violation(e):
                raise ConflictError(DUPLICATE_CODE_MESSAGE)
            raise DatabaseError(f"Failed to update location: {str(e)}")

        if not result.data:
            raise NotFoundError("ไม่พบตำแหน่งจัดเก็บ")

        return result.data[0]

    async def delete_location(self, location_id: str) -> None:
        """
        Delete a location that holds no stock items.

        Raises:
            ConflictError: If stock items still reference the location
        """
        items = self.client.table("main_stock_items") \
            .select("id", count="exact") \
            .eq("location_id", location_id) \
            .limit(1) \
            .execute()

        if items.count or items.data:
            raise ConflictError("ไม่สามารถลบตำแหน่งที่มีสินค้าคงคลังได้")

        try:
            self.client.table("main_stock_locations") \
                .delete() \
                .eq("id", location_id) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"Failed to delete location: {str(e)}")

        logger.info(f"Deleted stock location {location_id}")

"""
Business logic for leave request operations.

Status flow: pending -> approved | rejected, or cancelled by the requester.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Tuple
from shared.supabase_client import get_supabase_client
from shared.errors import DatabaseError, NotFoundError, ValidationError
from shared.responses import calculate_pagination

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_CANCELLED = "cancelled"

HALF_DAY_TYPES = ("morning", "afternoon")

LEAVE_REQUEST_SELECT = """
    *,
    employee:employees!leave_requests_employee_id_fkey(*),
    leave_type:leave_types!leave_requests_leave_type_id_fkey(*),
    approved_by_employee:employees!leave_requests_approved_by_fkey(*)
"""

UPDATABLE_FIELDS = (
    "leave_type_id", "start_date", "end_date", "total_days", "reason", "half_day_type",
    "status", "approved_by", "approved_at", "rejected_reason",
)


def normalize_half_day_type(value: Any) -> Optional[str]:
    """Only morning/afternoon are stored; full days and blanks become None."""
    return value if value in HALF_DAY_TYPES else None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LeaveRequestService:
    """Service class for leave request operations."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    async def list_leave_requests(
        self,
        page: int,
        limit: int,
        filters: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """
        List leave requests newest first.

        Args:
            page: Page number (1-based)
            limit: Page size
            filters: Optional status ("all" disables), leave_type_id,
                employee_id, start_date, end_date. The date window keeps
                requests that overlap it.

        Returns:
            Tuple of (rows, pagination)
        """
        filters = filters or {}

        query = self.client.table("leave_requests") \
            .select(LEAVE_REQUEST_SELECT, count="exact") \
            .order("created_at", desc=True)

        status = filters.get("status")
        if status and status != "all":
            query = query.eq("status", status)
        if filters.get("leave_type_id"):
            query = query.eq("leave_type_id", filters["leave_type_id"])
        if filters.get("employee_id"):
            query = query.eq("employee_id", filters["employee_id"])
        if filters.get("start_date"):
            query = query.gte("end_date", filters["start_date"])
        if filters.get("end_date"):
            query = query.lte("start_date", filters["end_date"])

        offset = (page - 1) * limit

        try:
            result = query.range(offset, offset + limit - 1).execute()
        except Exception as e:
            raise DatabaseError(str(e))

        return result.data or [], calculate_pagination(page, limit, result.count or 0)

    async def get_leave_request(self, leave_request_id: str) -> Dict[str, Any]:
        """
        Get a leave request with employee, leave type and approver.

        Raises:
            NotFoundError: If the request does not exist
        """
        try:
            result = self.client.table("leave_requests") \
                .select(LEAVE_REQUEST_SELECT) \
                .eq("id", leave_request_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            raise DatabaseError(str(e))

        if not result.data:
            raise NotFoundError("ไม่พบคำขอลา")

        return result.data[0]

    async def create_leave_request(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a leave request; status defaults to pending.

        Args:
            data: employee_id, leave_type_id, start_date, end_date and optional
                total_days, reason, status, half_day_type

        Returns:
            The created request with relations
        """
        insert_data = {
            "employee_id": data["employee_id"],
            "leave_type_id": data["leave_type_id"],
            "start_date": data["start_date"],
            "end_date": data["end_date"],
            "total_days": data.get("total_days"),
            "reason": data.get("reason") or None,
            "status": data.get("status") or STATUS_PENDING,
        }

        half_day_type = normalize_half_day_type(data.get("half_day_type"))
        if half_day_type:
            insert_data["half_day_type"] = half_day_type

        result = self.client.table("leave_requests") \
            .insert(insert_data) \
            .execute()

        if not result.data or not result.data[0].get("id"):
            raise DatabaseError("Failed to create leave request")

        leave_request_id = result.data[0]["id"]
        logger.info(f"Created leave request {leave_request_id} for employee {insert_data['employee_id']}")

        return await self.get_leave_request(leave_request_id)

    async def update_leave_request(self, leave_request_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a leave request.

        A blank or "full" half_day_type is left untouched.

        Raises:
            NotFoundError: If the request does not exist
            ValidationError: If nothing updatable was given
        """
        update_data = {key: data[key] for key in UPDATABLE_FIELDS if key in data}

        if "half_day_type" in update_data:
            half_day_type = normalize_half_day_type(update_data.pop("half_day_type"))
            if half_day_type:
                update_data["half_day_type"] = half_day_type

        if not update_data:
            raise ValidationError("ไม่มีข้อมูลที่ต้องการอัพเดท")

        result = self.client.table("leave_requests") \
            .update(update_data) \
            .eq("id", leave_request_id) \
            .execute()

        if not result.data:
            raise NotFoundError("ไม่พบคำขอลา")

        return await self.get_leave_request(leave_request_id)

    async def delete_leave_request(self, leave_request_id: str) -> None:
        """Delete a leave request."""
        self.client.table("leave_requests") \
            .delete() \
            .eq("id", leave_request_id) \
            .execute()

        logger.info(f"Deleted leave request {leave_request_id}")

    async def approve(self, leave_request_id: str, approver_id: str) -> Dict[str, Any]:
        """Approve a request, recording the approver and time."""
        return await self.update_leave_request(leave_request_id, {
            "status": STATUS_APPROVED,
            "approved_by": approver_id,
            "approved_at": _now(),
        })

    async def reject(self, leave_request_id: str, approver_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
        """Reject a request with an optional reason."""
        return await self.update_leave_request(leave_request_id, {
            "status": STATUS_REJECTED,
            "approved_by": approver_id,
            "approved_at": _now(),
            "rejected_reason": reason or None,
        })

    async def cancel(self, leave_request_id: str) -> Dict[str, Any]:
        """Cancel a request."""
        return await self.update_leave_request(leave_request_id, {"status": STATUS_CANCELLED})

"""
Business logic for prizes and prize assignments (user_prizes).
"""

import logging
from typing import List, Dict, Any, Optional, Tuple
from shared.supabase_client import get_supabase_client
from shared.errors import DatabaseError, NotFoundError, ValidationError
from shared.responses import calculate_pagination
from shared.validation import sanitize_data

logger = logging.getLogger(__name__)

PRIZE_FIELDS = ("name", "image_url")

WINNER_SELECT = """
    *,
    user_data:employees!user_id(id, name, code, email),
    prize_data:prizes!prize_id(id, name, image_url, created_at)
"""


class PrizeService:
    """Service class for prize operations."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    async def list_prizes(self, page: int, limit: int) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """List prizes newest first."""
        offset = (page - 1) * limit

        try:
            result = self.client.table("prizes") \
                .select("*", count="exact") \
                .order("created_at", desc=True) \
                .range(offset, offset + limit - 1) \
                .execute()
        except Exception as e:
            logger.error(f"Error listing prizes: {str(e)}")
            raise DatabaseError("ไม่สามารถดึงข้อมูลรางวัลได้")

        return result.data or [], calculate_pagination(page, limit, result.count or 0)

    async def get_prize(self, prize_id: str) -> Dict[str, Any]:
        """
        Get a prize.

        Raises:
            NotFoundError: If the prize does not exist
        """
        result = self.client.table("prizes") \
            .select("*") \
            .eq("id", prize_id) \
            .limit(1) \
            .execute()

        if not result.data:
            raise NotFoundError("ไม่พบรางวัลที่ระบุ")

        return result.data[0]

    async def create_prize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a prize. Only name and image_url are accepted.

        Raises:
            ValidationError: If name is missing
        """
        prize_data = sanitize_data(data, PRIZE_FIELDS)
        if not prize_data.get("name"):
            raise ValidationError("ชื่อรางวัลจำเป็นต้องระบุ")

        try:
            result = self.client.table("prizes") \
                .insert(prize_data) \
                .execute()
        except Exception as e:
            logger.error(f"Error creating prize: {str(e)}")
            raise DatabaseError("ไม่สามารถสร้างรางวัลได้")

        logger.info(f"Created prize {prize_data['name']}")
        return result.data[0]

    async def update_prize(self, prize_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a prize.

        Raises:
            NotFoundError: If the prize does not exist
            ValidationError: If there is nothing to update
        """
        await self.get_prize(prize_id)

        prize_data = sanitize_data(data, PRIZE_FIELDS)
        if not prize_data:
            raise ValidationError("ไม่มีข้อมูลที่ต้องการอัปเดต")

        try:
            result = self.client.table("prizes") \
                .update(prize_data) \
                .eq("id", prize_id) \
                .execute()
        except Exception as e:
            logger.error(f"Error updating prize {prize_id}: {str(e)}")
            raise DatabaseError("ไม่สามารถอัปเดตรางวัลได้")

        return result.data[0]

    async def delete_prize(self, prize_id: str) -> None:
        """
        Delete a prize that has not been handed out.

        Raises:
            NotFoundError: If the prize does not exist
            ValidationError: If the prize is assigned to anyone
        """
        await self.get_prize(prize_id)

        assignments = self.client.table("user_prizes") \
            .select("id") \
            .eq("prize_id", prize_id) \
            .limit(1) \
            .execute()

        if assignments.data:
            raise ValidationError("ไม่สามารถลบรางวัลที่มีการมอบให้ผู้ใช้แล้ว")

        try:
            self.client.table("prizes") \
                .delete() \
                .eq("id", prize_id) \
                .execute()
        except Exception as e:
            logger.error(f"Error deleting prize {prize_id}: {str(e)}")
            raise DatabaseError("ไม่สามารถลบรางวัลได้")

    async def list_winners(
        self,
        page: int,
        limit: int,
        user_id: Optional[str] = None,
        prize_id: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """List prize assignments newest first, with user and prize data."""
        query = self.client.table("user_prizes") \
            .select(WINNER_SELECT, count="exact")

        if user_id:
            query = query.eq("user_id", user_id)
        if prize_id:
            query = query.eq("prize_id", prize_id)

        offset = (page - 1) * limit

        try:
            result = query \
                .order("created_at", desc=True) \
                .range(offset, offset + limit - 1) \
                .execute()
        except Exception as e:
            logger.error(f"Error listing winners: {str(e)}")
            raise DatabaseError("ไม่สามารถดึงข้อมูลผู้ได้รับรางวัลได้")

        return result.data or [], calculate_pagination(page, limit, result.count or 0)

    def _find_assignment(self, prize_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.client.table("user_prizes") \
            .select("id") \
            .eq("user_id", user_id) \
            .eq("prize_id", prize_id) \
            .limit(1) \
            .execute()
        return result.data[0] if result.data else None

    async def assign_prize(self, prize_id: str, user_id: str) -> Dict[str, Any]:
        """
        Give a prize to an employee.

        Raises:
            NotFoundError: If the prize or employee does not exist
            ValidationError: If the employee already has this prize
        """
        await self.get_prize(prize_id)

        employee = self.client.table("employees") \
            .select("id") \
            .eq("id", user_id) \
            .limit(1) \
            .execute()
        if not employee.data:
            raise NotFoundError("ไม่พบพนักงานที่ระบุ")

        if self._find_assignment(prize_id, user_id):
            raise ValidationError("พนักงานคนนี้ได้รับรางวัลนี้แล้ว")

        try:
            inserted = self.client.table("user_prizes") \
                .insert({"user_id": user_id, "prize_id": prize_id}) \
                .execute()
        except Exception as e:
            logger.error(f"Error assigning prize {prize_id} to {user_id}: {str(e)}")
            raise DatabaseError("ไม่สามารถมอบรางวัลได้")

        assignment_id = inserted.data[0]["id"]
        result = self.client.table("user_prizes") \
            .select(WINNER_SELECT) \
            .eq("id", assignment_id) \
            .limit(1) \
            .execute()

        logger.info(f"Assigned prize {prize_id} to {user_id}")
        return result.data[0] if result.data else inserted.data[0]

    async def unassign_prize(self, prize_id: str, user_id: str) -> None:
        """
        Take a prize back from an employee.

        Raises:
            NotFoundError: If no such assignment exists
        """
        assignment = self._find_assignment(prize_id, user_id)
        if not assignment:
            raise NotFoundError("ไม่พบการมอบรางวัลที่ระบุ")

        try:
            self.client.table("user_prizes") \
                .delete() \
                .eq("id", assignment["id"]) \
                .execute()
        except Exception as e:
            logger.error(f"Error unassigning prize {prize_id} from {user_id}: {str(e)}")
            raise DatabaseError("ไม่สามารถยกเลิกการมอบรางวัลได้")

"""
Business logic for in-app notifications (main_notifications).
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from shared.supabase_client import get_supabase_client
from shared.errors import DatabaseError
from shared.responses import calculate_pagination
from shared.validation import build_ilike_filter

logger = logging.getLogger(__name__)

NOTIFICATION_SELECT = """
    id,
    recipient_id,
    type,
    title,
    message,
    ticket_id,
    comment_id,
    audit_id,
    actor_id,
    is_read,
    read_at,
    metadata,
    created_at,
    actor:main_employees!main_notifications_actor_id_fkey(
        id,
        name,
        nickname
    )
"""


class NotificationService:
    """Service class for notification operations."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    async def list_for_recipient(
        self,
        recipient_id: str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        List a recipient's notifications, newest first.

        Args:
            recipient_id: Employee id
            page: Page number (1-based)
            limit: Page size
            unread_only: Only unread notifications
            search: Substring matched against title and message

        Returns:
            dict with data, pagination and unread_count; unread_count ignores
            the search filter so badge counts stay stable
        """
        offset = (page - 1) * limit

        query = self.client.table("main_notifications") \
            .select(NOTIFICATION_SELECT, count="exact") \
            .eq("recipient_id", recipient_id) \
            .order("created_at", desc=True)

        if unread_only:
            query = query.eq("is_read", False)

        if search:
            query = query.or_(build_ilike_filter(["title", "message"], search))

        try:
            result = query.range(offset, offset + limit - 1).execute()

            unread = self.client.table("main_notifications") \
                .select("id", count="exact") \
                .eq("recipient_id", recipient_id) \
                .eq("is_read", False) \
                .execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถดึงการแจ้งเตือนได้: {str(e)}")

        return {
            "data": result.data or [],
            "pagination": calculate_pagination(page, limit, result.count or 0),
            "unread_count": unread.count or 0,
        }

    async def mark_as_read(
        self,
        recipient_id: str,
        notification_ids: Optional[List[str]] = None
    ) -> Dict[str, int]:
        """
        Mark notifications read. Without ids, every unread notification of the
        recipient is marked.

        Returns:
            dict with updated_count
        """
        query = self.client.table("main_notifications") \
            .update({
                "is_read": True,
                "read_at": datetime.now(timezone.utc).isoformat(),
            }) \
            .eq("recipient_id", recipient_id) \
            .eq("is_read", False)

        if notification_ids:
            query = query.in_("id", notification_ids)

        try:
            result = query.execute()
        except Exception as e:
            raise DatabaseError(f"ไม่สามารถอัพเดทการแจ้งเตือนได้: {str(e)}")

        updated_count = len(result.data or [])
        logger.info(f"Marked {updated_count} notifications read for {recipient_id}")
        return {"updated_count": updated_count}

"""
Business logic for announcements.
"""

import logging
from typing import List, Dict, Any
from shared.supabase_client import get_supabase_client
from shared.errors import DatabaseError

logger = logging.getLogger(__name__)

ANNOUNCEMENT_SELECT = """
    *,
    photos:announcement_photos(
        id,
        image_url,
        display_order,
        created_at
    ),
    files:announcement_files(
        id,
        file_url,
        file_name,
        file_size,
        mime_type,
        created_at
    )
"""


class AnnouncementService:
    """Service class for announcement operations."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    async def list_announcements(self) -> List[Dict[str, Any]]:
        """
        List announcements newest first, with photos sorted by display_order.

        Returns:
            List of announcements, each with photos and files arrays
        """
        try:
            result = self.client.table("announcements") \
                .select(ANNOUNCEMENT_SELECT) \
                .order("created_at", desc=True) \
                .execute()
        except Exception as e:
            logger.error(f"Error listing announcements: {str(e)}")
            raise DatabaseError("ไม่สามารถดึงข้อมูลประกาศได้")

        announcements = []
        for row in result.data or []:
            photos = row.get("photos") if isinstance(row.get("photos"), list) else []
            files = row.get("files") if isinstance(row.get("files"), list) else []
            announcements.append({
                **row,
                "photos": sorted(photos, key=lambda photo: photo.get("display_order") or 0),
                "files": files,
            })

        return announcements

"""
Business logic for site contacts (child_site_contacts).

A contact belongs to a site and stores person_name, nickname, phone and email
arrays, line_id and a free-text note.
"""

import logging
from typing import List, Dict, Any, Optional, Tuple
from shared.supabase_client import get_supabase_client
from shared.errors import DatabaseError, NotFoundError
from shared.responses import calculate_pagination
from shared.validation import build_ilike_filter

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("site_id", "person_name", "nickname", "phone", "email", "line_id", "note")
SEARCH_MIN_LENGTH = 2
SEARCH_MAX_RESULTS = 10


class ContactService:
    """Service class for contact operations."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    async def list_contacts(
        self,
        page: int,
        limit: int,
        site_id: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """
        List contacts ordered by name.

        Returns:
            Tuple of (rows, pagination)
        """
        offset = (page - 1) * limit

        query = self.client.table("child_site_contacts") \
            .select("*", count="exact") \
            .order("person_name")

        if site_id:
            query = query.eq("site_id", site_id)

        try:
            result = query.range(offset, offset + limit - 1).execute()
        except Exception as e:
            raise DatabaseError(str(e))

        total = result.count or 0
        return result.data or [], calculate_pagination(page, limit, total)

    async def get_contact(self, contact_id: str) -> Dict[str, Any]:
        """
        Get a contact by id.

        Raises:
            NotFoundError: If the contact does not exist
        """
        try:
            result = self.client.table("child_site_contacts") \
                .select("*") \
                .eq("id", contact_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            raise DatabaseError(str(e))

        if not result.data:
            raise NotFoundError("ไม่พบข้อมูลผู้ติดต่อ")

        return result.data[0]

    async def list_by_site(self, site_id: str) -> List[Dict[str, Any]]:
        """All contacts of a site, newest first."""
        try:
            result = self.client.table("child_site_contacts") \
                .select("*") \
                .eq("site_id", site_id) \
                .order("created_at", desc=True) \
                .execute()
        except Exception as e:
            raise DatabaseError(str(e))

        return result.data or []

    async def search_contacts(self, query_text: str, site_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Search contacts by person_name or nickname.

        Queries shorter than two characters return nothing.
        """
        query_text = (query_text or "").strip()
        if len(query_text) < SEARCH_MIN_LENGTH:
            return []

        query = self.client.table("child_site_contacts") \
            .select("*") \
            .or_(build_ilike_filter(["person_name", "nickname"], query_text)) \
            .order("person_name") \
            .limit(SEARCH_MAX_RESULTS)

        if site_id:
            query = query.eq("site_id", site_id)

        try:
            result = query.execute()
        except Exception as e:
            raise DatabaseError(str(e))

        return result.data or []

    async def create_contact(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a contact from the allowed fields."""
        contact_data = {key: data[key] for key in CONTACT_FIELDS if key in data}

        result = self.client.table("child_site_contacts") \
            .insert(contact_data) \
            .execute()

        if not result.data:
            raise DatabaseError("Failed to create contact")

        logger.info(f"Created contact {result.data[0].get('id')} for site {contact_data.get('site_id')}")
        return result.data[0]

    async def update_contact(self, contact_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a contact.

        Raises:
            NotFoundError: If the contact does not exist
        """
        update_data = {key: data[key] for key in CONTACT_FIELDS if key in data}

        result = self.client.table("child_site_contacts") \
            .update(update_data) \
            .eq("id", contact_id) \
            .execute()

        if not result.data:
            raise NotFoundError("ไม่พบข้อมูลผู้ติดต่อ")

        return result.data[0]

    async def delete_contact(self, contact_id: str) -> None:
        """Delete a contact."""
        self.client.table("child_site_contacts") \
            .delete() \
            .eq("id", contact_id) \
            .execute()

        logger.info(f"Deleted contact {contact_id}")

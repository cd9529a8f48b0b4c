"""
Matches Google address components to Thai reference location codes.

Cascade: province -> district -> subdistrict -> postal code fallback, then a
backfill pass so the returned codes describe one consistent branch of the
province/district/subdistrict hierarchy. Matching is a case-insensitive
substring search where the first row wins.
"""

import re
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
from shared.supabase_client import get_supabase_client
from shared.validation import build_ilike_filter

logger = logging.getLogger(__name__)

PREFIX_REGEX = re.compile(
    r"^(จังหวัด|อำเภอ|เขต|ตำบล|แขวง|อ\.|ต\.|จ\.|Changwat|Chang\s+Wat|Amphoe|Tambon|Khwaeng|Khet|Province\s+of)\s*",
    re.IGNORECASE
)
BANGKOK_VARIANTS = ("กรุงเทพมหานคร", "กรุงเทพฯ")
BANGKOK_CANONICAL = "กรุงเทพ"
POSTAL_CODE_REGEX = re.compile(r"^\s*(\d+)")

NAME_COLUMNS = ("name_th", "name_en")


@dataclass
class AddressComponents:
    """Structured address as parsed from Google place details."""

    street_address: Optional[str] = None
    subdistrict: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AddressComponents":
        data = data or {}
        return cls(**{field: data.get(field) for field in cls.__dataclass_fields__})


@dataclass
class MatchedLocation:
    province_code: Optional[int] = None
    district_code: Optional[int] = None
    subdistrict_code: Optional[int] = None

    def is_empty(self) -> bool:
        return self.province_code is None and self.district_code is None and self.subdistrict_code is None

    def to_dict(self) -> Dict[str, Optional[int]]:
        return asdict(self)


def normalize_location_name(name: Optional[str]) -> str:
    """
    Normalize a location name for matching.

    Strips one leading administrative prefix (Thai or romanized), maps the
    Bangkok long forms to กรุงเทพ and collapses whitespace.

    Example: "จังหวัดเชียงใหม่" -> "เชียงใหม่", "Province of Nan" -> "Nan"
    """
    if not name:
        return ""

    normalized = PREFIX_REGEX.sub("", name.strip())
    for variant in BANGKOK_VARIANTS:
        normalized = normalized.replace(variant, BANGKOK_CANONICAL)

    return re.sub(r"\s+", " ", normalized).strip()


def parse_postal_code(postal_code: Optional[str]) -> Optional[int]:
    """Leading digits of a postal code as an int, or None."""
    if not postal_code:
        return None
    match = POSTAL_CODE_REGEX.match(postal_code)
    return int(match.group(1)) if match else None


class LocationMatcher:
    """Resolves free-text address parts to ref_provinces / ref_districts / ref_sub_districts ids."""

    def __init__(self, client=None):
        self.client = client or get_supabase_client()

    def _find_by_name(
        self,
        table: str,
        columns: str,
        name: Optional[str],
        parent_column: Optional[str] = None,
        parent_id: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        term = normalize_location_name(name)
        if not term:
            return None

        query = self.client.table(table) \
            .select(columns) \
            .or_(build_ilike_filter(NAME_COLUMNS, term))

        if parent_column and parent_id is not None:
            query = query.eq(parent_column, parent_id)

        result = query.limit(1).execute()
        return result.data[0] if result.data else None

    def _get_parent_id(self, table: str, parent_column: str, row_id: int) -> Optional[int]:
        result = self.client.table(table) \
            .select(parent_column) \
            .eq("id", row_id) \
            .limit(1) \
            .execute()
        return result.data[0].get(parent_column) if result.data else None

    def _find_subdistrict_by_postal_code(self, postal_code: Optional[str]) -> Optional[Dict[str, Any]]:
        zip_code = parse_postal_code(postal_code)
        if zip_code is None:
            return None

        result = self.client.table("ref_sub_districts") \
            .select("id, district_id") \
            .eq("zip_code", zip_code) \
            .limit(1) \
            .execute()
        return result.data[0] if result.data else None

    async def match_location_codes(self, components: AddressComponents) -> Optional[MatchedLocation]:
        """
        Match address components to reference codes.

        Args:
            components: Parsed address components

        Returns:
            MatchedLocation with whatever levels resolved, or None when nothing did
        """
        matched = MatchedLocation()

        province = self._find_by_name("ref_provinces", "id, name_th, name_en", components.province)
        if province:
            matched.province_code = province["id"]

        district = self._find_by_name(
            "ref_districts", "id, name_th, name_en, province_id", components.district,
            parent_column="province_id", parent_id=matched.province_code
        )
        if district:
            matched.district_code = district["id"]
            if matched.province_code is None:
                matched.province_code = district.get("province_id")

        subdistrict = self._find_by_name(
            "ref_sub_districts", "id, name_th, name_en, district_id, zip_code", components.subdistrict,
            parent_column="district_id", parent_id=matched.district_code
        )
        if subdistrict:
            matched.subdistrict_code = subdistrict["id"]
            if matched.district_code is None:
                matched.district_code = subdistrict.get("district_id")

        if matched.subdistrict_code is None:
            by_postal = self._find_subdistrict_by_postal_code(components.postal_code)
            if by_postal:
                matched.subdistrict_code = by_postal["id"]
                if matched.district_code is None:
                    matched.district_code = by_postal.get("district_id")

        if matched.is_empty():
            return None

        self._backfill(matched)
        return matched

    def _backfill(self, matched: MatchedLocation) -> None:
        """Derive ancestors from the most specific level; it wins over a disagreeing ancestor."""
        if matched.subdistrict_code is not None:
            district_id = self._get_parent_id("ref_sub_districts", "district_id", matched.subdistrict_code)
            if district_id is not None and district_id != matched.district_code:
                if matched.district_code is not None:
                    logger.info(
                        f"Subdistrict {matched.subdistrict_code} belongs to district {district_id}, "
                        f"replacing {matched.district_code}"
                    )
                matched.district_code = district_id

        if matched.district_code is not None:
            province_id = self._get_parent_id("ref_districts", "province_id", matched.district_code)
            if province_id is not None and province_id != matched.province_code:
                if matched.province_code is not None:
                    logger.info(
                        f"District {matched.district_code} belongs to province {province_id}, "
                        f"replacing {matched.province_code}"
                    )
                matched.province_code = province_id

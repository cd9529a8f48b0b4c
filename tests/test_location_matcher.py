from __future__ import annotations

import pytest

from places.location_matcher import (
    AddressComponents,
    LocationMatcher,
    MatchedLocation,
    normalize_location_name,
    parse_postal_code,
)

from fakes import FakeSupabase


@pytest.fixture
def reference_db() -> FakeSupabase:
    db = FakeSupabase()
    db.seed(
        "ref_provinces",
        {"id": 10, "name_th": "กรุงเทพมหานคร", "name_en": "Bangkok"},
        {"id": 50, "name_th": "เชียงใหม่", "name_en": "Chiang Mai"},
        {"id": 55, "name_th": "น่าน", "name_en": "Nan"},
    )
    db.seed(
        "ref_districts",
        {"id": 1039, "name_th": "วัฒนา", "name_en": "Khet Watthana", "province_id": 10},
        {"id": 5001, "name_th": "เมืองเชียงใหม่", "name_en": "Mueang Chiang Mai", "province_id": 50},
        {"id": 5501, "name_th": "เมืองน่าน", "name_en": "Mueang Nan", "province_id": 55},
    )
    db.seed(
        "ref_sub_districts",
        {"id": 103901, "name_th": "คลองเตยเหนือ", "name_en": "Khlong Toei Nuea", "district_id": 1039, "zip_code": 10110},
        {"id": 500101, "name_th": "ศรีภูมิ", "name_en": "Si Phum", "district_id": 5001, "zip_code": 50200},
        {"id": 550101, "name_th": "ในเวียง", "name_en": "Nai Wiang", "district_id": 5501, "zip_code": 55000},
    )
    return db


def _match(db, **components):
    return LocationMatcher(client=db).match_location_codes(AddressComponents(**components))


@pytest.mark.parametrize("raw, expected", [
    ("จังหวัดเชียงใหม่", "เชียงใหม่"),
    ("อำเภอเมืองน่าน", "เมืองน่าน"),
    ("แขวงคลองเตยเหนือ", "คลองเตยเหนือ"),
    ("เขตวัฒนา", "วัฒนา"),
    ("จ. เชียงใหม่", "เชียงใหม่"),
    ("Province of Nan", "Nan"),
    ("Chang Wat Chiang Mai", "Chiang Mai"),
    ("กรุงเทพมหานคร", "กรุงเทพ"),
    ("  Si   Phum ", "Si Phum"),
    (None, ""),
])
def test_normalize_location_name(raw, expected):
    assert normalize_location_name(raw) == expected


@pytest.mark.parametrize("raw, expected", [("10110", 10110), ("50200-1234", 50200), ("abc", None), (None, None)])
def test_parse_postal_code(raw, expected):
    assert parse_postal_code(raw) == expected


def test_address_components_from_dict_ignores_unknown_keys():
    components = AddressComponents.from_dict({"province": "น่าน", "lat": 1})

    assert components.province == "น่าน"
    assert components.district is None


@pytest.mark.asyncio
async def test_full_match_by_name(reference_db):
    matched = await _match(reference_db, province="เชียงใหม่", district="อำเภอเมืองเชียงใหม่", subdistrict="ตำบลศรีภูมิ")

    assert matched == MatchedLocation(province_code=50, district_code=5001, subdistrict_code=500101)


@pytest.mark.asyncio
async def test_returns_none_when_nothing_matches(reference_db):
    matched = await _match(reference_db, province="Atlantis", district="Nowhere", subdistrict="Void", postal_code="99999")

    assert matched is None


@pytest.mark.asyncio
async def test_returns_none_for_empty_components(reference_db):
    assert await _match(reference_db) is None


@pytest.mark.asyncio
async def test_postal_code_alone_backfills_full_triple(reference_db):
    matched = await _match(reference_db, postal_code="55000")

    assert matched.to_dict() == {"province_code": 55, "district_code": 5501, "subdistrict_code": 550101}


@pytest.mark.asyncio
async def test_prefixed_province_matches_reference_row(reference_db):
    matched = await _match(reference_db, province="Province of Nan")

    assert matched == MatchedLocation(province_code=55)


@pytest.mark.asyncio
async def test_bangkok_variant_resolved_through_postal_code(reference_db):
    matched = await _match(reference_db, province="Bangkok Metropolis", postal_code="10110")

    assert matched == MatchedLocation(province_code=10, district_code=1039, subdistrict_code=103901)


@pytest.mark.asyncio
async def test_district_backfills_province(reference_db):
    matched = await _match(reference_db, district="เมืองน่าน")

    assert matched == MatchedLocation(province_code=55, district_code=5501)


@pytest.mark.asyncio
async def test_subdistrict_backfills_district_and_province(reference_db):
    matched = await _match(reference_db, subdistrict="Si Phum")

    assert matched == MatchedLocation(province_code=50, district_code=5001, subdistrict_code=500101)


@pytest.mark.asyncio
async def test_district_search_is_scoped_to_matched_province(reference_db):
    # "เมือง" prefixes districts in both provinces; the province filter keeps Nan's
    matched = await _match(reference_db, province="น่าน", district="เมือง")

    assert matched.district_code == 5501


@pytest.mark.asyncio
async def test_subdistrict_parent_overrides_contradicting_postal_match(reference_db):
    # Name resolves Chiang Mai, postal code points at Bangkok: the subdistrict chain wins
    matched = await _match(reference_db, province="เชียงใหม่", postal_code="10110")

    assert matched == MatchedLocation(province_code=10, district_code=1039, subdistrict_code=103901)


@pytest.mark.asyncio
async def test_wildcards_in_names_are_literal(reference_db):
    matched = await _match(reference_db, province="%")

    assert matched is None
    assert all('\\%' in expression for expression in reference_db.or_filters)

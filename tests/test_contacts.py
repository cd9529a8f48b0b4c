from __future__ import annotations

import pytest

from contacts.routes import (
    create_contact,
    delete_contact,
    get_contact,
    list_contacts,
    list_site_contacts,
    search_contacts,
    update_contact,
)
from contacts.service import ContactService

from fakes import make_request, response_json

SITE_A = "dddddddd-0000-4000-8000-00000000000a"
SITE_B = "dddddddd-0000-4000-8000-00000000000b"
CONTACT_ID = "eeeeeeee-0000-4000-8000-000000000001"


@pytest.fixture
def contacts_db(fake_db):
    fake_db.seed(
        "child_site_contacts",
        {"id": CONTACT_ID, "site_id": SITE_A, "person_name": "สมศักดิ์", "nickname": "ศักดิ์", "created_at": "2024-01-01T00:00:00"},
        {"id": "c2", "site_id": SITE_A, "person_name": "Anan 100%", "nickname": None, "created_at": "2024-03-01T00:00:00"},
        {"id": "c3", "site_id": SITE_B, "person_name": "บุญมี", "nickname": "มี", "created_at": "2024-02-01T00:00:00"},
    )
    return fake_db


@pytest.mark.asyncio
async def test_list_contacts_paginates(contacts_db):
    rows, pagination = await ContactService(contacts_db).list_contacts(page=2, limit=2)

    assert [row["id"] for row in rows] == [CONTACT_ID]
    assert pagination["total"] == 3
    assert pagination["totalPages"] == 2
    assert pagination["hasPrevious"] is True


@pytest.mark.asyncio
async def test_list_by_site_newest_first(contacts_db):
    rows = await ContactService(contacts_db).list_by_site(SITE_A)

    assert [row["id"] for row in rows] == ["c2", CONTACT_ID]


@pytest.mark.asyncio
async def test_search_matches_nickname_and_scopes_site(contacts_db):
    service = ContactService(contacts_db)

    assert [row["id"] for row in await service.search_contacts("ศักดิ์")] == [CONTACT_ID]
    assert await service.search_contacts("มี", site_id=SITE_A) == []


@pytest.mark.asyncio
async def test_search_short_query_returns_nothing(contacts_db):
    assert await ContactService(contacts_db).search_contacts(" a ") == []
    assert contacts_db.calls_for("child_site_contacts") == []


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(contacts_db):
    service = ContactService(contacts_db)

    assert [row["id"] for row in await service.search_contacts("0%")] == ["c2"]
    assert await service.search_contacts("%%") == []


@pytest.mark.asyncio
async def test_search_text_cannot_extend_filter(contacts_db):
    results = await ContactService(contacts_db).search_contacts("x,site_id.neq.0")

    assert results == []


@pytest.mark.asyncio
async def test_create_contact_keeps_known_fields(contacts_db, assigner_token):
    response = await create_contact(make_request("POST", "contacts", body={
        "site_id": SITE_B, "person_name": "ใหม่", "phone": ["0812345678"], "role": "boss",
    }, token=assigner_token))

    data = response_json(response)["data"]
    assert response.status_code == 201
    assert data["phone"] == ["0812345678"]
    assert "role" not in data


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"site_id": SITE_A}, {"person_name": "x"}, {"person_name": "x", "site_id": "bad"}])
async def test_create_contact_validation(contacts_db, assigner_token, body):
    response = await create_contact(make_request("POST", "contacts", body=body, token=assigner_token))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_contact_requires_level_one(contacts_db, tech_token):
    response = await create_contact(make_request("POST", "contacts", body={"site_id": SITE_A, "person_name": "x"}, token=tech_token))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_read_routes(contacts_db, tech_token):
    listed = await list_contacts(make_request("GET", "contacts", params={"site_id": SITE_A}, token=tech_token))
    searched = await search_contacts(make_request("GET", "contacts/search", params={"q": "บุญ"}, token=tech_token))
    by_site = await list_site_contacts(make_request("GET", f"contacts/site/{SITE_B}", route_params={"site_id": SITE_B}, token=tech_token))
    single = await get_contact(make_request("GET", f"contacts/{CONTACT_ID}", route_params={"contact_id": CONTACT_ID}, token=tech_token))

    assert response_json(listed)["pagination"]["total"] == 2
    assert [row["id"] for row in response_json(searched)["data"]] == ["c3"]
    assert [row["id"] for row in response_json(by_site)["data"]] == ["c3"]
    assert response_json(single)["data"]["person_name"] == "สมศักดิ์"


@pytest.mark.asyncio
async def test_get_missing_contact(contacts_db, tech_token):
    missing = "eeeeeeee-0000-4000-8000-0000000000ff"

    response = await get_contact(make_request("GET", f"contacts/{missing}", route_params={"contact_id": missing}, token=tech_token))

    assert response.status_code == 404
    assert response_json(response)["error"] == "ไม่พบข้อมูลผู้ติดต่อ"


@pytest.mark.asyncio
async def test_update_and_delete_contact(contacts_db, assigner_token):
    route_params = {"contact_id": CONTACT_ID}

    updated = await update_contact(make_request(
        "PUT", f"contacts/{CONTACT_ID}", body={"note": "โทรก่อนเข้า", "id": "hijack"}, route_params=route_params, token=assigner_token
    ))
    deleted = await delete_contact(make_request("DELETE", f"contacts/{CONTACT_ID}", route_params=route_params, token=assigner_token))

    assert response_json(updated)["data"]["note"] == "โทรก่อนเข้า"
    assert response_json(updated)["data"]["id"] == CONTACT_ID
    assert deleted.status_code == 200
    assert CONTACT_ID not in [row["id"] for row in contacts_db.rows("child_site_contacts")]

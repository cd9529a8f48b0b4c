from __future__ import annotations

import pytest

from prizes.routes import (
    assign_prize,
    create_prize,
    delete_prize,
    get_prize,
    list_prize_winners,
    list_prizes,
    unassign_prize,
    update_prize,
)
from prizes.service import PrizeService
from shared.errors import NotFoundError, ValidationError

from fakes import make_request, response_json

PRIZE_ID = "56565656-0000-4000-8000-000000000001"
GIVEN_PRIZE_ID = "56565656-0000-4000-8000-000000000002"
WINNER_ID = "78787878-0000-4000-8000-000000000001"
NEWCOMER_ID = "78787878-0000-4000-8000-000000000002"


@pytest.fixture
def prizes_db(fake_db):
    fake_db.seed(
        "prizes",
        {"id": PRIZE_ID, "name": "บัตรกำนัล", "image_url": None, "created_at": "2024-01-01"},
        {"id": GIVEN_PRIZE_ID, "name": "ช่างดีเด่น", "image_url": "https://cdn.test/star.png", "created_at": "2024-02-01"},
    )
    fake_db.seed("employees", {"id": WINNER_ID, "name": "สมชาย"}, {"id": NEWCOMER_ID, "name": "สมหญิง"})
    fake_db.seed("user_prizes", {"id": "up1", "user_id": WINNER_ID, "prize_id": GIVEN_PRIZE_ID, "created_at": "2024-02-02"})
    return fake_db


@pytest.mark.asyncio
async def test_create_prize_sanitizes_input(prizes_db):
    prize = await PrizeService(prizes_db).create_prize({"name": "ทอง", "id": "forced", "winner": "me"})

    assert prize["name"] == "ทอง"
    assert prize["id"] != "forced"
    assert "winner" not in prize


@pytest.mark.asyncio
async def test_create_prize_requires_name(prizes_db):
    with pytest.raises(ValidationError):
        await PrizeService(prizes_db).create_prize({"image_url": "x"})


@pytest.mark.asyncio
async def test_update_prize_with_nothing_to_update(prizes_db):
    with pytest.raises(ValidationError, match="ไม่มีข้อมูลที่ต้องการอัปเดต"):
        await PrizeService(prizes_db).update_prize(PRIZE_ID, {"id": "x"})


@pytest.mark.asyncio
async def test_update_missing_prize(prizes_db):
    with pytest.raises(NotFoundError, match="ไม่พบรางวัลที่ระบุ"):
        await PrizeService(prizes_db).update_prize("missing", {"name": "x"})


@pytest.mark.asyncio
async def test_delete_assigned_prize_is_refused(prizes_db):
    with pytest.raises(ValidationError, match="ไม่สามารถลบรางวัลที่มีการมอบให้ผู้ใช้แล้ว"):
        await PrizeService(prizes_db).delete_prize(GIVEN_PRIZE_ID)


@pytest.mark.asyncio
async def test_assign_prize_checks_employee_and_duplicates(prizes_db):
    service = PrizeService(prizes_db)

    with pytest.raises(NotFoundError, match="ไม่พบพนักงานที่ระบุ"):
        await service.assign_prize(PRIZE_ID, "78787878-0000-4000-8000-0000000000ff")
    with pytest.raises(ValidationError, match="ได้รับรางวัลนี้แล้ว"):
        await service.assign_prize(GIVEN_PRIZE_ID, WINNER_ID)

    assignment = await service.assign_prize(PRIZE_ID, NEWCOMER_ID)
    assert assignment["user_id"] == NEWCOMER_ID
    assert assignment["prize_id"] == PRIZE_ID


@pytest.mark.asyncio
async def test_unassign_missing_assignment(prizes_db):
    with pytest.raises(NotFoundError, match="ไม่พบการมอบรางวัลที่ระบุ"):
        await PrizeService(prizes_db).unassign_prize(PRIZE_ID, WINNER_ID)


@pytest.mark.asyncio
async def test_read_routes(prizes_db, tech_token):
    listed = await list_prizes(make_request("GET", "prizes", token=tech_token))
    winners = await list_prize_winners(make_request("GET", "prizes/winners", params={"user_id": WINNER_ID}, token=tech_token))
    single = await get_prize(make_request("GET", f"prizes/{PRIZE_ID}", route_params={"prize_id": PRIZE_ID}, token=tech_token))

    assert [p["id"] for p in response_json(listed)["data"]] == [GIVEN_PRIZE_ID, PRIZE_ID]
    assert response_json(winners)["pagination"]["total"] == 1
    assert response_json(single)["data"]["name"] == "บัตรกำนัล"


@pytest.mark.asyncio
async def test_winners_route_validates_filters(prizes_db, tech_token):
    response = await list_prize_winners(make_request("GET", "prizes/winners", params={"prize_id": "nope"}, token=tech_token))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_write_routes_require_admin(prizes_db, assigner_token):
    response = await create_prize(make_request("POST", "prizes", body={"name": "x"}, token=assigner_token))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_prize_lifecycle_routes(prizes_db, admin_token):
    created = await create_prize(make_request("POST", "prizes", body={"name": "ทีมยอดเยี่ยม"}, token=admin_token))
    prize_id = response_json(created)["data"]["id"]
    route_params = {"prize_id": prize_id}

    updated = await update_prize(make_request(
        "PUT", f"prizes/{prize_id}", body={"image_url": "https://cdn.test/team.png"}, route_params=route_params, token=admin_token
    ))
    assigned = await assign_prize(make_request(
        "POST", f"prizes/{prize_id}/assign", body={"user_id": NEWCOMER_ID}, route_params=route_params, token=admin_token
    ))
    blocked = await delete_prize(make_request("DELETE", f"prizes/{prize_id}", route_params=route_params, token=admin_token))
    unassigned = await unassign_prize(make_request(
        "DELETE", f"prizes/{prize_id}/unassign/{NEWCOMER_ID}", route_params={**route_params, "user_id": NEWCOMER_ID}, token=admin_token
    ))
    deleted = await delete_prize(make_request("DELETE", f"prizes/{prize_id}", route_params=route_params, token=admin_token))

    assert created.status_code == 201
    assert response_json(updated)["data"]["image_url"] == "https://cdn.test/team.png"
    assert assigned.status_code == 201
    assert blocked.status_code == 400
    assert unassigned.status_code == 200
    assert deleted.status_code == 200
    assert prize_id not in [p["id"] for p in prizes_db.rows("prizes")]


@pytest.mark.asyncio
async def test_assign_route_requires_user_id(prizes_db, admin_token):
    response = await assign_prize(make_request(
        "POST", f"prizes/{PRIZE_ID}/assign", body={}, route_params={"prize_id": PRIZE_ID}, token=admin_token
    ))

    assert response.status_code == 400

from __future__ import annotations

import json

import pytest

import function_app

from fakes import make_request


@pytest.fixture(scope="module")
def functions():
    # FunctionApp.get_functions() builds the function list and can only be called once per app
    return {fn.get_function_name(): fn for fn in function_app.app.get_functions()}


def test_every_feature_is_registered(functions):
    names = set(functions)

    assert {
        "health_check",
        "warmup",
        "fleet_sync_http",
        "fleet_sync_timer",
        "list_fleet",
        "places_details",
        "list_contacts",
        "list_announcements",
        "list_notifications",
        "list_leave_requests",
        "assign_prize",
        "delete_stock_location",
    } <= names
    assert len(names) == 49


def test_health_check(functions):
    handler = functions["health_check"].get_user_function()

    response = handler(make_request("GET", "health"))

    body = json.loads(response.get_body())
    assert response.status_code == 200
    assert body["status"] == "healthy"
    assert body["service"] == "Field Service Backend"


def test_warmup(functions):
    handler = functions["warmup"].get_user_function()

    body = json.loads(handler(make_request("GET", "warmup")).get_body())

    assert body["status"] == "warm"

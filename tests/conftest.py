from __future__ import annotations

import pytest

import shared.auth
import shared.config
from shared.config import Settings
from shared.supabase_client import set_supabase_client

from fakes import (
    ADMIN_AUTH_ID,
    ADMIN_EMPLOYEE_ID,
    ASSIGNER_AUTH_ID,
    ASSIGNER_EMPLOYEE_ID,
    JWT_SECRET,
    TECH_AUTH_ID,
    TECH_EMPLOYEE_ID,
    FakeSupabase,
    make_token,
)


def _employee(employee_id: str, auth_user_id: str, name: str, level: int) -> dict:
    return {
        "id": employee_id,
        "auth_user_id": auth_user_id,
        "name": name,
        "is_active": True,
        "role_id": f"role-{level}",
        "role_code": {0: "technician_l1", 1: "assigner", 2: "admin"}[level],
        "role_name_th": name,
        "role_level": level,
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        supabase_jwt_secret=JWT_SECRET,
        fleet_username="Fleet",
        fleet_password="secret",
        fleet_base_url="http://tracking.test/Tracking/mobile",
        google_maps_api_key="maps-key",
        google_places_api_key="places-key",
        cron_secret="cron-secret",
    )


@pytest.fixture
def fake_db() -> FakeSupabase:
    db = FakeSupabase()
    db.seed(
        "v_employees",
        _employee(TECH_EMPLOYEE_ID, TECH_AUTH_ID, "ช่างหนึ่ง", 0),
        _employee(ASSIGNER_EMPLOYEE_ID, ASSIGNER_AUTH_ID, "ผู้มอบหมาย", 1),
        _employee(ADMIN_EMPLOYEE_ID, ADMIN_AUTH_ID, "แอดมิน", 2),
    )
    return db


@pytest.fixture(autouse=True)
def configured(monkeypatch, settings, fake_db):
    monkeypatch.setattr(shared.config, "_settings", settings)
    monkeypatch.setattr(shared.auth, "_jwks_client", None)
    set_supabase_client(fake_db)
    yield
    set_supabase_client(None)


@pytest.fixture
def admin_token() -> str:
    return make_token(ADMIN_AUTH_ID)


@pytest.fixture
def assigner_token() -> str:
    return make_token(ASSIGNER_AUTH_ID)


@pytest.fixture
def tech_token() -> str:
    return make_token(TECH_AUTH_ID)

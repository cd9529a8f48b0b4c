from __future__ import annotations

import json

import httpx
import pytest

from shared.config import ConfigurationError, Settings
from fleet_sync.service import (
    STATUS_MOVING,
    STATUS_PARKED_AT_BASE,
    STATUS_STOPPED,
    VEHICLE_STATUSES,
    FleetSyncService,
    classify_status,
    needs_geocode,
    parse_vehicle_name,
    parse_vehicle_record,
    should_log_history,
)
from fleet_sync.geocoder import ReverseGeocoder
from fleet_sync.tracking_client import TrackingAuthenticationError

from fakes import FakeSupabase

GARAGE = {"id": "garage-1", "name": "ลาดพร้าว", "latitude": 13.8, "longitude": 100.6, "radius_meters": 100, "is_active": True}
FAR_AWAY = (13.9, 100.7)


class StubTrackingClient:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    def login(self):
        self.calls.append("login")
        if self.error:
            raise self.error
        return "PHPSESSID=abc"

    def fetch_vehicles(self, session_cookie):
        self.calls.append(("fetch", session_cookie))
        return self.records


class StubGeocoder:
    def __init__(self, address="ที่อยู่ใหม่"):
        self.address = address
        self.calls = []

    async def reverse_geocode(self, lat, lng):
        self.calls.append((lat, lng))
        return self.address


def _record(vehicle_id, name, moving, lat, lng, speed=0, heading=0, signal=4):
    return [vehicle_id, name, 1 if moving else 0, lat, 0, lng, 0, speed, heading, signal]


def _service(settings, db, records, geocoder=None, tracking=None):
    return FleetSyncService(
        settings=settings,
        client=db,
        tracking_client=tracking or StubTrackingClient(records),
        geocoder=geocoder or StubGeocoder(),
    )


# Parsing


def test_parse_vehicle_name_extracts_plate_and_driver():
    assert parse_vehicle_name("1กข-1234 กท. คุณสมชาย") == ("1กข-1234 กท.", "คุณสมชาย")


def test_parse_vehicle_name_without_driver():
    assert parse_vehicle_name("ฮข-99 รถสำรอง") == ("ฮข-99", None)


def test_parse_vehicle_name_empty():
    assert parse_vehicle_name("") == (None, None)
    assert parse_vehicle_name(None) == (None, None)


def test_parse_vehicle_record_fields():
    vehicle = parse_vehicle_record(["55", "1กข-1234 คุณเอ", "1", "13.7", 0, "100.5", 0, "42.5", "90", "3"])

    assert vehicle.id == "55"
    assert vehicle.plate_number == "1กข-1234"
    assert vehicle.driver_name == "คุณเอ"
    assert vehicle.is_moving is True
    assert vehicle.latitude == 13.7
    assert vehicle.longitude == 100.5
    assert vehicle.speed == 42.5
    assert vehicle.heading == 90
    assert vehicle.signal_strength == 3


def test_parse_vehicle_record_unparsable_numbers_fall_back_to_zero():
    vehicle = parse_vehicle_record(["7", None, 0, "abc", 0, "nan", 0, "fast", "north", {}])

    assert vehicle.latitude == 0
    assert vehicle.longitude == 0
    assert vehicle.speed == 0
    assert vehicle.heading == 0
    assert vehicle.signal_strength == 0
    assert vehicle.is_moving is False
    assert vehicle.name == ""


def test_parse_vehicle_record_short_tuple():
    vehicle = parse_vehicle_record([12, "car"])

    assert vehicle.id == "12"
    assert vehicle.latitude == 0
    assert vehicle.signal_strength == 0


def test_parse_vehicle_record_infinite_numbers_fall_back_to_zero():
    vehicle = parse_vehicle_record(json.loads('["A", "car", 0, 13.0, 0, 100.0, 0, 1, 1e400, Infinity]'))

    assert vehicle.heading == 0
    assert vehicle.signal_strength == 0
    assert vehicle.latitude == 13.0


@pytest.mark.parametrize("flag, expected", [(1, True), ("1", True), (True, False), (1.0, False), (0, False), ("0", False), (None, False)])
def test_parse_vehicle_record_motion_flag_is_strict(flag, expected):
    assert parse_vehicle_record(["A", "car", flag, 13.0, 0, 100.0]).is_moving is expected


@pytest.mark.parametrize("raw", ["not-a-list", [], [None, "x"], ["", "x"]])
def test_parse_vehicle_record_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_vehicle_record(raw)


# Classification


@pytest.mark.parametrize("is_at_base", [True, False])
def test_moving_always_wins(is_at_base):
    assert classify_status(True, is_at_base) == STATUS_MOVING


def test_stationary_classification():
    assert classify_status(False, True) == STATUS_PARKED_AT_BASE
    assert classify_status(False, False) == STATUS_STOPPED


@pytest.mark.parametrize("status", VEHICLE_STATUSES)
def test_history_skipped_only_when_parked_at_base(status):
    assert should_log_history(status) is (status != STATUS_PARKED_AT_BASE)


# Geocode caching


def test_needs_geocode_without_prior_row():
    assert needs_geocode(None, 13.0, 100.0) is True


def test_needs_geocode_without_prior_address():
    assert needs_geocode({"address": None, "latitude": 13.0, "longitude": 100.0}, 13.0, 100.0) is True


def test_needs_geocode_without_prior_coordinates():
    assert needs_geocode({"address": "x", "latitude": None, "longitude": None}, 13.0, 100.0) is True


def test_needs_geocode_small_move_reuses_address():
    # 0.0003 deg latitude is about 33 m
    existing = {"address": "x", "latitude": 13.0, "longitude": 100.0}

    assert needs_geocode(existing, 13.0003, 100.0) is False


def test_needs_geocode_large_move():
    # 0.0006 deg latitude is about 67 m
    existing = {"address": "x", "latitude": 13.0, "longitude": 100.0}

    assert needs_geocode(existing, 13.0006, 100.0) is True


# Sync cycle


@pytest.mark.asyncio
async def test_sync_classifies_and_counts(settings):
    db = FakeSupabase()
    db.seed("fleet_garages", GARAGE, {**GARAGE, "id": "garage-off", "latitude": 13.9, "longitude": 100.7, "is_active": False})
    db.seed("fleet_vehicles", {"id": "C", "address": "ที่อยู่เดิม", "latitude": FAR_AWAY[0], "longitude": FAR_AWAY[1]})
    records = [
        _record("A", "1กข-1111 คุณเอ", True, 13.8, 100.6, speed=30),
        _record("B", "1กข-2222 คุณบี", False, 13.8002, 100.6),
        _record("C", "1กข-3333 คุณซี", False, *FAR_AWAY),
    ]
    geocoder = StubGeocoder()

    result = await _service(settings, db, records, geocoder=geocoder).sync()

    assert result == {"synced": 3, "history_logged": 2}

    vehicles = {row["id"]: row for row in db.rows("fleet_vehicles")}
    assert vehicles["A"]["status"] == STATUS_MOVING
    assert vehicles["B"]["status"] == STATUS_PARKED_AT_BASE
    assert vehicles["C"]["status"] == STATUS_STOPPED
    assert vehicles["A"]["current_garage_id"] == "garage-1"
    assert vehicles["B"]["current_garage_id"] == "garage-1"
    assert vehicles["C"]["current_garage_id"] is None
    assert vehicles["A"]["plate_number"] == "1กข-1111"
    assert vehicles["A"]["driver_name"] == "คุณเอ"
    assert vehicles["C"]["address"] == "ที่อยู่เดิม"
    assert vehicles["A"]["last_sync_at"] == vehicles["C"]["last_sync_at"]

    history_ids = sorted(row["vehicle_id"] for row in db.rows("fleet_vehicle_history"))
    assert history_ids == ["A", "C"]

    # Only vehicles without a cached address hit the geocoder
    assert geocoder.calls == [(13.8, 100.6), (13.8002, 100.6)]


@pytest.mark.asyncio
async def test_sync_loads_garages_once(settings):
    db = FakeSupabase()
    db.seed("fleet_garages", GARAGE)
    records = [_record(str(i), f"car {i}", False, 13.8, 100.6) for i in range(4)]

    await _service(settings, db, records).sync()

    assert len(db.calls_for("fleet_garages", "select")) == 1


@pytest.mark.asyncio
async def test_sync_regeocodes_after_large_move(settings):
    db = FakeSupabase()
    db.seed("fleet_vehicles", {"id": "A", "address": "เก่า", "latitude": 13.0, "longitude": 100.0})
    geocoder = StubGeocoder("ใหม่")

    await _service(settings, db, [_record("A", "car", True, 13.001, 100.0)], geocoder=geocoder).sync()

    assert geocoder.calls == [(13.001, 100.0)]
    assert db.rows("fleet_vehicles")[0]["address"] == "ใหม่"


@pytest.mark.asyncio
async def test_sync_stores_null_address_when_geocoding_fails(settings):
    db = FakeSupabase()

    result = await _service(settings, db, [_record("A", "car", True, 13.0, 100.0)], geocoder=StubGeocoder(None)).sync()

    assert result == {"synced": 1, "history_logged": 1}
    assert db.rows("fleet_vehicles")[0]["address"] is None
    assert db.rows("fleet_vehicle_history")[0]["address"] is None


@pytest.mark.asyncio
async def test_sync_skips_malformed_records(settings):
    db = FakeSupabase()
    records = ["garbage", [], _record("A", "car", False, 13.0, 100.0)]

    result = await _service(settings, db, records).sync()

    assert result == {"synced": 1, "history_logged": 1}


@pytest.mark.asyncio
async def test_sync_row_failures_do_not_abort_batch(settings):
    db = FakeSupabase()
    db.fail("fleet_vehicles", "upsert")
    records = [_record("A", "car", True, 13.0, 100.0), _record("B", "car", False, 14.0, 101.0)]

    result = await _service(settings, db, records).sync()

    assert result == {"synced": 0, "history_logged": 2}


@pytest.mark.asyncio
async def test_sync_history_failure_still_counts_upsert(settings):
    db = FakeSupabase()
    db.fail("fleet_vehicle_history", "insert")

    result = await _service(settings, db, [_record("A", "car", True, 13.0, 100.0)]).sync()

    assert result == {"synced": 1, "history_logged": 0}


@pytest.mark.asyncio
async def test_sync_upsert_replaces_existing_row(settings):
    db = FakeSupabase()
    db.seed("fleet_vehicles", {"id": "A", "status": "stopped", "address": None, "latitude": 1.0, "longitude": 1.0, "custom_name": "รถผู้จัดการ"})

    await _service(settings, db, [_record("A", "car", True, 13.0, 100.0)]).sync()

    rows = db.rows("fleet_vehicles")
    assert len(rows) == 1
    assert rows[0]["status"] == STATUS_MOVING
    assert rows[0]["custom_name"] == "รถผู้จัดการ"


@pytest.mark.asyncio
async def test_sync_missing_configuration_aborts_before_network(settings):
    incomplete = Settings(fleet_username="u", fleet_password="p", cron_secret="c")
    tracking = StubTrackingClient([])

    with pytest.raises(ConfigurationError, match="GOOGLE_MAPS_API_KEY"):
        await _service(incomplete, FakeSupabase(), [], tracking=tracking).sync()

    assert tracking.calls == []


@pytest.mark.asyncio
async def test_sync_authentication_failure_aborts_cycle(settings):
    db = FakeSupabase()
    tracking = StubTrackingClient(error=TrackingAuthenticationError("Fleet login failed - invalid credentials"))

    with pytest.raises(TrackingAuthenticationError):
        await _service(settings, db, [], tracking=tracking).sync()

    assert db.calls == []


@pytest.mark.asyncio
async def test_current_garage_follows_radius_not_status(settings):
    db = FakeSupabase()
    db.seed("fleet_garages", GARAGE)
    # 0.0018 deg latitude is about 200 m, outside the 100 m radius
    records = [
        _record("A", "car", True, 13.8, 100.6),
        _record("B", "car", False, 13.8018, 100.6),
    ]

    await _service(settings, db, records).sync()

    vehicles = {row["id"]: row for row in db.rows("fleet_vehicles")}
    assert vehicles["A"]["status"] == STATUS_MOVING
    assert vehicles["A"]["current_garage_id"] == "garage-1"
    assert vehicles["B"]["status"] == STATUS_STOPPED
    assert vehicles["B"]["current_garage_id"] is None


@pytest.mark.asyncio
async def test_sync_infinite_telemetry_does_not_block_fleet(settings):
    db = FakeSupabase()
    records = json.loads('[["A", "car", 0, 13.0, 0, 100.0, 0, 1, 1e400, 2], ["B", "car", 1, 14.0, 0, 101.0, 0, 5, 90, 3]]')

    result = await _service(settings, db, records).sync()

    assert result == {"synced": 2, "history_logged": 2}
    assert {row["id"]: row["heading"] for row in db.rows("fleet_vehicles")} == {"A": 0, "B": 90}


class RaisingGeocoder:
    async def reverse_geocode(self, lat, lng):
        raise AttributeError("'NoneType' object has no attribute 'get'")


@pytest.mark.asyncio
async def test_sync_address_lookup_error_still_writes_vehicle(settings):
    db = FakeSupabase()

    result = await _service(settings, db, [_record("A", "car", True, 13.0, 100.0)], geocoder=RaisingGeocoder()).sync()

    assert result == {"synced": 1, "history_logged": 1}
    assert db.rows("fleet_vehicles")[0]["address"] is None
    assert db.rows("fleet_vehicle_history")[0]["address"] is None


@pytest.mark.asyncio
async def test_sync_malformed_geocode_payload_still_writes_vehicle(settings):
    def handler(request):
        return httpx.Response(200, json={"status": "OK", "results": [None]})

    db = FakeSupabase()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        geocoder = ReverseGeocoder("maps-key", http_client=http_client)
        result = await _service(settings, db, [_record("A", "car", True, 13.0, 100.0)], geocoder=geocoder).sync()

    assert result == {"synced": 1, "history_logged": 1}
    assert db.rows("fleet_vehicles")[0]["address"] is None

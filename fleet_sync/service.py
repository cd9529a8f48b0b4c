"""
Fleet sync job: pulls vehicle telemetry from the tracking portal and stores
current state plus route history.

Runs every 5 minutes. Each vehicle is classified as:
- moving: the portal's motion flag is set
- parked_at_base: not moving and inside the nearest garage radius
- stopped: anything else

History is not written for parked_at_base vehicles; they produce no useful
trajectory and would dominate the table.
"""

import re
import math
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from shared.config import Settings, get_settings
from shared.supabase_client import get_supabase_client
from .geo import Garage, GarageMatch, calculate_distance, find_nearest_garage
from .geocoder import ReverseGeocoder
from .tracking_client import TrackingClient

logger = logging.getLogger(__name__)

STATUS_MOVING = "moving"
STATUS_STOPPED = "stopped"
STATUS_PARKED_AT_BASE = "parked_at_base"
VEHICLE_STATUSES = (STATUS_MOVING, STATUS_STOPPED, STATUS_PARKED_AT_BASE)

# Re-geocode only after the vehicle moved further than this
GEOCODE_DISTANCE_THRESHOLD_METERS = 50

PLATE_REGEX = re.compile(r"^([\dก-ฮ]+-?[\d]+(?:\s*กท\.?)?)")
DRIVER_REGEX = re.compile(r"คุณ[\u0E00-\u0E7F\w+]+")


@dataclass
class VehicleSnapshot:
    """One parsed vehicle tuple from the tracking portal."""

    id: str
    name: str
    plate_number: Optional[str]
    driver_name: Optional[str]
    is_moving: bool
    latitude: float
    longitude: float
    speed: float
    heading: int
    signal_strength: int


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return int(_to_float(value))


def _is_moving_flag(value: Any) -> bool:
    # Only the integer 1 or the string "1"; True and 1.0 do not count
    return (type(value) is int and value == 1) or value == "1"


def _field(raw: List[Any], index: int) -> Any:
    return raw[index] if index < len(raw) else None


def parse_vehicle_name(name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract plate number and driver name from the portal's combined name field.

    Example: "1กข-1234 กท. คุณสมชาย" -> ("1กข-1234 กท.", "คุณสมชาย")

    Returns:
        Tuple of (plate_number, driver_name), either may be None
    """
    if not name:
        return None, None

    plate_match = PLATE_REGEX.search(name)
    plate_number = plate_match.group(1).strip() if plate_match else None

    driver_match = DRIVER_REGEX.search(name)
    driver_name = driver_match.group(0) if driver_match else None

    return plate_number, driver_name


def parse_vehicle_record(raw: Any) -> VehicleSnapshot:
    """
    Parse a positional vehicle tuple.

    Layout: [id, name, moving_flag, lat, _, lng, _, speed, heading, signal, ...].
    Numeric fields that fail to parse become 0.

    Raises:
        ValueError: If the record is not a list or has no vehicle id
    """
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"Vehicle record is not a list: {raw!r}")

    vehicle_id = _field(raw, 0)
    if vehicle_id is None or str(vehicle_id) == "":
        raise ValueError("Vehicle record has no id")

    full_name = _field(raw, 1)
    full_name = str(full_name) if full_name is not None else ""
    plate_number, driver_name = parse_vehicle_name(full_name)

    moving_flag = _field(raw, 2)

    return VehicleSnapshot(
        id=str(vehicle_id),
        name=full_name,
        plate_number=plate_number,
        driver_name=driver_name,
        is_moving=_is_moving_flag(moving_flag),
        latitude=_to_float(_field(raw, 3)),
        longitude=_to_float(_field(raw, 5)),
        speed=_to_float(_field(raw, 7)),
        heading=_to_int(_field(raw, 8)),
        signal_strength=_to_int(_field(raw, 9)),
    )


def classify_status(is_moving: bool, is_at_base: bool) -> str:
    """Moving always wins; otherwise parked_at_base inside a garage radius, else stopped."""
    if is_moving:
        return STATUS_MOVING
    if is_at_base:
        return STATUS_PARKED_AT_BASE
    return STATUS_STOPPED


def should_log_history(status: str) -> bool:
    """History rows are skipped for vehicles parked at base."""
    return status != STATUS_PARKED_AT_BASE


def needs_geocode(existing: Optional[Dict[str, Any]], lat: float, lng: float) -> bool:
    """
    Decide whether to call the geocoding API for a new position.

    Args:
        existing: Stored row with address/latitude/longitude, or None
        lat: New latitude
        lng: New longitude

    Returns:
        True when there is no cached address or the vehicle moved more than 50 m
    """
    if not existing or not existing.get("address"):
        return True

    prev_lat = existing.get("latitude")
    prev_lng = existing.get("longitude")
    if prev_lat is None or prev_lng is None:
        return True

    distance = calculate_distance(lat, lng, float(prev_lat), float(prev_lng))
    return distance > GEOCODE_DISTANCE_THRESHOLD_METERS


class FleetSyncService:
    """Orchestrates one sync cycle."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client=None,
        tracking_client: Optional[TrackingClient] = None,
        geocoder: Optional[ReverseGeocoder] = None
    ):
        self.settings = settings or get_settings()
        self.client = client or get_supabase_client(self.settings)
        self.tracking_client = tracking_client or TrackingClient(self.settings)
        self.geocoder = geocoder or ReverseGeocoder(self.settings.google_maps_api_key)

    async def sync(self) -> Dict[str, int]:
        """
        Run one sync cycle.

        Returns:
            dict with synced (current-state upserts) and history_logged counts

        Raises:
            ConfigurationError: If tracking credentials or the maps key are missing
            TrackingAuthenticationError: If the portal login or data fetch fails
        """
        self.settings.require("fleet_username", "fleet_password", "google_maps_api_key")

        now = datetime.now(timezone.utc).isoformat()

        session_cookie = self.tracking_client.login()
        raw_vehicles = self.tracking_client.fetch_vehicles(session_cookie)
        logger.info(f"[fleet-sync] Fetched {len(raw_vehicles)} vehicle records")

        garages = self._load_garages()

        synced = 0
        history_logged = 0

        for raw in raw_vehicles:
            try:
                vehicle = parse_vehicle_record(raw)
            except ValueError as e:
                logger.warning(f"[fleet-sync] Skipping malformed record: {e}")
                continue

            try:
                upserted, logged = await self._sync_vehicle(vehicle, garages, now)
            except Exception as e:
                logger.warning(f"[fleet-sync] Failed to sync vehicle {vehicle.id}: {e}")
                continue

            if upserted:
                synced += 1
            if logged:
                history_logged += 1

        return {"synced": synced, "history_logged": history_logged}

    def _load_garages(self) -> List[Garage]:
        """Load active garages once per cycle."""
        result = self.client.table("fleet_garages") \
            .select("id, name, latitude, longitude, radius_meters") \
            .eq("is_active", True) \
            .execute()

        garages = []
        for row in result.data or []:
            try:
                garages.append(Garage.from_row(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"[fleet-sync] Ignoring garage {row.get('id')}: {e}")
        return garages

    def _get_cached_location(self, vehicle_id: str) -> Optional[Dict[str, Any]]:
        result = self.client.table("fleet_vehicles") \
            .select("address, latitude, longitude") \
            .eq("id", vehicle_id) \
            .limit(1) \
            .execute()
        return result.data[0] if result.data else None

    async def _resolve_address(self, vehicle: VehicleSnapshot) -> Optional[str]:
        existing = self._get_cached_location(vehicle.id)

        if needs_geocode(existing, vehicle.latitude, vehicle.longitude):
            return await self.geocoder.reverse_geocode(vehicle.latitude, vehicle.longitude)

        return existing.get("address")

    async def _sync_vehicle(
        self,
        vehicle: VehicleSnapshot,
        garages: List[Garage],
        now: str
    ) -> Tuple[bool, bool]:
        """
        Store one vehicle. Database failures are logged and reported as not written.
        An address lookup failure stores a null address.

        Returns:
            Tuple of (current state upserted, history row written)
        """
        garage, is_at_base = find_nearest_garage(vehicle.latitude, vehicle.longitude, garages)
        status = classify_status(vehicle.is_moving, is_at_base)

        try:
            address = await self._resolve_address(vehicle)
        except Exception as e:
            logger.warning(f"[fleet-sync] Address lookup failed for {vehicle.id}: {e}")
            address = None

        upserted = self._upsert_vehicle(vehicle, status, address, garage if is_at_base else None, now)

        logged = False
        if should_log_history(status):
            logged = self._insert_history(vehicle, status, address, now)

        return upserted, logged

    def _upsert_vehicle(
        self,
        vehicle: VehicleSnapshot,
        status: str,
        address: Optional[str],
        garage: Optional[GarageMatch],
        now: str
    ) -> bool:
        row = {
            "id": vehicle.id,
            "name": vehicle.name,
            "plate_number": vehicle.plate_number,
            "driver_name": vehicle.driver_name,
            "status": status,
            "latitude": vehicle.latitude,
            "longitude": vehicle.longitude,
            "speed": vehicle.speed,
            "heading": vehicle.heading,
            "signal_strength": vehicle.signal_strength,
            "address": address,
            "current_garage_id": garage.id if garage else None,
            "last_sync_at": now,
            "updated_at": now,
        }

        try:
            self.client.table("fleet_vehicles") \
                .upsert(row, on_conflict="id") \
                .execute()
            return True
        except Exception as e:
            logger.warning(f"[fleet-sync] Upsert failed for vehicle {vehicle.id}: {e}")
            return False

    def _insert_history(
        self,
        vehicle: VehicleSnapshot,
        status: str,
        address: Optional[str],
        now: str
    ) -> bool:
        row = {
            "vehicle_id": vehicle.id,
            "latitude": vehicle.latitude,
            "longitude": vehicle.longitude,
            "speed": vehicle.speed,
            "heading": vehicle.heading,
            "status": status,
            "address": address,
            "recorded_at": now,
        }

        try:
            self.client.table("fleet_vehicle_history") \
                .insert(row) \
                .execute()
            return True
        except Exception as e:
            logger.warning(f"[fleet-sync] History insert failed for vehicle {vehicle.id}: {e}")
            return False

"""
Great-circle distance and garage proximity helpers.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

EARTH_RADIUS_METERS = 6371000


@dataclass(frozen=True)
class Garage:
    """A geofenced home base."""

    id: str
    name: str
    latitude: float
    longitude: float
    radius_meters: float = 100

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Garage":
        radius = row.get("radius_meters")
        return cls(
            id=row["id"],
            name=row.get("name") or "",
            latitude=float(row["latitude"]),
            longitude=float(row["longitude"]),
            radius_meters=float(radius) if radius is not None else 100,
        )


@dataclass(frozen=True)
class GarageMatch:
    """Nearest garage and the rounded distance to it."""

    id: str
    name: str
    distance_meters: int


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance between two points on a spherical Earth.

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi / 2) ** 2 + \
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def find_nearest_garage(
    lat: float,
    lng: float,
    garages: Iterable[Garage]
) -> Tuple[Optional[GarageMatch], bool]:
    """
    Find the nearest garage and whether the position lies inside its radius.

    The first garage wins on an exact distance tie.

    Args:
        lat: Vehicle latitude
        lng: Vehicle longitude
        garages: Candidate garages

    Returns:
        Tuple of (match or None, is_at_base)
    """
    nearest: Optional[Garage] = None
    min_distance = math.inf

    for garage in garages:
        distance = calculate_distance(lat, lng, garage.latitude, garage.longitude)
        if distance < min_distance:
            min_distance = distance
            nearest = garage

    if nearest is None:
        return None, False

    match = GarageMatch(id=nearest.id, name=nearest.name, distance_meters=round(min_distance))
    return match, min_distance <= nearest.radius_meters

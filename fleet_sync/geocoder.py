"""
Reverse geocoding through the Google Geocoding API.
"""

import logging
from typing import Optional
import httpx

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DEFAULT_LANGUAGE = "th"


class ReverseGeocoder:
    """Turns coordinates into a formatted street address."""

    def __init__(
        self,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        language: str = DEFAULT_LANGUAGE
    ):
        self.api_key = api_key
        self.http_client = http_client
        self.language = language

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        """
        Look up the address for a coordinate pair.

        Network and parse failures are logged and degrade to None so a
        single lookup never aborts the caller.

        Returns:
            Formatted address or None
        """
        params = {
            "latlng": f"{lat},{lng}",
            "language": self.language,
            "key": self.api_key,
        }

        try:
            if self.http_client is not None:
                response = await self.http_client.get(GEOCODE_URL, params=params)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.get(GEOCODE_URL, params=params)

            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[fleet-sync] Reverse geocode failed for {lat},{lng}: {e}")
            return None

        if not isinstance(data, dict):
            return None

        results = data.get("results")
        if data.get("status") == "OK" and isinstance(results, list) and results:
            first = results[0]
            if isinstance(first, dict) and isinstance(first.get("formatted_address"), str):
                return first["formatted_address"]
            logger.warning(f"[fleet-sync] Unexpected geocode result for {lat},{lng}: {first!r}")
            return None

        logger.info(f"[fleet-sync] No geocode result for {lat},{lng}: {data.get('status')}")
        return None

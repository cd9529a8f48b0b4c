"""
Google Places (New) proxy used by the site creation workflow.

Endpoints wrapped:
- places:autocomplete for address search, restricted to Thailand
- places/{id} for coordinates and structured address components
"""

import logging
from typing import List, Dict, Any, Optional
import httpx
from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

PLACES_API_BASE = "https://places.googleapis.com/v1"
DETAILS_FIELD_MASK = ",".join([
    "id",
    "displayName",
    "formattedAddress",
    "location",
    "addressComponents",
    "googleMapsUri",
])
REGION_CODE = "TH"
LANGUAGE_CODE = "th"


class PlacesApiError(Exception):
    """Raised when Google Places rejects a request or is not configured."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def parse_address_components(components: List[Dict[str, Any]]) -> Dict[str, str]:
    """
    Map Google address components to the Thai address hierarchy.

    sublocality_level_2 is the subdistrict (ตำบล/แขวง), sublocality_level_1 or
    locality the district (อำเภอ/เขต), administrative_area_level_1 the province.

    Args:
        components: addressComponents from the place details payload

    Returns:
        dict with any of street_address, subdistrict, district, province,
        postal_code, country
    """
    result: Dict[str, str] = {}
    street_number = ""
    route = ""

    for component in components or []:
        types = component.get("types") or []
        text = component.get("longText") or ""

        if "street_number" in types:
            street_number = text
        elif "route" in types:
            route = text
        elif "sublocality_level_2" in types:
            result["subdistrict"] = text
        elif "sublocality_level_1" in types or "locality" in types:
            if "district" not in result:
                result["district"] = text
        elif "administrative_area_level_1" in types:
            result["province"] = text
        elif "postal_code" in types:
            result["postal_code"] = text
        elif "country" in types:
            result["country"] = text

    if street_number or route:
        result["street_address"] = " ".join(part for part in (street_number, route) if part)

    return result


def build_embed_url(place_id: str, lat: float, lng: float) -> str:
    """Embeddable map URL built from coordinates, no API key needed."""
    return (
        "https://www.google.com/maps/embed?pb=!1m18!1m12!1m3!1d500"
        f"!2d{lng}!3d{lat}"
        "!2m3!1f0!2f0!3f0!3m2!1i1024!2i768!4f13.1!3m3!1m2"
        f"!1s{place_id}!2s!5e0!3m2!1sth!2sth"
    )


def _raise_for_error(response: httpx.Response) -> Dict[str, Any]:
    """Return the JSON payload or raise PlacesApiError for error responses."""
    if response.status_code >= 400:
        logger.error(f"Google Places API error: {response.status_code} {response.text}")
        try:
            error_data = response.json()
        except ValueError:
            error_data = None

        if isinstance(error_data, dict) and isinstance(error_data.get("error"), dict):
            error = error_data["error"]
            raise PlacesApiError(
                error.get("status") or "API_ERROR",
                error.get("message") or "Unknown error"
            )
        raise PlacesApiError("API_ERROR", f"Google Places API returned {response.status_code}")

    try:
        data = response.json()
    except ValueError:
        raise PlacesApiError("API_ERROR", "Invalid response from Google Places API")

    if not isinstance(data, dict):
        raise PlacesApiError("API_ERROR", "Invalid response from Google Places API")

    if isinstance(data.get("error"), dict):
        raise PlacesApiError(data["error"].get("status") or "API_ERROR", data["error"].get("message") or "")

    return data


class PlacesService:
    """Service class for Google Places lookups."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.settings = settings or get_settings()
        self.http_client = http_client

    def _api_key(self) -> str:
        if not self.settings.google_places_api_key:
            raise PlacesApiError("CONFIGURATION_ERROR", "Google Places API key is not configured")
        return self.settings.google_places_api_key

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            if self.http_client is not None:
                return await self.http_client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=10.0) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Google Places request failed: {e}")
            raise PlacesApiError("API_ERROR", "Failed to reach Google Places API")

    async def search_places(self, input_text: str, session_token: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Autocomplete an address.

        Args:
            input_text: Text typed by the user
            session_token: Optional billing session token

        Returns:
            List of predictions with place_id, description, main_text,
            secondary_text, types

        Raises:
            PlacesApiError: If the key is missing or Google returns an error
        """
        api_key = self._api_key()

        request_body: Dict[str, Any] = {
            "input": input_text,
            "includedRegionCodes": [REGION_CODE],
            "languageCode": LANGUAGE_CODE,
        }
        if session_token:
            request_body["sessionToken"] = session_token

        response = await self._send(
            "POST",
            f"{PLACES_API_BASE}/places:autocomplete",
            json=request_body,
            headers={"X-Goog-Api-Key": api_key},
        )
        data = _raise_for_error(response)

        predictions = []
        # Query predictions carry no place id and are skipped
        for suggestion in data.get("suggestions") or []:
            prediction = suggestion.get("placePrediction")
            if not prediction:
                continue

            structured = prediction.get("structuredFormat") or {}
            predictions.append({
                "place_id": prediction.get("placeId"),
                "description": (prediction.get("text") or {}).get("text", ""),
                "main_text": (structured.get("mainText") or {}).get("text", ""),
                "secondary_text": (structured.get("secondaryText") or {}).get("text", ""),
                "types": prediction.get("types") or [],
            })

        return predictions

    async def get_place_details(self, place_id: str, session_token: Optional[str] = None) -> Dict[str, Any]:
        """
        Get coordinates, links and parsed address components for a place.

        Raises:
            PlacesApiError: If the key is missing, Google errors, or the place is unknown
        """
        api_key = self._api_key()

        params = {"languageCode": LANGUAGE_CODE}
        if session_token:
            params["sessionToken"] = session_token

        response = await self._send(
            "GET",
            f"{PLACES_API_BASE}/places/{place_id}",
            params=params,
            headers={
                "X-Goog-Api-Key": api_key,
                "X-Goog-FieldMask": DETAILS_FIELD_MASK,
            },
        )
        data = _raise_for_error(response)

        if not data.get("id"):
            raise PlacesApiError("NOT_FOUND", "Place not found")

        location = data.get("location") or {}
        lat = location.get("latitude") or 0
        lng = location.get("longitude") or 0

        return {
            "place_id": data["id"],
            "name": (data.get("displayName") or {}).get("text", ""),
            "formatted_address": data.get("formattedAddress") or "",
            "latitude": lat,
            "longitude": lng,
            "google_maps_url": data.get("googleMapsUri")
                or f"https://www.google.com/maps/place/?q=place_id:{data['id']}",
            "google_maps_embed_url": build_embed_url(data["id"], lat, lng),
            "address_components": parse_address_components(data.get("addressComponents") or []),
        }

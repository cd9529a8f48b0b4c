"""
HTTP route handlers for place lookup endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.permissions import require_min_level
from shared.responses import success_response, error_response, error_from_exception
from shared.validation import parse_request_body
from .service import PlacesService, PlacesApiError
from .location_matcher import LocationMatcher, AddressComponents

logger = logging.getLogger(__name__)


def _places_error_response(err: PlacesApiError) -> func.HttpResponse:
    status_code = 500 if err.code == "CONFIGURATION_ERROR" else 400
    return error_response(f"{err.code}: {err.message}", status_code)


async def places_autocomplete(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/places/autocomplete
    Address autocomplete restricted to Thailand.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        body = parse_request_body(req)
        input_text = body.get("input")
        if not isinstance(input_text, str) or not input_text.strip():
            return error_response("กรุณาระบุคำค้นหา", 400)

        service = PlacesService()
        predictions = await service.search_places(input_text.strip(), body.get("sessionToken"))

        return success_response(predictions)

    except PlacesApiError as e:
        logger.error(f"Autocomplete error: {e.code} {e.message}")
        return _places_error_response(e)
    except Exception as e:
        return error_from_exception(e)


async def places_details(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/places/details
    Place details plus matched Thai province/district/subdistrict codes.
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        body = parse_request_body(req)
        place_id = body.get("place_id")
        if not isinstance(place_id, str) or not place_id.strip():
            return error_response("กรุณาระบุ place_id", 400)

        service = PlacesService()
        details = await service.get_place_details(place_id.strip(), body.get("sessionToken"))

        matched_location = None
        try:
            matcher = LocationMatcher()
            components = AddressComponents.from_dict(details["address_components"])
            matched = await matcher.match_location_codes(components)
            matched_location = matched.to_dict() if matched else None
        except Exception as e:
            logger.error(f"Location matching error: {str(e)}")

        return success_response({**details, "matched_location": matched_location})

    except PlacesApiError as e:
        logger.error(f"Details error: {e.code} {e.message}")
        return _places_error_response(e)
    except Exception as e:
        return error_from_exception(e)


def register_places_routes(app: func.FunctionApp):
    """Register all place lookup routes with the function app."""
    app.route(route="places/autocomplete", methods=["POST"])(places_autocomplete)
    app.route(route="places/details", methods=["POST"])(places_details)

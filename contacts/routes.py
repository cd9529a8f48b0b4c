"""
HTTP route handlers for contact endpoints.
"""

import logging
import azure.functions as func
from shared.auth import authenticate
from shared.permissions import require_min_level
from shared.responses import (
    success_response, created_response, paginated_response, error_from_exception
)
from shared.validation import (
    parse_request_body, parse_pagination_params, validate_uuid, validate_required
)
from .service import ContactService

logger = logging.getLogger(__name__)


async def list_contacts(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/contacts?page=1&limit=50&site_id=<uuid>
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        page, limit = parse_pagination_params(req)
        site_id = req.params.get("site_id")
        if site_id:
            validate_uuid(site_id, "Site ID")

        service = ContactService()
        contacts, pagination = await service.list_contacts(page, limit, site_id)

        return paginated_response(contacts, pagination)

    except Exception as e:
        return error_from_exception(e)


async def search_contacts(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/contacts/search?q=<text>&site_id=<uuid>
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        site_id = req.params.get("site_id")
        if site_id:
            validate_uuid(site_id, "Site ID")

        service = ContactService()
        contacts = await service.search_contacts(req.params.get("q", ""), site_id)

        return success_response(contacts)

    except Exception as e:
        return error_from_exception(e)


async def list_site_contacts(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/contacts/site/{site_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        site_id = req.route_params.get("site_id")
        validate_uuid(site_id, "Site ID")

        service = ContactService()
        contacts = await service.list_by_site(site_id)

        return success_response(contacts)

    except Exception as e:
        return error_from_exception(e)


async def get_contact(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET /api/contacts/{contact_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 0)

        contact_id = req.route_params.get("contact_id")
        validate_uuid(contact_id, "Contact ID")

        service = ContactService()
        contact = await service.get_contact(contact_id)

        return success_response(contact)

    except Exception as e:
        return error_from_exception(e)


async def create_contact(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/contacts
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        body = parse_request_body(req)
        validate_required(body.get("person_name"), "ชื่อผู้ติดต่อ")
        validate_required(body.get("site_id"), "Site ID")
        validate_uuid(body["site_id"], "Site ID")

        service = ContactService()
        contact = await service.create_contact(body)

        return created_response(contact)

    except Exception as e:
        return error_from_exception(e)


async def update_contact(req: func.HttpRequest) -> func.HttpResponse:
    """
    PUT /api/contacts/{contact_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        contact_id = req.route_params.get("contact_id")
        validate_uuid(contact_id, "Contact ID")
        body = parse_request_body(req)

        service = ContactService()
        contact = await service.update_contact(contact_id, body)

        return success_response(contact)

    except Exception as e:
        return error_from_exception(e)


async def delete_contact(req: func.HttpRequest) -> func.HttpResponse:
    """
    DELETE /api/contacts/{contact_id}
    """
    try:
        auth = await authenticate(req)
        require_min_level(auth.employee, 1)

        contact_id = req.route_params.get("contact_id")
        validate_uuid(contact_id, "Contact ID")

        service = ContactService()
        await service.delete_contact(contact_id)

        return success_response({"message": "ลบผู้ติดต่อสำเร็จ"})

    except Exception as e:
        return error_from_exception(e)


def register_contact_routes(app: func.FunctionApp):
    """Register all contact routes with the function app."""
    app.route(route="contacts", methods=["GET"])(list_contacts)
    app.route(route="contacts", methods=["POST"])(create_contact)
    app.route(route="contacts/search", methods=["GET"])(search_contacts)
    app.route(route="contacts/site/{site_id}", methods=["GET"])(list_site_contacts)
    app.route(route="contacts/{contact_id}", methods=["GET"])(get_contact)
    app.route(route="contacts/{contact_id}", methods=["PUT"])(update_contact)
    app.route(route="contacts/{contact_id}", methods=["DELETE"])(delete_contact)

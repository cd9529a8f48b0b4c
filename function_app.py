"""
Field Service Backend - Azure Functions Application

HTTP API for the field-service management app: fleet tracking and sync,
place lookup with Thai location matching, contacts, announcements,
notifications, leave requests, prizes and stock locations. Supabase is the
database and auth provider.
"""

import azure.functions as func
import datetime
import json
import logging
import os

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the main Function App instance
app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

from fleet_sync.routes import register_fleet_sync_routes
from fleet.routes import register_fleet_routes
from places.routes import register_places_routes
from contacts.routes import register_contact_routes
from announcements.routes import register_announcement_routes
from notifications.routes import register_notification_routes
from leave_requests.routes import register_leave_request_routes
from prizes.routes import register_prize_routes
from stock_locations.routes import register_stock_location_routes

SERVICE_NAME = "Field Service Backend"
SERVICE_VERSION = "1.0.0"


def _utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


# =============================================================================
# Health / Warmup Endpoints
# =============================================================================

@app.route(route="health", methods=["GET"])
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint to verify the Azure Function is running."""
    logger.info("Health check endpoint called.")

    health_status = {
        "status": "healthy",
        "timestamp": _utc_timestamp(),
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": os.environ.get("AZURE_FUNCTIONS_ENVIRONMENT", "Development")
    }

    return func.HttpResponse(
        json.dumps(health_status),
        status_code=200,
        mimetype="application/json"
    )


@app.route(route="warmup", methods=["GET"])
def warmup(req: func.HttpRequest) -> func.HttpResponse:
    """Keep-warm ping for schedulers; no authentication."""
    return func.HttpResponse(
        json.dumps({"status": "warm", "timestamp": _utc_timestamp()}),
        status_code=200,
        mimetype="application/json"
    )


# =============================================================================
# Feature Routes
# =============================================================================

register_fleet_sync_routes(app)
register_fleet_routes(app)
register_places_routes(app)
register_contact_routes(app)
register_announcement_routes(app)
register_notification_routes(app)
register_leave_request_routes(app)
register_prize_routes(app)
register_stock_location_routes(app)

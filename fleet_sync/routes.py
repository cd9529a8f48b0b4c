"""
Triggers for the fleet sync job: a 5-minute timer and an HTTP endpoint for
external schedulers, guarded by a shared secret.
"""

import hmac
import logging
import azure.functions as func
from shared.config import get_settings
from shared.responses import success_response, error_response
from .service import FleetSyncService

logger = logging.getLogger(__name__)

SYNC_SCHEDULE = "0 */5 * * * *"
CRON_SECRET_HEADER = "x-cron-secret"


def _is_authorized_scheduler(req: func.HttpRequest, cron_secret: str) -> bool:
    provided = req.headers.get(CRON_SECRET_HEADER, "")
    return bool(provided) and hmac.compare_digest(provided, cron_secret)


async def run_sync() -> dict:
    """Run one cycle and log the outcome."""
    logger.info("[fleet-sync] Starting sync...")

    service = FleetSyncService()
    result = await service.sync()

    logger.info(
        f"[fleet-sync] Completed: {result['synced']} vehicles synced, "
        f"{result['history_logged']} history records"
    )
    return result


async def fleet_sync_http(req: func.HttpRequest) -> func.HttpResponse:
    """
    POST /api/fleet-sync
    Run a sync cycle on behalf of an external scheduler.
    """
    try:
        settings = get_settings()
        settings.require("cron_secret")

        if not _is_authorized_scheduler(req, settings.cron_secret):
            return error_response("Unauthorized", 401)

        result = await run_sync()
        return success_response(result)

    except Exception as e:
        logger.error(f"[fleet-sync] Error: {str(e)}")
        return error_response(str(e) or "Sync failed", 500)


async def fleet_sync_timer(timer: func.TimerRequest) -> None:
    """Timer trigger: run a sync cycle every 5 minutes."""
    if timer.past_due:
        logger.warning("[fleet-sync] Timer is past due")

    try:
        await run_sync()
    except Exception as e:
        # The next tick retries; nothing else to do here
        logger.error(f"[fleet-sync] Error: {str(e)}")


def register_fleet_sync_routes(app: func.FunctionApp):
    """Register the fleet sync triggers with the function app."""
    app.route(route="fleet-sync", methods=["POST"])(fleet_sync_http)
    app.timer_trigger(schedule=SYNC_SCHEDULE, arg_name="timer", run_on_startup=False)(fleet_sync_timer)

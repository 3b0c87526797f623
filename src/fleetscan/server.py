"""aiohttp ingestion endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from aiohttp import web

from fleetscan.exceptions import ConflictingCheckInError, NotFoundError, ScanValidationError
from fleetscan.service import ScanService

_logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("scan_service", ScanService)


def _error(status: int, code: str, message: str, **extra: Any) -> web.Response:
    return web.json_response({"error": code, "message": message, **extra}, status=status)


async def handle_scan(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid_payload", "Request body must be JSON")

    try:
        outcome = await service.handler.handle_payload(payload)
    except ScanValidationError as exc:
        return _error(400, exc.code, str(exc))
    except ConflictingCheckInError as exc:
        return _error(
            400,
            exc.code,
            str(exc),
            studentId=exc.passenger_id,
            lastBusId=exc.last_vehicle_id,
        )
    except NotFoundError as exc:
        return _error(404, exc.code, str(exc))
    except Exception:
        _logger.exception("Unhandled error while processing scan")
        return _error(500, "internal_error", "Internal server error")

    body: dict[str, Any] = {"message": outcome.message, "busId": outcome.vehicle_id}
    if outcome.status is not None:
        body["status"] = outcome.status.value
    if outcome.eta is not None:
        body["eta_minutes"] = outcome.eta.eta_minutes
    return web.json_response(body)


async def handle_health(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    return web.json_response(
        {
            "ok": True,
            "flushing": service.buffer.is_running,
            "pending": service.buffer.depth(),
        }
    )


def create_app(service: ScanService, *, manage_lifecycle: bool = True) -> web.Application:
    """Build the web application around *service*.

    With ``manage_lifecycle`` the app starts the service on startup and
    closes it on cleanup.
    """
    app = web.Application()
    app[SERVICE_KEY] = service
    app.router.add_post("/rfid-scan", handle_scan)
    app.router.add_post("/scan", handle_scan)
    app.router.add_get("/health", handle_health)

    if manage_lifecycle:

        async def _lifecycle(_app: web.Application) -> AsyncIterator[None]:
            await service.start()
            yield
            await service.close()

        app.cleanup_ctx.append(_lifecycle)
    return app

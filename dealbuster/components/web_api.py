"""
HTTP API for the Dealbuster system.

A thin aiohttp layer over ``DealService``: each handler parses the JSON
body, calls one service operation and serializes the result. Domain errors
are mapped to status codes by a single middleware.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web

from ..models.deal import DealDraft
from ..services.deal_service import DealService
from ..utils.error_handling import DealbusterError, ValidationError, get_error_tracker
from ..utils.logging import get_logger
from .websocket_broadcaster import WebSocketBroadcaster

logger = get_logger("web_api")

SERVICE_KEY = web.AppKey("service", DealService)
BROADCASTER_KEY = web.AppKey("broadcaster", WebSocketBroadcaster)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Translate domain errors into JSON error responses."""
    try:
        return await handler(request)
    except DealbusterError as e:
        logger.info(
            "Request rejected",
            extra={
                "path": request.path,
                "error_type": type(e).__name__,
                "error": str(e),
            },
        )
        return web.json_response({"error": str(e)}, status=e.status_code)


async def _read_body(request: web.Request) -> Dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _service(request: web.Request) -> DealService:
    return request.app[SERVICE_KEY]


# Users


async def register_user(request: web.Request) -> web.Response:
    body = await _read_body(request)
    user = _service(request).register_user(body.get("username"))
    return web.json_response({"success": True, "user": user.summary()})


async def list_users(request: web.Request) -> web.Response:
    users = _service(request).list_users()
    return web.json_response([u.summary() for u in users])


async def get_user(request: web.Request) -> web.Response:
    user = _service(request).get_user(request.match_info["user_id"])
    return web.json_response(user.to_dict())


# Deals


async def submit_deal(request: web.Request) -> web.Response:
    body = await _read_body(request)
    draft = DealDraft(
        title=body.get("title"),
        price=body.get("price"),
        url=body.get("url"),
        submitted_by=body.get("submitted_by"),
        original_price=body.get("original_price"),
        category=body.get("category"),
    )
    deal = _service(request).submit_deal(draft)
    return web.json_response({"success": True, "deal": deal.to_dict()})


async def list_deals(request: web.Request) -> web.Response:
    deals = _service(request).list_deals()
    return web.json_response([d.to_dict() for d in deals])


async def get_deal(request: web.Request) -> web.Response:
    deal = _service(request).get_deal(request.match_info["deal_id"])
    return web.json_response(deal.to_dict())


async def vote(request: web.Request) -> web.Response:
    body = await _read_body(request)
    deal = _service(request).record_vote(request.match_info["deal_id"], body.get("user_id"))
    return web.json_response({"success": True, "deal": deal.to_dict()})


async def verify(request: web.Request) -> web.Response:
    body = await _read_body(request)
    service = _service(request)
    deal_id = request.match_info["deal_id"]

    verification = service.record_verification(
        deal_id, body.get("user_id"), body.get("verdict"), body.get("evidence")
    )
    return web.json_response(
        {
            "success": True,
            "verification": verification.to_dict(),
            "deal": service.get_deal(deal_id).to_dict(),
        }
    )


# Alerts


async def create_alert(request: web.Request) -> web.Response:
    body = await _read_body(request)
    alert = _service(request).create_alert(
        body.get("user_id"),
        body.get("keywords"),
        body.get("max_price"),
        body.get("min_verifications"),
    )
    return web.json_response({"success": True, "alert": alert.to_dict()})


async def list_user_alerts(request: web.Request) -> web.Response:
    alerts = _service(request).list_alerts(request.match_info["user_id"])
    return web.json_response([a.to_dict() for a in alerts])


async def delete_alert(request: web.Request) -> web.Response:
    alert = _service(request).delete_alert(request.match_info["alert_id"])
    return web.json_response({"success": True, "alert_id": alert.id})


# Config, stats and health


async def get_config(request: web.Request) -> web.Response:
    return web.json_response(_service(request).get_config().to_dict())


async def set_mode(request: web.Request) -> web.Response:
    body = await _read_body(request)
    config = _service(request).set_mode(body.get("mode"))
    return web.json_response({"success": True, "config": config.to_dict()})


async def get_stats(request: web.Request) -> web.Response:
    return web.json_response(_service(request).get_stats().to_dict())


async def health(request: web.Request) -> web.Response:
    service = _service(request)
    broadcaster = request.app.get(BROADCASTER_KEY)

    return web.json_response(
        {
            "status": "ok",
            "mode": service.get_config().mode.value,
            "pending_promotion_checks": getattr(service.scheduler, "pending_count", 0),
            "websocket_clients": broadcaster.client_count if broadcaster else 0,
            "events_published": service.notifier.published_count,
            "failed_deliveries": service.notifier.failed_deliveries,
            "errors": get_error_tracker().get_error_stats(),
        }
    )


def create_app(
    service: DealService, broadcaster: Optional[WebSocketBroadcaster] = None
) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        service: The deal service every route delegates to
        broadcaster: WebSocket fan-out; created on ``service.notifier`` when omitted

    Returns:
        Configured ``web.Application``
    """
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    app[BROADCASTER_KEY] = broadcaster or WebSocketBroadcaster(service.notifier)

    app.router.add_post("/api/users/register", register_user)
    app.router.add_get("/api/users", list_users)
    app.router.add_get("/api/users/{user_id}", get_user)

    app.router.add_post("/api/deals", submit_deal)
    app.router.add_get("/api/deals", list_deals)
    app.router.add_get("/api/deals/{deal_id}", get_deal)
    app.router.add_post("/api/deals/{deal_id}/vote", vote)
    app.router.add_post("/api/deals/{deal_id}/verify", verify)

    app.router.add_post("/api/alerts", create_alert)
    app.router.add_get("/api/alerts/user/{user_id}", list_user_alerts)
    app.router.add_delete("/api/alerts/{alert_id}", delete_alert)

    app.router.add_get("/api/config", get_config)
    app.router.add_post("/api/config/mode", set_mode)
    app.router.add_get("/api/stats", get_stats)
    app.router.add_get("/api/health", health)

    app.router.add_get("/ws", app[BROADCASTER_KEY].handle)

    async def _on_shutdown(app: web.Application) -> None:
        await app[BROADCASTER_KEY].close()
        app[SERVICE_KEY].shutdown()

    app.on_shutdown.append(_on_shutdown)
    return app

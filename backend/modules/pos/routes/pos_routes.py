"""
Router receiving order webhooks from the POS.

The POS expects a prompt 200 whatever happens downstream, so every request
is acknowledged: unreadable bodies and uninteresting events are reported as
``ignored`` and logged, accepted events are queued for the ticket engine.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from typing import Any, Dict
import json
import logging

from core.deps import get_kds_runtime
from core.exceptions import MalformedEventError
from modules.kds.services.kds_runtime import KDSRuntime

logger = logging.getLogger(__name__)

router = APIRouter(tags=["POS Webhooks"])


def _ignored(reason: str) -> Dict[str, Any]:
    return {"status": "ignored", "reason": reason}


@router.post("/square/webhook")
async def receive_square_webhook(
    request: Request,
    runtime: KDSRuntime = Depends(get_kds_runtime),
) -> Dict[str, Any]:
    """Receive an order event from Square"""
    body = await request.body()

    try:
        payload = json.loads(body.decode() or "null")
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Invalid JSON in Square webhook body")
        return _ignored("invalid json")

    event_type = payload.get("type") if isinstance(payload, dict) else None
    logger.info(f"Square Event: {event_type}", extra={"event_type": event_type})

    try:
        event = runtime.order_source.normalize_webhook(payload)
    except (MalformedEventError, ValidationError) as e:
        logger.warning(
            f"Malformed Square {event_type} event: {e}",
            extra={"event_type": event_type},
        )
        return _ignored("malformed event")
    except Exception as e:
        logger.error(f"Error reading Square webhook: {str(e)}", exc_info=True)
        return _ignored("internal error")

    if event is None:
        return _ignored(f"unsupported event type {event_type}")

    queued = runtime.dispatcher.submit(event)
    return {"status": "accepted", "orderId": event.order_id, "queued": queued}

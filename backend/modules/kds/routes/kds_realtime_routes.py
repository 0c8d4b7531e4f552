# backend/modules/kds/routes/kds_realtime_routes.py

"""
Real-time KDS routes with WebSocket support
"""

from fastapi import (
    APIRouter,
    Depends,
    WebSocket,
    WebSocketDisconnect,
)
from pydantic import ValidationError
from typing import Any, Dict
from datetime import datetime, timezone
from uuid import uuid4
import json
import asyncio
import logging

from core.deps import get_kds_runtime
from core.exceptions import NotFoundError, ValidationError as RequestValidationError
from ..enums.ticket_enums import DisplayAction, ServerMessageType
from ..schemas.ticket_schemas import (
    DisplayActionRequest,
    DisplayEvent,
    ManualOrderCreate,
    SourceEvent,
)
from ..services.kds_runtime import KDSRuntime

logger = logging.getLogger(__name__)

router = APIRouter(tags=["KDS Real-time"])

MANUAL_ORDER_PREFIX = "test-"


def _error_message(message: str) -> Dict[str, Any]:
    return {"type": ServerMessageType.ERROR.value, "message": message}


async def handle_display_message(
    runtime: KDSRuntime, websocket: WebSocket, message: str
) -> None:
    """Route one message from a display session"""
    hub = runtime.hub

    try:
        data = json.loads(message)
    except json.JSONDecodeError:
        await hub.send_personal_message(_error_message("Invalid JSON format"), websocket)
        return

    try:
        event = DisplayEvent.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Dropping malformed display message: {e.error_count()} errors")
        await hub.send_personal_message(_error_message("Invalid display message"), websocket)
        return

    if event.action == DisplayAction.PING:
        await hub.send_personal_message({"type": ServerMessageType.PONG.value}, websocket)
    elif event.action == DisplayAction.SYNC_REQUEST:
        await hub.send_full_sync(websocket)
    elif not runtime.dispatcher.submit(event):
        await hub.send_personal_message(
            _error_message("Kitchen display engine is busy, retry shortly"), websocket
        )


# ========== WebSocket Endpoints ==========

@router.websocket("/ws")
async def websocket_display_endpoint(
    websocket: WebSocket,
    runtime: KDSRuntime = Depends(get_kds_runtime),
):
    """WebSocket endpoint for kitchen displays"""

    hub = runtime.hub
    await hub.connect(websocket)

    try:
        while True:
            try:
                # Wait for messages with timeout for heartbeat
                message = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=runtime.config.websocket_receive_timeout_seconds,
                )
            except asyncio.TimeoutError:
                await hub.send_personal_message(
                    {
                        "type": ServerMessageType.HEARTBEAT.value,
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    },
                    websocket,
                )
                continue

            await handle_display_message(runtime, websocket, message)

    except WebSocketDisconnect:
        hub.disconnect(websocket)
    except Exception as e:
        logger.error(f"Display WebSocket error: {str(e)}")
        hub.disconnect(websocket)


# ========== REST Endpoints ==========

@router.get("/api/v1/kds/orders")
async def list_orders(
    runtime: KDSRuntime = Depends(get_kds_runtime),
) -> Dict[str, Any]:
    """Get every ticket in insertion order"""
    tickets = runtime.engine.snapshot()
    return {
        "success": True,
        "data": {
            "orders": [ticket.to_wire() for ticket in tickets],
            "count": len(tickets),
            "connections": runtime.hub.get_connection_count(),
        },
    }


@router.get("/api/v1/kds/orders/{order_id}")
async def get_order(
    order_id: str,
    runtime: KDSRuntime = Depends(get_kds_runtime),
) -> Dict[str, Any]:
    """Get one ticket"""
    ticket = runtime.engine.get(order_id)
    if ticket is None:
        raise NotFoundError(f"Order {order_id} not found")
    return {"success": True, "data": ticket.to_wire()}


@router.post("/api/v1/kds/test-orders", status_code=201)
async def create_test_order(
    order: ManualOrderCreate,
    runtime: KDSRuntime = Depends(get_kds_runtime),
) -> Dict[str, Any]:
    """Create a manual test ticket without going through the POS"""
    event = SourceEvent(
        order_id=f"{MANUAL_ORDER_PREFIX}{uuid4().hex[:12]}",
        source_state="OPEN",
        order_number_hint=order.order_number,
        items=order.items,
        service_type=order.service_type,
        note=order.note,
        event_type="manual",
    )
    result = await runtime.dispatcher.process(event)
    logger.info(f"Manual test order #{result.ticket.order_number} created")

    return {
        "success": True,
        "message": f"Test order #{result.ticket.order_number} created",
        "data": result.ticket.to_wire(),
    }


@router.post("/api/v1/kds/orders/{order_id}/actions")
async def apply_order_action(
    order_id: str,
    request: DisplayActionRequest,
    runtime: KDSRuntime = Depends(get_kds_runtime),
) -> Dict[str, Any]:
    """Apply a display action to a ticket over REST"""
    if request.action in (DisplayAction.SYNC_REQUEST, DisplayAction.PING):
        raise RequestValidationError(
            f"{request.action.value} is only available on the display WebSocket"
        )

    try:
        event = DisplayEvent(
            action=request.action,
            order_id=order_id,
            item_index=request.item_index,
            completed=request.completed,
            is_prioritized=request.is_prioritized,
        )
    except ValidationError as e:
        raise RequestValidationError(f"Invalid {request.action.value} request: {e.errors()[0]['msg']}")

    result = await runtime.dispatcher.process(event)
    if result.ticket is None:
        raise NotFoundError(f"Order {order_id} not found")

    return {
        "success": True,
        "message": f"Order {order_id} {request.action.value} applied",
        "data": {
            "order": result.ticket.to_wire(),
            "changed": result.observable,
        },
    }

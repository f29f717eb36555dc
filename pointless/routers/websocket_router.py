import logging

from fastapi import APIRouter, Query, WebSocket

from ..dependencies import get_gateway

log = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/party")
@router.websocket("/party/{room_code}")
async def websocket_endpoint(
        websocket: WebSocket,
        room_code: str = "",
        role: str = Query("player"),
        name: str | None = Query(None),
        language: str | None = Query(None),
        reconnect_id: str | None = Query(None, alias="reconnectId"),
) -> None:
    """Main WebSocket endpoint: one connection per host or player device"""
    gateway = get_gateway(websocket)

    try:
        await gateway.handle_connection(
            websocket,
            room_code=room_code,
            role=role,
            name=name,
            language=language,
            reconnect_id=reconnect_id,
        )
    except Exception as e:
        log.error(f"WebSocket error for {role} in room {room_code!r}: {e}")
        raise

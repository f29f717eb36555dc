from fastapi import APIRouter, HTTPException

from ..dependencies import GatewayDep, RoomManagerDep

router = APIRouter()


@router.get("/health")
async def health(manager: RoomManagerDep):
    return {"status": "ok", "rooms": len(manager)}


@router.post("/rooms")
async def create_room(manager: RoomManagerDep, gateway: GatewayDep):
    """Reserve a fresh room code; the room is reclaimed if nobody connects."""
    code = manager.new_code()
    manager.get_or_create_room(code)
    manager.schedule_destroy(code, lambda: gateway.connection_count(code) == 0)
    return {"roomCode": code}


@router.get("/rooms")
async def get_rooms(manager: RoomManagerDep, gateway: GatewayDep):
    return [
        {
            "code": code,
            "phase": room.phase,
            "playerCount": len(room),
            "connected": gateway.connection_count(code),
        }
        for code, room in manager.rooms.items()
    ]


@router.get("/rooms/{code}")
async def get_room(code: str, manager: RoomManagerDep):
    room = manager.get_room(code.upper())
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room.to_client_state()

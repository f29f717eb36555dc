from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from .game import RoomManager
from .services import WebSocketHandler


# Per-app instances live on app.state so tests can build isolated apps
def get_room_manager(conn: HTTPConnection) -> RoomManager:
    return conn.app.state.room_manager


def get_gateway(conn: HTTPConnection) -> WebSocketHandler:
    return conn.app.state.gateway


RoomManagerDep = Annotated[RoomManager, Depends(get_room_manager)]
GatewayDep = Annotated[WebSocketHandler, Depends(get_gateway)]

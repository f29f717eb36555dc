from .rooms import router as rooms_router
from .websocket_router import router as websocket_router

__all__ = ["rooms_router", "websocket_router"]

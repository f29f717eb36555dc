import logging
import random
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import EMPTY_ROOM_GRACE_SEC, LOG_LEVEL, RECONNECT_WINDOW_SEC, TURN_TIMER_GRACE_SEC
from .game import LoopScheduler, ReconnectionManager, RoomManager, Scheduler
from .middleware import add_cors_middleware, add_logging_middleware
from .routers import rooms_router, websocket_router
from .services import WebSocketHandler

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


def create_app(scheduler: Scheduler | None = None, rng: random.Random | None = None) -> FastAPI:
    room_manager = RoomManager(
        scheduler=scheduler or LoopScheduler(),
        empty_room_grace_sec=EMPTY_ROOM_GRACE_SEC,
        rng=rng,
    )
    reconnects = ReconnectionManager(window_sec=RECONNECT_WINDOW_SEC)
    gateway = WebSocketHandler(room_manager, reconnects, turn_timer_grace_sec=TURN_TIMER_GRACE_SEC)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Party server ready")
        yield
        gateway.shutdown()
        log.info("shutting down")

    app = FastAPI(title="Pointless party server", lifespan=lifespan)
    app.state.room_manager = room_manager
    app.state.reconnects = reconnects
    app.state.gateway = gateway

    app.add_middleware(add_cors_middleware)
    app.add_middleware(add_logging_middleware)

    app.include_router(rooms_router)
    app.include_router(websocket_router)
    return app


app = create_app()

from .websocket_handler import WebSocketHandler

__all__ = ["WebSocketHandler"]

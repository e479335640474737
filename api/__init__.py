# API Module
# REST gateway routes and the WebSocket session manager

from .routes import router
from .websocket import WebSocketManager

__all__ = ['router', 'WebSocketManager']

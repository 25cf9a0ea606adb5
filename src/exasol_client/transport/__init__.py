"""Transport implementations used by the session and the import path."""

from .base import Channel, TransportError
from .tcp import ProxyConnection
from .websocket import TlsOptions, WebSocketChannel, connect_channel

__all__ = [
    "Channel",
    "ProxyConnection",
    "TlsOptions",
    "TransportError",
    "WebSocketChannel",
    "connect_channel",
]

"""Networking for two-player matches. The engine never imports this package."""

from .errors import ConnectionClosed, NetworkError, PeerUnavailable, ProtocolError
from .messages import MessageCodec
from .session import ClientSession, HostSession
from .transport import LoopbackTransport, Transport, WebSocketListener, WebSocketTransport, connect

__all__ = [
    "ClientSession",
    "ConnectionClosed",
    "HostSession",
    "LoopbackTransport",
    "MessageCodec",
    "NetworkError",
    "PeerUnavailable",
    "ProtocolError",
    "Transport",
    "WebSocketListener",
    "WebSocketTransport",
    "connect",
]

from __future__ import annotations


class NetworkError(RuntimeError):
    """Base class for everything that can go wrong between two peers."""


class PeerUnavailable(NetworkError):
    pass


class ProtocolError(NetworkError):
    pass


class ConnectionClosed(NetworkError):
    pass

"""Transport layer."""

from .connection import SerialConnection, StreamConnection, TcpConnection, open_connection

__all__ = ["SerialConnection", "StreamConnection", "TcpConnection", "open_connection"]

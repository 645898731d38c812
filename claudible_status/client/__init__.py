"""Dashboard lookup client and live update stream."""
from claudible_status.client.api import DashboardClient
from claudible_status.client.merge import apply_live_update
from claudible_status.client.session import ConnectionState, StreamSession
from claudible_status.client.streaming import StreamConnection, StreamTransport, decode_frame
from claudible_status.core.exceptions import (
    ClientError,
    DecodingError,
    EmptyBodyError,
    ServerError,
    ServerUnreachableError,
    TransportError,
)


__all__ = [
    "apply_live_update",
    "decode_frame",
    "ClientError",
    "ConnectionState",
    "DashboardClient",
    "DecodingError",
    "EmptyBodyError",
    "ServerError",
    "ServerUnreachableError",
    "StreamConnection",
    "StreamSession",
    "StreamTransport",
    "TransportError",
]

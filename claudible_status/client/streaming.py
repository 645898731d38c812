# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""WebSocket transport for dashboard live updates."""
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from claudible_status.client.models import LiveUpdateEvent
from claudible_status.core.exceptions import DecodingError, TransportError


def build_stream_url(endpoint: str, credential: str) -> str:
    """Append the credential as the ``key`` query parameter.

    Args:
        endpoint: WebSocket endpoint URL (ws:// or wss://).
        credential: API key identifying the account.

    Returns:
        Endpoint URL with the key parameter set.
    """
    parts = urlsplit(endpoint)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != "key"]
    query.append(("key", credential))
    return urlunsplit(parts._replace(query=urlencode(query)))


def decode_frame(text: str) -> LiveUpdateEvent:
    """Decode a text frame into a LiveUpdateEvent.

    Args:
        text: Raw frame text (JSON).

    Returns:
        Decoded event. The caller decides whether its type is actionable.

    Raises:
        DecodingError: If the frame is not valid JSON or fails the schema.
    """
    try:
        return LiveUpdateEvent.model_validate_json(text)
    except ValidationError as e:
        raise DecodingError(str(e)) from e


class StreamConnection:
    """One open WebSocket connection yielding raw text frames."""

    def __init__(self, websocket: Any) -> None:
        self._websocket = websocket

    async def receive_frame(self) -> str:
        """Wait for the next frame.

        Binary frames are decoded as UTF-8.

        Returns:
            Frame text.

        Raises:
            TransportError: If the connection closed or failed.
            DecodingError: If a binary frame is not valid UTF-8.
        """
        try:
            frame = await self._websocket.recv()
        except ConnectionClosed as e:
            raise TransportError(f"Stream closed: {e}") from e
        except (OSError, WebSocketException) as e:
            raise TransportError(f"Stream read failed: {e}") from e

        if isinstance(frame, bytes | bytearray | memoryview):
            try:
                return bytes(frame).decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecodingError("WebSocket payload is not valid UTF-8") from e
        return frame


class StreamTransport:
    """Opens live update connections to the dashboard stream endpoint.

    The transport does no retrying. Errors propagate to the StreamSession,
    which owns the reconnect policy.
    """

    def __init__(
        self,
        stream_url: str = "wss://claudible.io/dashboard/ws",
        open_timeout: float = 10.0,
    ) -> None:
        """Initialize transport.

        Args:
            stream_url: WebSocket endpoint URL.
            open_timeout: Seconds allowed for the opening handshake.
        """
        self.stream_url = stream_url
        self._open_timeout = open_timeout

    @asynccontextmanager
    async def open(self, credential: str) -> AsyncIterator[StreamConnection]:
        """Open one connection for a credential.

        The socket is closed when the context exits, including on
        cancellation.

        Args:
            credential: API key identifying the account.

        Yields:
            StreamConnection for reading frames.

        Raises:
            TransportError: If the connection cannot be established.
        """
        url = build_stream_url(self.stream_url, credential)
        async with AsyncExitStack() as stack:
            try:
                websocket = await stack.enter_async_context(
                    websockets.connect(url, open_timeout=self._open_timeout)
                )
            except (OSError, TimeoutError, WebSocketException) as e:
                raise TransportError(f"Cannot open stream: {e}") from e
            yield StreamConnection(websocket)

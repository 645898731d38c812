# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Reconnecting live update session for one credential."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from enum import StrEnum

from loguru import logger

from claudible_status.client.models import LiveUpdateEvent
from claudible_status.client.streaming import StreamConnection, StreamTransport, decode_frame
from claudible_status.core.exceptions import DecodingError, TransportError
from claudible_status.core.utils import mask_credential


DEFAULT_RECONNECT_DELAY = 2.0


class ConnectionState(StrEnum):
    """Live stream connection state."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


StateCallback = Callable[["StreamSession", ConnectionState], Awaitable[None]]
EventCallback = Callable[["StreamSession", LiveUpdateEvent], Awaitable[None]]


class StreamSession:
    """Keeps one live update stream open for a credential.

    Runs a reconnect loop as an asyncio task: connect, read frames until the
    connection fails, wait a fixed delay, connect again. Retries forever until
    stopped. The session never touches dashboard state itself; it reports
    state transitions and decoded ``usage_update`` events through callbacks,
    passing itself so the receiver can check it is still the current session.

    Attributes:
        credential: The credential this session was opened for.
        state: Last state reported by the session.
    """

    def __init__(
        self,
        credential: str,
        transport: StreamTransport,
        on_state: StateCallback,
        on_event: EventCallback,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ) -> None:
        """Initialize session.

        Args:
            credential: API key the stream is opened for.
            transport: Transport used to open connections.
            on_state: Awaited on every state transition.
            on_event: Awaited for every decoded usage_update event, in wire order.
            reconnect_delay: Seconds to wait between connection attempts.
        """
        self.credential = credential
        self.state = ConnectionState.IDLE
        self._transport = transport
        self._on_state = on_state
        self._on_event = on_event
        self._reconnect_delay = reconnect_delay
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the reconnect loop."""
        if self._task is not None:
            raise RuntimeError("StreamSession can only be started once")
        self._task = asyncio.create_task(
            self._run(), name=f"stream-session-{mask_credential(self.credential)}"
        )
        self._task.add_done_callback(self._handle_task_done)

    async def stop(self) -> None:
        """Cancel the reconnect loop and wait for it to close the connection."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    def _handle_task_done(self, task: asyncio.Task[None]) -> None:
        """Log an unexpected crash of the reconnect loop.

        Args:
            task: The finished session task.
        """
        if not task.cancelled():
            exc = task.exception()
            if exc is not None:
                logger.error(
                    "Stream session crashed",
                    credential=mask_credential(self.credential),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

    async def _emit_state(self, state: ConnectionState) -> None:
        self.state = state
        await self._on_state(self, state)

    async def _run(self) -> None:
        """Connect, consume, and reconnect until cancelled.

        The first attempt is announced as CONNECTING. After a transport
        failure the session reports RECONNECTING before waiting, so every
        later attempt is preceded by RECONNECTING. Cancellation during
        connect, receive, or the delay ends the loop with a single IDLE.
        """
        masked = mask_credential(self.credential)
        attempt = 0
        try:
            await self._emit_state(ConnectionState.CONNECTING)
            while True:
                attempt += 1
                try:
                    async with self._transport.open(self.credential) as connection:
                        logger.info("Live stream connected", credential=masked, attempt=attempt)
                        await self._emit_state(ConnectionState.CONNECTED)
                        await self._consume(connection)
                except TransportError as e:
                    logger.warning(
                        "Live stream disconnected",
                        credential=masked,
                        attempt=attempt,
                        error=str(e),
                        retry_in=self._reconnect_delay,
                    )

                await self._emit_state(ConnectionState.RECONNECTING)
                await asyncio.sleep(self._reconnect_delay)
        except asyncio.CancelledError:
            logger.debug("Live stream session stopped", credential=masked)
            await self._emit_state(ConnectionState.IDLE)
            raise

    async def _consume(self, connection: StreamConnection) -> None:
        """Forward usage_update events until the connection fails.

        Malformed frames and other message types are dropped without
        affecting the connection.

        Args:
            connection: Open stream connection.

        Raises:
            TransportError: When the connection closes or fails.
        """
        while True:
            try:
                text = await connection.receive_frame()
                event = decode_frame(text)
            except DecodingError as e:
                logger.debug("Dropped malformed stream frame", error=e.details)
                continue

            if not event.is_usage_update:
                logger.debug("Ignored stream message", message_type=event.type)
                continue

            await self._on_event(self, event)

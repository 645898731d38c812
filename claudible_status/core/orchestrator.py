# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Dashboard orchestrator: owns the snapshot and the live stream session.

The orchestrator is the single writer of the dashboard snapshot and the
connection state. Fetch results and stream session callbacks are applied
only if they belong to the credential and session that are current at the
time they arrive; anything from a superseded session or fetch is dropped.
"""

import asyncio
from decimal import Decimal

from loguru import logger

from claudible_status.client.api import DashboardClient
from claudible_status.client.merge import USAGE_HISTORY_LIMIT, apply_live_update
from claudible_status.client.models import LiveUpdateEvent, Snapshot
from claudible_status.client.session import (
    DEFAULT_RECONNECT_DELAY,
    ConnectionState,
    StreamSession,
)
from claudible_status.client.streaming import StreamTransport
from claudible_status.config import StatusConfig
from claudible_status.core.exceptions import ClientError
from claudible_status.core.utils import mask_credential, normalize_credential
from claudible_status.events.bus import DashboardEvent, DashboardEventType, EventBus
from claudible_status.storage.balance import BalanceCache


EMPTY_CREDENTIAL_MESSAGE = "Please set an API key first (claudible-status key set)."


class DashboardOrchestrator:
    """Keeps a dashboard snapshot current for one credential at a time.

    Example:
        >>> orchestrator = DashboardOrchestrator(client, transport, cache)
        >>> await orchestrator.set_credential("sk-...")
        >>> orchestrator.snapshot.balance
        Decimal('95.5')
        >>> await orchestrator.stop()

    Attributes:
        event_bus: Bus publishing snapshot, connection state and balance changes.
    """

    def __init__(
        self,
        client: DashboardClient,
        transport: StreamTransport,
        balance_cache: BalanceCache,
        event_bus: EventBus | None = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        usage_limit: int = USAGE_HISTORY_LIMIT,
    ) -> None:
        """Initialize orchestrator.

        Args:
            client: Lookup client used for full snapshot fetches.
            transport: Transport handed to stream sessions.
            balance_cache: Cache updated after every fetch and merge.
            event_bus: Bus for change notifications. A new one is created if omitted.
            reconnect_delay: Fixed delay between stream reconnect attempts.
            usage_limit: Maximum usage records kept in the snapshot.
        """
        self.event_bus = event_bus or EventBus()
        self._client = client
        self._transport = transport
        self._balance_cache = balance_cache
        self._reconnect_delay = reconnect_delay
        self._usage_limit = usage_limit

        self._snapshot: Snapshot | None = None
        self._connection_state = ConnectionState.IDLE
        self._last_error: str | None = None
        self._credential: str | None = None
        self._session: StreamSession | None = None
        self._fetch_task: asyncio.Task[Snapshot] | None = None
        # Bumped by every session switch or stop; a switch that sees a newer
        # value after awaiting is superseded and must not install its session
        self._session_generation = 0

    @classmethod
    def from_config(
        cls,
        config: StatusConfig,
        balance_cache: BalanceCache,
        event_bus: EventBus | None = None,
    ) -> "DashboardOrchestrator":
        """Build an orchestrator with client and transport from configuration.

        Args:
            config: Client configuration.
            balance_cache: Cache updated after every fetch and merge.
            event_bus: Optional bus for change notifications.

        Returns:
            Configured orchestrator.
        """
        return cls(
            client=DashboardClient(
                lookup_url=config.lookup_url,
                timeout=config.request_timeout_seconds,
                connect_timeout=config.connect_timeout_seconds,
            ),
            transport=StreamTransport(
                stream_url=config.stream_url,
                open_timeout=config.stream_open_timeout_seconds,
            ),
            balance_cache=balance_cache,
            event_bus=event_bus,
            reconnect_delay=config.reconnect_delay_seconds,
            usage_limit=config.usage_history_limit,
        )

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection_state

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def credential(self) -> str | None:
        return self._credential

    @property
    def is_loading(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    @property
    def is_streaming(self) -> bool:
        return self._session is not None and self._session.running

    async def set_credential(self, credential: str | None) -> None:
        """Switch the active credential.

        An empty credential clears the dashboard. Setting the credential that
        already has a running session is a no-op. Any other credential stops
        the current session, fetches a fresh snapshot and starts streaming.

        Args:
            credential: API key, possibly with surrounding whitespace.
        """
        trimmed = normalize_credential(credential)
        if trimmed and trimmed == self._credential and self.is_streaming:
            return
        await self.fetch_or_refresh(trimmed)

    async def fetch_or_refresh(self, credential: str | None) -> Snapshot | None:
        """Fetch a snapshot and make sure the stream runs for the credential.

        Failures are recorded in ``last_error``; the previous snapshot is kept.

        Args:
            credential: API key, possibly with surrounding whitespace.

        Returns:
            The fetched snapshot, or None if the credential was empty, the
            fetch failed, or a newer request superseded it.
        """
        trimmed = normalize_credential(credential)
        if not trimmed:
            await self._clear()
            return None

        if not await self._start_session_if_needed(trimmed):
            logger.debug("Session switch superseded", credential=mask_credential(trimmed))
            return None
        self._last_error = None
        return await self._fetch(trimmed)

    async def stop_streaming(self) -> None:
        """Stop the live stream. The snapshot is kept."""
        await self._stop_session()

    async def stop(self) -> None:
        """Stop streaming and cancel any in-flight fetch."""
        self._cancel_fetch()
        await self._stop_session()

    def _cancel_fetch(self) -> None:
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()

    async def _clear(self) -> None:
        self._cancel_fetch()
        old_session, generation = self._detach_session()
        await self._stop_detached(old_session)
        if generation != self._session_generation:
            return
        self._set_connection_state(ConnectionState.IDLE)
        self._credential = None
        self._last_error = EMPTY_CREDENTIAL_MESSAGE
        self._replace_snapshot(None)
        self._balance_cache.clear_balance()
        self._publish_balance(None)

    async def _start_session_if_needed(self, credential: str) -> bool:
        """Make sure the current session streams for ``credential``.

        The credential and generation are claimed before the first await, so
        a later switch or stop that runs while the old session is shutting
        down wins over this one.

        Args:
            credential: Trimmed, non-empty API key.

        Returns:
            False if a newer switch or stop superseded this call.
        """
        if credential == self._credential and self.is_streaming:
            return True

        old_session, generation = self._detach_session()
        if self._credential != credential and self._snapshot is not None:
            # Never merge events for the new credential into another account's snapshot
            self._replace_snapshot(None)
        self._credential = credential

        await self._stop_detached(old_session)
        if generation != self._session_generation:
            return False
        self._set_connection_state(ConnectionState.IDLE)

        session = StreamSession(
            credential=credential,
            transport=self._transport,
            on_state=self._handle_stream_state,
            on_event=self._handle_stream_event,
            reconnect_delay=self._reconnect_delay,
        )
        self._session = session
        logger.info("Starting live updates", credential=mask_credential(credential))
        await session.start()
        return True

    async def _stop_session(self) -> None:
        old_session, generation = self._detach_session()
        await self._stop_detached(old_session)
        if generation == self._session_generation:
            self._set_connection_state(ConnectionState.IDLE)

    def _detach_session(self) -> tuple[StreamSession | None, int]:
        session = self._session
        # Clear first so the session's final IDLE report fails the identity guard
        self._session = None
        self._session_generation += 1
        return session, self._session_generation

    async def _stop_detached(self, session: StreamSession | None) -> None:
        if session is None:
            return
        await session.stop()
        logger.info("Live updates stopped", credential=mask_credential(session.credential))

    async def _fetch(self, credential: str) -> Snapshot | None:
        """Run one lookup, superseding any fetch still in flight.

        Args:
            credential: Trimmed, non-empty API key.

        Returns:
            The snapshot, or None on failure or when superseded.
        """
        self._cancel_fetch()

        task = asyncio.create_task(self._client.fetch_snapshot(credential))
        self._fetch_task = task
        try:
            snapshot = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.debug("Dashboard fetch superseded", credential=mask_credential(credential))
            return None
        except ClientError as e:
            if credential == self._credential:
                self._last_error = f"Could not load dashboard data: {e}"
                logger.warning("Dashboard fetch failed", error=str(e), error_type=type(e).__name__)
            return None

        if credential != self._credential:
            logger.debug("Discarding snapshot for stale credential")
            return None

        self._replace_snapshot(snapshot)
        self._store_balance(snapshot.balance)
        return snapshot

    def _is_current(self, session: StreamSession) -> bool:
        return session is self._session and session.credential == self._credential

    async def _handle_stream_state(self, session: StreamSession, state: ConnectionState) -> None:
        if not self._is_current(session):
            return
        self._set_connection_state(state)

    async def _handle_stream_event(self, session: StreamSession, event: LiveUpdateEvent) -> None:
        if not self._is_current(session):
            logger.debug("Dropped live update from stale session")
            return

        if self._snapshot is not None:
            self._replace_snapshot(
                apply_live_update(self._snapshot, event, limit=self._usage_limit)
            )
        self._store_balance(event.balance)

    def _set_connection_state(self, state: ConnectionState) -> None:
        if state == self._connection_state:
            return
        self._connection_state = state
        self.event_bus.emit(
            DashboardEvent(
                event_type=DashboardEventType.CONNECTION_STATE_CHANGED,
                connection_state=state,
            )
        )

    def _replace_snapshot(self, snapshot: Snapshot | None) -> None:
        self._snapshot = snapshot
        self.event_bus.emit(
            DashboardEvent(event_type=DashboardEventType.SNAPSHOT_REPLACED, snapshot=snapshot)
        )

    def _store_balance(self, balance: Decimal) -> None:
        self._balance_cache.set_balance(balance)
        self._publish_balance(balance)

    def _publish_balance(self, balance: Decimal | None) -> None:
        self.event_bus.emit(
            DashboardEvent(event_type=DashboardEventType.BALANCE_CHANGED, balance=balance)
        )

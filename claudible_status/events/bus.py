# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Event bus for dashboard change notifications."""
import contextlib
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from claudible_status.client.models import Snapshot
from claudible_status.client.session import ConnectionState


class DashboardEventType(StrEnum):
    """Kinds of change a subscriber can observe."""

    SNAPSHOT_REPLACED = "snapshot_replaced"
    CONNECTION_STATE_CHANGED = "connection_state_changed"
    BALANCE_CHANGED = "balance_changed"


class DashboardEvent(BaseModel):
    """A change notification.

    Attributes:
        event_type: What changed.
        timestamp: When the change was published.
        snapshot: New snapshot for SNAPSHOT_REPLACED (None when cleared).
        connection_state: New state for CONNECTION_STATE_CHANGED.
        balance: New balance for BALANCE_CHANGED (None when cleared).
    """

    model_config = ConfigDict(frozen=True)

    event_type: DashboardEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    snapshot: Snapshot | None = None
    connection_state: ConnectionState | None = None
    balance: Decimal | None = None


class EventBus:
    """Simple synchronous pub/sub bus for dashboard events.

    Owned by the orchestrator; collaborators subscribe to it explicitly.
    Exceptions in subscribers are logged but don't prevent other
    subscribers from receiving events.

    Warning:
        All subscribers MUST be non-blocking. emit() runs synchronously
        in the orchestrator's context.

    Attributes:
        _subscribers: List of callback functions to notify on emit.
    """

    def __init__(self) -> None:
        """Initialize event bus with no subscribers."""
        self._subscribers: list[Callable[[DashboardEvent], None]] = []

    def subscribe(self, callback: Callable[[DashboardEvent], None]) -> None:
        """Subscribe to dashboard events.

        Args:
            callback: Function to call when events are emitted.
        """
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[DashboardEvent], None]) -> None:
        """Unsubscribe from dashboard events.

        Args:
            callback: Previously subscribed callback to remove.
        """
        with contextlib.suppress(ValueError):
            self._subscribers.remove(callback)

    def emit(self, event: DashboardEvent) -> None:
        """Emit event to all subscribers in registration order.

        Args:
            event: The dashboard event to publish.
        """
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception as exc:
                # functools.partial and callable instances may lack __name__
                callback_name = getattr(callback, "__name__", repr(callback))
                logger.exception(
                    "Subscriber raised exception",
                    callback=callback_name,
                    event_type=event.event_type,
                    error=str(exc),
                )

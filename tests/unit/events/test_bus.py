# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Tests for EventBus pub/sub."""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from claudible_status.client.session import ConnectionState
from claudible_status.events.bus import DashboardEvent, DashboardEventType, EventBus


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def balance_event() -> DashboardEvent:
    return DashboardEvent(
        event_type=DashboardEventType.BALANCE_CHANGED,
        balance=Decimal("12.50"),
    )


class TestEventBus:
    """Tests for EventBus."""

    def test_subscribe_and_emit(self, event_bus, balance_event) -> None:
        """Subscribers receive emitted events."""
        received: list[DashboardEvent] = []
        event_bus.subscribe(received.append)

        event_bus.emit(balance_event)

        assert received == [balance_event]

    def test_multiple_subscribers_in_registration_order(self, event_bus, balance_event) -> None:
        order: list[str] = []
        event_bus.subscribe(lambda e: order.append("first"))
        event_bus.subscribe(lambda e: order.append("second"))

        event_bus.emit(balance_event)

        assert order == ["first", "second"]

    def test_unsubscribe(self, event_bus, balance_event) -> None:
        callback = MagicMock()
        event_bus.subscribe(callback)
        event_bus.unsubscribe(callback)

        event_bus.emit(balance_event)

        callback.assert_not_called()

    def test_unsubscribe_unknown_callback_is_ignored(self, event_bus) -> None:
        event_bus.unsubscribe(MagicMock())

    def test_failing_subscriber_does_not_block_others(self, event_bus, balance_event) -> None:
        """An exception in one subscriber is logged and delivery continues."""
        failing = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        event_bus.subscribe(failing)
        event_bus.subscribe(healthy)

        event_bus.emit(balance_event)

        failing.assert_called_once_with(balance_event)
        healthy.assert_called_once_with(balance_event)


class TestDashboardEvent:
    """Tests for DashboardEvent."""

    def test_defaults(self) -> None:
        event = DashboardEvent(
            event_type=DashboardEventType.CONNECTION_STATE_CHANGED,
            connection_state=ConnectionState.CONNECTED,
        )

        assert event.timestamp.tzinfo is not None
        assert event.snapshot is None
        assert event.balance is None
        assert event.connection_state == "connected"

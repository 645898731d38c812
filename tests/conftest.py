# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Shared fixtures and helpers for all tests.

Provides factories for snapshots, usage records and live update events,
plus an in-memory stream transport for driving sessions without a network.
"""
import asyncio
import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from claudible_status.client.models import (
    Analytics,
    DaysRemaining,
    LiveUpdateEvent,
    Snapshot,
    UsageRecord,
    UsageStats,
)
from claudible_status.core.exceptions import TransportError


BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class FakeConnection:
    """Stream connection fed from a queue.

    Push frame text (str or bytes) to deliver it; push an exception to make
    receive_frame raise it.
    """

    def __init__(self) -> None:
        self.frames: asyncio.Queue[Any] = asyncio.Queue()

    def push(self, item: Any) -> None:
        self.frames.put_nowait(item)

    async def receive_frame(self) -> str:
        item = await self.frames.get()
        if isinstance(item, Exception):
            raise item
        return item


class FakeTransport:
    """In-memory StreamTransport replacement.

    Attributes:
        opened: Credentials passed to open(), in order.
        open_errors: Exceptions raised by the next open() calls, consumed in order.
        open_gate: When set, open() blocks until the event is set.
        connections: Connections handed out, in order.
        closed: Number of connections whose context has exited.
    """

    def __init__(self) -> None:
        self.opened: list[str] = []
        self.open_errors: list[Exception] = []
        self.open_gate: asyncio.Event | None = None
        self.connections: list[FakeConnection] = []
        self.closed = 0

    @asynccontextmanager
    async def open(self, credential: str) -> AsyncIterator[FakeConnection]:
        self.opened.append(credential)
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.open_errors:
            raise self.open_errors.pop(0)
        connection = FakeConnection()
        self.connections.append(connection)
        try:
            yield connection
        finally:
            self.closed += 1

    def fail_current(self, message: str = "connection reset") -> None:
        """Make the latest connection fail with a transport error."""
        self.connections[-1].push(TransportError(message))


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Poll until predicate() is true, failing the test after timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.001)


def event_frame(
    balance: float = 95.5,
    model: str = "gpt",
    prompt_tokens: int = 10,
    completion_tokens: int = 5,
    cost_usd: float = 4.5,
    created_at: str = "2026-03-01T12:00:00.000Z",
    message_type: str = "usage_update",
    timestamp: str = "2026-03-01T12:00:00Z",
) -> str:
    """Build the JSON text of a stream frame."""
    return json.dumps(
        {
            "type": message_type,
            "timestamp": timestamp,
            "data": {
                "balance": balance,
                "usage": {
                    "completionTokens": completion_tokens,
                    "costUSD": cost_usd,
                    "createdAt": created_at,
                    "model": model,
                    "promptTokens": prompt_tokens,
                },
            },
        }
    )


def snapshot_payload(**overrides: Any) -> dict[str, Any]:
    """Build a lookup response body as the server sends it."""
    payload: dict[str, Any] = {
        "valid": True,
        "balance": 100.0,
        "status": "active",
        "lastUsed": "2026-03-01T11:00:00.123Z",
        "createdAt": "2025-01-15T08:30:00Z",
        "stats": {
            "completionTokens": 0,
            "promptTokens": 0,
            "totalCost": 0,
            "totalRequests": 0,
        },
        "usage": [],
        "accountType": "pro",
        "dailyQuota": 25.0,
        "subscriptionExpiresAt": "2026-12-31T23:59:59Z",
        "subscriptionActive": True,
        "userName": "Alex",
        "analytics": {
            "dailyUsage": [
                {
                    "date": "2026-02-28",
                    "totalRequests": 12,
                    "totalInputTokens": 3400,
                    "totalOutputTokens": 1200,
                    "totalCostUSD": 1.75,
                }
            ],
            "modelBreakdown": [{"model": "gpt", "totalCostUSD": 1.75}],
            "hourlyDistribution": [{"hourOfDay": 9, "totalRequests": 4, "totalCostUSD": 0.5}],
            "daysRemaining": {
                "runwayMinutes": 86400.0,
                "avgCostPerMinute": 0.001,
                "avgDailyCost7d": 1.44,
            },
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Create an in-memory stream transport."""
    return FakeTransport()


@pytest.fixture
def usage_record_factory() -> Callable[..., UsageRecord]:
    """Factory fixture for UsageRecord instances with sensible defaults."""
    def _create(
        minutes_ago: int = 0,
        model: str = "gpt",
        prompt_tokens: int = 10,
        completion_tokens: int = 5,
        cost_usd: str = "0.50",
        id: int | None = None,
    ) -> UsageRecord:
        return UsageRecord(
            completion_tokens=completion_tokens,
            prompt_tokens=prompt_tokens,
            cost_usd=Decimal(cost_usd),
            created_at=BASE_TIME - timedelta(minutes=minutes_ago),
            model=model,
            id=id,
        )
    return _create


@pytest.fixture
def snapshot_factory() -> Callable[..., Snapshot]:
    """Factory fixture for Snapshot instances with sensible defaults."""
    def _create(
        balance: str = "100.00",
        usage: list[UsageRecord] | None = None,
        last_used: datetime = BASE_TIME - timedelta(hours=1),
        total_requests: int = 0,
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
        total_cost: str = "0",
    ) -> Snapshot:
        return Snapshot(
            valid=True,
            balance=Decimal(balance),
            status="active",
            last_used=last_used,
            created_at=datetime(2025, 1, 15, tzinfo=UTC),
            stats=UsageStats(
                completion_tokens=completion_tokens,
                prompt_tokens=prompt_tokens,
                total_cost=Decimal(total_cost),
                total_requests=total_requests,
            ),
            usage=usage or [],
            account_type="pro",
            daily_quota=Decimal("25"),
            subscription_expires_at=datetime(2026, 12, 31, tzinfo=UTC),
            subscription_active=True,
            user_name="Alex",
            analytics=Analytics(
                daily_usage=[],
                model_breakdown=[],
                hourly_distribution=[],
                days_remaining=DaysRemaining(
                    runway_minutes=0.0, avg_cost_per_minute=0.0, avg_daily_cost_7d=0.0
                ),
            ),
        )
    return _create


@pytest.fixture
def live_event_factory() -> Callable[..., LiveUpdateEvent]:
    """Factory fixture for decoded live update events."""
    def _create(
        balance: str = "95.50",
        created_at: datetime = BASE_TIME,
        model: str = "gpt",
        prompt_tokens: int = 10,
        completion_tokens: int = 5,
        cost_usd: str = "4.50",
        message_type: str = "usage_update",
    ) -> LiveUpdateEvent:
        return LiveUpdateEvent.model_validate(
            {
                "type": message_type,
                "timestamp": created_at,
                "data": {
                    "balance": Decimal(balance),
                    "usage": {
                        "completionTokens": completion_tokens,
                        "promptTokens": prompt_tokens,
                        "costUSD": Decimal(cost_usd),
                        "createdAt": created_at,
                        "model": model,
                    },
                },
            }
        )
    return _create

# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Pydantic models for the dashboard lookup API and live stream."""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


USAGE_UPDATE_EVENT = "usage_update"

_FRACTIONAL_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"
_BASIC_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 internet timestamp.

    Tries the variant with fractional seconds first and falls back to the
    variant without them. A UTC offset (or ``Z``) is required.

    Args:
        value: Timestamp string, or an already parsed datetime.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If neither format matches.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid ISO8601 date: {value!r}")

    for fmt in (_FRACTIONAL_FORMAT, _BASIC_FORMAT):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    raise ValueError(f"Invalid ISO8601 date: {value}")


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]


class _WireModel(BaseModel):
    """Base for models exchanged with the dashboard API (camelCase on the wire)."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class LookupRequest(_WireModel):
    """Request body for the dashboard lookup endpoint."""

    key: str = Field(..., min_length=1)


class UsageStats(_WireModel):
    """Running usage aggregate for an account.

    Attributes:
        completion_tokens: Total completion tokens billed.
        prompt_tokens: Total prompt tokens billed.
        total_cost: Total cost in USD.
        total_requests: Number of billed requests.
    """

    completion_tokens: int
    prompt_tokens: int
    total_cost: Decimal
    total_requests: int


class UsageRecord(_WireModel):
    """One billed request.

    Attributes:
        completion_tokens: Completion tokens for this request.
        prompt_tokens: Prompt tokens for this request.
        cost_usd: Cost of the request in USD.
        created_at: When the request was billed.
        model: Model identifier.
        id: Server-side identifier. Records built from live events have none.
    """

    completion_tokens: int
    prompt_tokens: int
    cost_usd: Decimal = Field(alias="costUSD")
    created_at: Timestamp
    model: str
    id: int | None = None

    @property
    def stable_id(self) -> str:
        """Deterministic key for list diffing in a UI layer."""
        if self.id is not None:
            return f"usage-{self.id}"

        return (
            f"usage-{self.model}-{self.created_at.timestamp()}"
            f"-{self.prompt_tokens}-{self.completion_tokens}-{self.cost_usd}"
        )


class DailyUsage(_WireModel):
    date: str
    total_requests: int
    total_input_tokens: int
    total_output_tokens: int
    total_cost_usd: Decimal = Field(alias="totalCostUSD")


class ModelBreakdown(_WireModel):
    model: str
    total_cost: Decimal = Field(alias="totalCostUSD")


class HourlyUsage(_WireModel):
    hour_of_day: int
    total_requests: int
    total_cost_usd: Decimal = Field(alias="totalCostUSD")


class DaysRemaining(_WireModel):
    runway_minutes: float
    avg_cost_per_minute: float
    avg_daily_cost_7d: float = Field(alias="avgDailyCost7d")


class Analytics(_WireModel):
    """Server-computed analytics, passed through untouched."""

    daily_usage: list[DailyUsage]
    model_breakdown: list[ModelBreakdown]
    hourly_distribution: list[HourlyUsage]
    days_remaining: DaysRemaining


class Snapshot(_WireModel):
    """Full dashboard state for one account.

    Instances are immutable. The live merge produces new snapshots with
    ``model_copy(update={...})``.

    Attributes:
        valid: Whether the credential is valid.
        balance: Remaining balance in USD.
        status: Account status reported by the server.
        last_used: Timestamp of the most recent billed request.
        created_at: Account creation timestamp.
        stats: Running usage aggregate.
        usage: Recent usage records, newest first (at most 50).
        account_type: Account plan type.
        daily_quota: Daily spending quota in USD.
        subscription_expires_at: Subscription expiry timestamp.
        subscription_active: Whether the subscription is active.
        user_name: Display name of the account owner.
        analytics: Server-computed analytics.
    """

    valid: bool
    balance: Decimal
    status: str
    last_used: Timestamp
    created_at: Timestamp
    stats: UsageStats
    usage: list[UsageRecord]
    account_type: str
    daily_quota: Decimal
    subscription_expires_at: Timestamp
    subscription_active: bool
    user_name: str
    analytics: Analytics

    @property
    def welcome_text(self) -> str:
        return f"Welcome back, {self.user_name}"


class UsageDelta(_WireModel):
    """Usage record carried by a live update. Never has an id."""

    completion_tokens: int
    prompt_tokens: int
    cost_usd: Decimal = Field(alias="costUSD")
    created_at: Timestamp
    model: str

    def as_usage_record(self) -> UsageRecord:
        """Convert to a UsageRecord with no server id."""
        return UsageRecord(
            completion_tokens=self.completion_tokens,
            prompt_tokens=self.prompt_tokens,
            cost_usd=self.cost_usd,
            created_at=self.created_at,
            model=self.model,
            id=None,
        )


class LiveUpdateData(_WireModel):
    balance: Decimal
    usage: UsageDelta


class LiveUpdateEvent(_WireModel):
    """Decoded stream message.

    Wire shape: ``{"type", "timestamp", "data": {"balance", "usage": {...}}}``.
    Only ``usage_update`` messages are applied to the snapshot.
    """

    type: str
    timestamp: Timestamp
    data: LiveUpdateData

    @property
    def balance(self) -> Decimal:
        return self.data.balance

    @property
    def usage_delta(self) -> UsageDelta:
        return self.data.usage

    @property
    def is_usage_update(self) -> bool:
        return self.type == USAGE_UPDATE_EVENT

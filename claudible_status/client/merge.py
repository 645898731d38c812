# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Merge live usage updates into a dashboard snapshot."""
from claudible_status.client.models import LiveUpdateEvent, Snapshot


USAGE_HISTORY_LIMIT = 50


def apply_live_update(
    snapshot: Snapshot,
    event: LiveUpdateEvent,
    limit: int = USAGE_HISTORY_LIMIT,
) -> Snapshot:
    """Apply one usage_update event to a snapshot.

    The new record is prepended and the list re-sorted newest first, so
    events arriving out of temporal order still land in the right place.
    Sorting is stable, so records with equal timestamps keep arrival order
    (newest arrival first). The balance is replaced, not accumulated.

    Repeated events are counted again; there is no de-duplication.

    Args:
        snapshot: Current snapshot. Not modified.
        event: Decoded live update.
        limit: Maximum number of usage records to keep.

    Returns:
        New snapshot with the update applied.
    """
    record = event.usage_delta.as_usage_record()

    usage = sorted(
        [record, *snapshot.usage],
        key=lambda item: item.created_at,
        reverse=True,
    )[:limit]

    stats = snapshot.stats.model_copy(
        update={
            "total_requests": snapshot.stats.total_requests + 1,
            "prompt_tokens": snapshot.stats.prompt_tokens + record.prompt_tokens,
            "completion_tokens": snapshot.stats.completion_tokens + record.completion_tokens,
            "total_cost": snapshot.stats.total_cost + record.cost_usd,
        }
    )

    return snapshot.model_copy(
        update={
            "balance": event.balance,
            "last_used": max(snapshot.last_used, record.created_at),
            "usage": usage,
            "stats": stats,
        }
    )

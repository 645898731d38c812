"""Change notifications published by the dashboard orchestrator."""
from claudible_status.events.bus import DashboardEvent, DashboardEventType, EventBus


__all__ = ["DashboardEvent", "DashboardEventType", "EventBus"]

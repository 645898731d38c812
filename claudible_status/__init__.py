"""claudible-status: live usage and balance dashboard client."""

from claudible_status.config import StatusConfig, load_config
from claudible_status.core.orchestrator import DashboardOrchestrator


__version__ = "0.1.0"

__all__ = [
    "DashboardOrchestrator",
    "load_config",
    "StatusConfig",
    "__version__",
]

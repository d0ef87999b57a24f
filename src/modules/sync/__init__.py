"""Client-side convergence with the distribution API.

Runs outside the Django process: an httpx client that applies the same
lifecycle guards as the server before each write, a polling scheduler and
a pull-based route tracker.
"""

from modules.sync.client import DistributionApiClient
from modules.sync.exceptions import BackendError
from modules.sync.scheduler import PollingScheduler
from modules.sync.tracker import RouteTracker, TrackerState

__all__ = [
    "BackendError",
    "DistributionApiClient",
    "PollingScheduler",
    "RouteTracker",
    "TrackerState",
]

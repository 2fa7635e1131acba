"""Discovery passes and the session state that consumes them."""

from proxmon.discovery.coordinator import DiscoveryCancelled, DiscoveryTask, FetchCoordinator
from proxmon.discovery.session import Session, SessionError

__all__ = [
    "DiscoveryCancelled",
    "DiscoveryTask",
    "FetchCoordinator",
    "Session",
    "SessionError",
]

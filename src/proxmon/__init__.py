"""proxmon: Proxmox VE host discovery and Ansible inventory export."""

__version__ = "0.1.0"

from proxmon.cluster.client import ClusterClient
from proxmon.cluster.errors import ClusterClientError, ConnectError, ParseError, RequestError
from proxmon.cluster.resolver import IpResolver
from proxmon.config import ConfigError, ProxmonConfig, find_config, load_config, save_config
from proxmon.discovery.coordinator import DiscoveryCancelled, DiscoveryTask, FetchCoordinator
from proxmon.discovery.session import Session, SessionError
from proxmon.inventory.export import generate_ansible_hosts
from proxmon.inventory.reconciler import reconcile
from proxmon.inventory.sorting import sort_hosts
from proxmon.models import (
    AnsibleDefaults,
    ClusterConfig,
    ClusterError,
    DiscoveryResult,
    Host,
    HostKind,
    IpOverride,
    ManualHost,
    SortColumn,
    SortDirection,
)

__all__ = [
    "AnsibleDefaults",
    "ClusterClient",
    "ClusterClientError",
    "ClusterConfig",
    "ClusterError",
    "ConfigError",
    "ConnectError",
    "DiscoveryCancelled",
    "DiscoveryResult",
    "DiscoveryTask",
    "FetchCoordinator",
    "find_config",
    "generate_ansible_hosts",
    "Host",
    "HostKind",
    "IpOverride",
    "IpResolver",
    "load_config",
    "ManualHost",
    "ParseError",
    "ProxmonConfig",
    "reconcile",
    "RequestError",
    "save_config",
    "Session",
    "SessionError",
    "sort_hosts",
    "SortColumn",
    "SortDirection",
    "__version__",
]

"""Proxmox VE API access: cluster client and IP resolution."""

from proxmon.cluster.client import ClusterClient
from proxmon.cluster.errors import (
    ClusterClientError,
    ConnectError,
    ParseError,
    RequestError,
)
from proxmon.cluster.resolver import IpResolver

__all__ = [
    "ClusterClient",
    "ClusterClientError",
    "ConnectError",
    "IpResolver",
    "ParseError",
    "RequestError",
]

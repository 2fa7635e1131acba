"""Core data models for proxmon.

Defines the schemas for:
- Cluster connection settings (one per Proxmox VE endpoint)
- Discovered hosts (VMs, containers, physical machines)
- User-maintained IP overrides and manual hosts
- Ansible export defaults
- Discovery results and per-cluster diagnostics
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PORT = 8006
DEFAULT_ANSIBLE_USER = "gozy"

# --- Enums ---


class HostKind(enum.StrEnum):
    VM = "VM"
    LXC = "LXC"
    PHYSICAL = "Physical"


class SortColumn(enum.StrEnum):
    NAME = "name"
    KIND = "kind"
    STATUS = "status"
    IP = "ip"
    NODE = "node"


class SortDirection(enum.StrEnum):
    ASCENDING = "asc"
    DESCENDING = "desc"

    def flipped(self) -> SortDirection:
        if self is SortDirection.ASCENDING:
            return SortDirection.DESCENDING
        return SortDirection.ASCENDING


# --- Cluster Schema ---


class ClusterConfig(BaseModel):
    """Connection settings for one Proxmox VE cluster.

    Loaded from the ``proxmox_hosts`` list of the config file. The token
    secret is excluded from ``repr`` so it never ends up in log lines.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    host: str
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    api_token_id: str
    api_token_secret: str = Field(repr=False)
    verify_ssl: bool = False

    @property
    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}/api2/json"

    @property
    def token(self) -> str:
        """The ``<token_id>=<token_secret>`` value sent after ``PVEAPIToken=``."""
        return f"{self.api_token_id}={self.api_token_secret}"


# --- Host Schema ---


class Host(BaseModel):
    """A single discovered (or manually declared) host.

    Hosts are rebuilt from scratch on every discovery pass. ``vmid`` is
    kept for future lifecycle actions and is not used for lookups.
    """

    name: str
    kind: HostKind
    status: str = "unknown"
    ip: str | None = None
    node: str | None = None
    vmid: int | None = None
    ansible_user: str | None = None


class IpOverride(BaseModel):
    """A user-asserted IP address for a host name."""

    name: str
    ip: str


class ManualHost(BaseModel):
    """A host declared in the config file and never discovered from a cluster."""

    name: str
    ip: str
    type: str = "physical"
    ansible_user: str = DEFAULT_ANSIBLE_USER


class AnsibleDefaults(BaseModel):
    """Values written to the ``[all:vars]`` section of an export."""

    python_interpreter: str = "/usr/bin/python3"
    become: bool = True
    become_method: str = "sudo"
    default_user: str = DEFAULT_ANSIBLE_USER


# --- Discovery Results ---


class ClusterError(BaseModel):
    """A diagnostic recorded when one cluster contributed no hosts."""

    cluster: str
    message: str


class DiscoveryResult(BaseModel):
    """The outcome of one discovery pass."""

    hosts: list[Host] = Field(default_factory=list)
    errors: list[ClusterError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        text = f"{len(self.hosts)} host(s)"
        if self.errors:
            text += f", {len(self.errors)} cluster error(s)"
        return text

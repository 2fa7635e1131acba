"""Best-effort IP address discovery for VMs and containers.

Strategies run in order and the first address found wins:

1. Live interface data (QEMU guest agent for VMs, ``/interfaces`` for
   containers).
2. Static network configuration: ``ip=`` tokens in the ``net*`` keys
   (and ``ipconfig*`` cloud-init keys) of the unit's config.

A failed request ends that strategy without retrying. Finding no address
is a normal outcome, not an error.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from collections.abc import Callable, Iterator
from typing import Any, Protocol

from proxmon.cluster.errors import ClusterClientError

logger = logging.getLogger(__name__)

_CONFIG_PREFIXES = ("net", "ipconfig")
_TOKEN_SPLIT = re.compile(r"[,\s]+")
_KEY_INDEX = re.compile(r"^([a-z]+)(\d*)$")


class UnitQueries(Protocol):
    """The raw per-unit queries the resolver needs from a cluster client."""

    def vm_agent_interfaces(self, node: str, vmid: int) -> Any: ...

    def container_interfaces(self, node: str, vmid: int) -> Any: ...

    def vm_config(self, node: str, vmid: int) -> Any: ...

    def container_config(self, node: str, vmid: int) -> Any: ...


def strip_cidr(address: str) -> str:
    return address.split("/", 1)[0].strip()


def is_loopback(address: str) -> bool:
    return address.startswith("127.")


# --- payload parsers ---


def _agent_addresses(interface: dict[str, Any]) -> Iterator[str]:
    direct = interface.get("ip-address")
    if isinstance(direct, str):
        yield direct
    addresses = interface.get("ip-addresses")
    if isinstance(addresses, list):
        for entry in addresses:
            if isinstance(entry, dict) and isinstance(entry.get("ip-address"), str):
                yield entry["ip-address"]


def ip_from_agent_interfaces(payload: Any) -> str | None:
    """First non-loopback IPv4 address from a guest-agent interface list."""
    if isinstance(payload, dict):
        payload = payload.get("result")
    if not isinstance(payload, list):
        return None

    for interface in payload:
        if not isinstance(interface, dict):
            continue
        for candidate in _agent_addresses(interface):
            address = strip_cidr(candidate)
            if address and not is_loopback(address) and ":" not in address:
                return address
    return None


def ip_from_container_interfaces(payload: Any) -> str | None:
    """First non-loopback ``inet`` address from an LXC interface list."""
    if not isinstance(payload, list):
        return None

    for interface in payload:
        if not isinstance(interface, dict):
            continue
        inet = interface.get("inet")
        if not isinstance(inet, str):
            continue
        address = strip_cidr(inet)
        if address and not is_loopback(address):
            return address
    return None


def _config_key_order(key: str) -> tuple[int, str, int]:
    match = _KEY_INDEX.match(key)
    if match is None:
        return (len(_CONFIG_PREFIXES), key, 0)
    prefix, index = match.groups()
    rank = _CONFIG_PREFIXES.index(prefix) if prefix in _CONFIG_PREFIXES else len(_CONFIG_PREFIXES)
    return (rank, prefix, int(index) if index else -1)


def extract_ip_token(value: str) -> str | None:
    """Return the address of the ``ip=`` token in a config string, if any.

    ``ip=dhcp``, ``ip=manual`` and anything else that is not an address
    yields None.
    """
    for token in _TOKEN_SPLIT.split(value):
        if not token.startswith("ip="):
            continue
        address = strip_cidr(token[3:])
        try:
            ipaddress.ip_address(address)
        except ValueError:
            return None
        return address
    return None


def ip_from_static_config(config: Any) -> str | None:
    """Scan ``net0``, ``net1``, ... then ``ipconfig0``, ... for an ``ip=`` token."""
    if not isinstance(config, dict):
        return None

    keys = [
        key for key in config
        if isinstance(key, str) and key.startswith(_CONFIG_PREFIXES)
    ]
    for key in sorted(keys, key=_config_key_order):
        value = config[key]
        if not isinstance(value, str):
            continue
        address = extract_ip_token(value)
        if address:
            return address
    return None


# --- resolver ---


class IpResolver:
    """Resolve unit IPs through a cluster client's raw queries.

    Holds no state between calls, so units can be resolved independently.
    """

    def __init__(self, queries: UnitQueries) -> None:
        self._queries = queries

    def resolve_vm(self, node: str, vmid: int) -> str | None:
        return self._first_of(
            node,
            vmid,
            lambda: ip_from_agent_interfaces(self._queries.vm_agent_interfaces(node, vmid)),
            lambda: ip_from_static_config(self._queries.vm_config(node, vmid)),
        )

    def resolve_container(self, node: str, vmid: int) -> str | None:
        return self._first_of(
            node,
            vmid,
            lambda: ip_from_container_interfaces(
                self._queries.container_interfaces(node, vmid)
            ),
            lambda: ip_from_static_config(self._queries.container_config(node, vmid)),
        )

    def _first_of(
        self,
        node: str,
        vmid: int,
        *strategies: Callable[[], str | None],
    ) -> str | None:
        for strategy in strategies:
            try:
                address = strategy()
            except ClusterClientError as e:
                logger.debug("No IP answer for %s/%d: %s", node, vmid, e)
                continue
            if address:
                return address
        return None

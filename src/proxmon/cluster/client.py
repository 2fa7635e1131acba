"""Read-only client for the Proxmox VE REST API.

One ``ClusterClient`` is bound to one cluster endpoint. Every request
carries the ``PVEAPIToken`` authorization header and every response is
unwrapped from the ``{"data": ...}`` envelope before use.

Uses stdlib ``urllib.request``; no extra dependencies required.
"""

from __future__ import annotations

import http.client
import json
import logging
import ssl
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from typing import Any

from proxmon.cluster.errors import (
    ClusterClientError,
    ConnectError,
    ParseError,
    RequestError,
)
from proxmon.cluster.resolver import IpResolver
from proxmon.models import DEFAULT_ANSIBLE_USER, ClusterConfig, Host, HostKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def build_ssl_context(verify_ssl: bool) -> ssl.SSLContext:
    """Build the TLS context for a cluster.

    Proxmox ships self-signed certificates by default, so verification
    is opt-in per cluster.
    """
    try:
        context = ssl.create_default_context()
        if not verify_ssl:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
    except (ssl.SSLError, OSError, ValueError) as e:
        raise ConnectError(f"Failed to create HTTP client: {e}") from e
    return context


class ClusterClient:
    """Authenticated, read-only access to one cluster.

    Usage::

        client = ClusterClient(cluster)
        for host in client.fetch_all():
            print(host.name, host.ip)

    ``list_nodes`` failures propagate. Per-node VM/container listing
    failures degrade to an empty list so one unreachable node never hides
    the others.
    """

    def __init__(
        self,
        cluster: ClusterConfig,
        timeout: float = DEFAULT_TIMEOUT,
        default_user: str | None = DEFAULT_ANSIBLE_USER,
    ) -> None:
        if not cluster.host:
            raise ConnectError(f"Cluster '{cluster.name}' has no host configured")
        self._name = cluster.name
        self._base_url = cluster.base_url
        self._auth_header = f"PVEAPIToken={cluster.token}"
        self._timeout = timeout
        self._default_user = default_user
        self._ssl_context = build_ssl_context(cluster.verify_ssl)
        self._resolver = IpResolver(self)

    @property
    def name(self) -> str:
        return self._name

    @property
    def base_url(self) -> str:
        return self._base_url

    # --- transport ---

    def get(self, path: str) -> Any:
        """GET ``<base_url><path>`` and return the unwrapped ``data`` payload.

        Raises:
            RequestError: On transport failures or non-2xx status.
            ParseError: If the body is not JSON or lacks a ``data`` key.
        """
        url = self._base_url + path
        req = urllib.request.Request(
            url,
            headers={
                "Authorization": self._auth_header,
                "Accept": "application/json",
            },
            method="GET",
        )
        logger.debug("GET %s on cluster %s", path, self._name)
        try:
            with urllib.request.urlopen(  # noqa: S310
                req, timeout=self._timeout, context=self._ssl_context,
            ) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            detail = _error_body(e)
            raise RequestError(
                f"API request failed with status {e.code}: {detail}"
            ) from e
        except (OSError, http.client.HTTPException) as e:
            raise RequestError(f"Failed to send request: {e}") from e

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"Failed to parse response from {path}: {e}") from e

        if not isinstance(payload, dict) or "data" not in payload:
            raise ParseError(f"Response from {path} has no 'data' envelope")
        return payload["data"]

    def _get_list(self, path: str) -> list[dict[str, Any]]:
        data = self.get(path)
        if not isinstance(data, list):
            raise ParseError(
                f"Expected a list from {path}, got {type(data).__name__}"
            )
        return [entry for entry in data if isinstance(entry, dict)]

    # --- raw unit queries ---

    def vm_agent_interfaces(self, node: str, vmid: int) -> Any:
        return self.get(
            f"/nodes/{_quote(node)}/qemu/{vmid}/agent/network-get-interfaces"
        )

    def container_interfaces(self, node: str, vmid: int) -> Any:
        return self.get(f"/nodes/{_quote(node)}/lxc/{vmid}/interfaces")

    def vm_config(self, node: str, vmid: int) -> Any:
        return self.get(f"/nodes/{_quote(node)}/qemu/{vmid}/config")

    def container_config(self, node: str, vmid: int) -> Any:
        return self.get(f"/nodes/{_quote(node)}/lxc/{vmid}/config")

    # --- listings ---

    def list_nodes(self) -> list[str]:
        """Return the node names of the cluster, in API order."""
        nodes: list[str] = []
        for entry in self._get_list("/nodes"):
            node = entry.get("node")
            if not isinstance(node, str):
                raise ParseError(f"Node entry without a 'node' name: {entry!r}")
            nodes.append(node)
        return nodes

    def list_vms(self, node: str) -> list[Host]:
        """List QEMU VMs on *node* with their resolved IPs."""
        return self._list_units(node, "qemu", HostKind.VM, self._resolver.resolve_vm)

    def list_containers(self, node: str) -> list[Host]:
        """List LXC containers on *node* with their resolved IPs."""
        return self._list_units(
            node, "lxc", HostKind.LXC, self._resolver.resolve_container,
        )

    def _list_units(
        self,
        node: str,
        endpoint: str,
        kind: HostKind,
        resolve: Callable[[str, int], str | None],
    ) -> list[Host]:
        try:
            units = self._get_list(f"/nodes/{_quote(node)}/{endpoint}")
        except ClusterClientError as e:
            logger.warning(
                "Cluster %s: listing %s on node %s failed: %s",
                self._name, endpoint, node, e,
            )
            return []

        hosts: list[Host] = []
        for unit in units:
            vmid = _coerce_vmid(unit.get("vmid"))
            if vmid is None:
                logger.debug(
                    "Cluster %s: skipping %s entry without vmid on %s",
                    self._name, endpoint, node,
                )
                continue
            hosts.append(
                Host(
                    name=str(unit.get("name") or ""),
                    kind=kind,
                    status=str(unit.get("status") or "unknown"),
                    ip=resolve(node, vmid),
                    node=node,
                    vmid=vmid,
                    ansible_user=self._default_user,
                )
            )
        return hosts

    def fetch_all(self) -> list[Host]:
        """Fetch every VM and container on every node.

        Raises:
            ClusterClientError: If the node listing itself fails.
        """
        nodes = self.list_nodes()
        hosts: list[Host] = []
        for node in nodes:
            hosts.extend(self.list_vms(node))
            hosts.extend(self.list_containers(node))
        logger.info(
            "Cluster %s: %d host(s) across %d node(s)",
            self._name, len(hosts), len(nodes),
        )
        return hosts


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


def _coerce_vmid(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _error_body(error: urllib.error.HTTPError) -> str:
    try:
        return error.read().decode("utf-8", errors="replace").strip()
    except (OSError, AttributeError):
        return error.reason if isinstance(error.reason, str) else ""

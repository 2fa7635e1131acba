"""Merge discovered hosts with IP overrides and manual hosts.

Pure functions: no network or disk access, and inputs are never mutated.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from proxmon.models import Host, HostKind, IpOverride, ManualHost


def _override_map(overrides: Iterable[IpOverride]) -> dict[str, str]:
    """Map host name to override IP. The first entry for a name wins."""
    mapping: dict[str, str] = {}
    for override in overrides:
        mapping.setdefault(override.name, override.ip)
    return mapping


def manual_to_host(manual: ManualHost) -> Host:
    return Host(
        name=manual.name,
        kind=HostKind.PHYSICAL,
        status="unknown",
        ip=manual.ip,
        node=None,
        vmid=None,
        ansible_user=manual.ansible_user,
    )


def reconcile(
    cluster_hosts: Sequence[Host],
    overrides: Sequence[IpOverride],
    manual: Sequence[ManualHost],
) -> list[Host]:
    """Build the canonical host list for one discovery pass.

    1. Every cluster host whose name has an override gets the override IP,
       replacing any discovered address. All hosts sharing that name are
       updated.
    2. Manual hosts are appended as ``Physical`` hosts with status
       ``unknown``; overrides do not apply to them.

    Cluster hosts keep their input order and come before manual hosts,
    which keep config order.
    """
    by_name = _override_map(overrides)

    merged: list[Host] = []
    for host in cluster_hosts:
        if host.name in by_name:
            merged.append(host.model_copy(update={"ip": by_name[host.name]}))
        else:
            merged.append(host.model_copy())

    merged.extend(manual_to_host(m) for m in manual)
    return merged


def apply_override(hosts: list[Host], name: str, ip: str | None) -> int:
    """Set (or clear, with ``ip=None``) the IP of every host named *name* in place.

    Used right after an override edit so the change shows without a new
    discovery pass. Returns the number of hosts updated.
    """
    updated = 0
    for index, host in enumerate(hosts):
        if host.name == name:
            hosts[index] = host.model_copy(update={"ip": ip})
            updated += 1
    return updated

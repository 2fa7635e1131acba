"""Render a host list as an Ansible INI inventory.

Hosts are grouped by kind into ``[Proxmox_VM]``, ``[Proxmox_LXC]`` and
``[Physical]`` sections (always in that order, empty groups omitted),
followed by an ``[all:vars]`` section built from the export defaults.
"""

from __future__ import annotations

from collections.abc import Sequence

from proxmon.models import AnsibleDefaults, Host, HostKind

GROUP_NAMES: dict[HostKind, str] = {
    HostKind.VM: "Proxmox_VM",
    HostKind.LXC: "Proxmox_LXC",
    HostKind.PHYSICAL: "Physical",
}


def host_line(host: Host) -> str:
    line = host.name
    if host.ip:
        line += f" ansible_host={host.ip}"
    if host.ansible_user:
        line += f" ansible_user={host.ansible_user}"
    return line


def generate_ansible_hosts(
    hosts: Sequence[Host],
    defaults: AnsibleDefaults | None = None,
) -> str:
    defaults = defaults or AnsibleDefaults()
    lines: list[str] = []

    for kind, group in GROUP_NAMES.items():
        members = [h for h in hosts if h.kind is kind]
        if not members:
            continue
        lines.append(f"[{group}]")
        lines.extend(host_line(h) for h in members)
        lines.append("")

    lines.append("[all:vars]")
    lines.append(f"ansible_python_interpreter={defaults.python_interpreter}")
    lines.append(f"ansible_become={'yes' if defaults.become else 'no'}")
    lines.append(f"ansible_become_method={defaults.become_method}")
    return "\n".join(lines) + "\n"

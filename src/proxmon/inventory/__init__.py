"""Host list reconciliation, display ordering and Ansible export."""

from proxmon.inventory.export import generate_ansible_hosts
from proxmon.inventory.reconciler import apply_override, manual_to_host, reconcile
from proxmon.inventory.sorting import sort_hosts, toggle_sort

__all__ = [
    "apply_override",
    "generate_ansible_hosts",
    "manual_to_host",
    "reconcile",
    "sort_hosts",
    "toggle_sort",
]

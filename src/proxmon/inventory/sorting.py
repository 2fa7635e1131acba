"""Display sort order for host lists.

Sorting is stable and idempotent. Hosts without an IP (or without a
node) always sort after the others, whichever direction is active.
"""

from __future__ import annotations

import functools
import ipaddress
from collections.abc import Sequence

from proxmon.models import Host, SortColumn, SortDirection


def _cmp(a: object, b: object) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


def _ip_key(value: str) -> tuple[int, int] | None:
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return None
    return (address.version, int(address))


def compare_ips(a: str, b: str) -> int:
    """Numeric comparison when both parse as addresses, string comparison otherwise."""
    key_a, key_b = _ip_key(a), _ip_key(b)
    if key_a is not None and key_b is not None:
        return _cmp(key_a, key_b)
    return _cmp(a, b)


def _optional_value(host: Host, column: SortColumn) -> str | None:
    if column is SortColumn.IP:
        return host.ip
    return host.node


def _compare_present(a: Host, b: Host, column: SortColumn) -> int:
    if column is SortColumn.NAME:
        return _cmp(a.name.lower(), b.name.lower())
    if column is SortColumn.KIND:
        return _cmp(str(a.kind), str(b.kind))
    if column is SortColumn.STATUS:
        return _cmp(a.status, b.status)
    if column is SortColumn.IP:
        return compare_ips(a.ip or "", b.ip or "")
    return _cmp(a.node or "", b.node or "")


def sort_hosts(
    hosts: Sequence[Host],
    column: SortColumn,
    direction: SortDirection = SortDirection.ASCENDING,
) -> list[Host]:
    """Return a new list of *hosts* ordered by *column* and *direction*."""
    column = SortColumn(column)
    descending = SortDirection(direction) is SortDirection.DESCENDING

    def compare(a: Host, b: Host) -> int:
        if column in (SortColumn.IP, SortColumn.NODE):
            value_a = _optional_value(a, column)
            value_b = _optional_value(b, column)
            if value_a is None or value_b is None:
                # Missing values sink to the bottom in both directions.
                return (value_a is None) - (value_b is None)
        result = _compare_present(a, b, column)
        return -result if descending else result

    return sorted(hosts, key=functools.cmp_to_key(compare))


def toggle_sort(
    column: SortColumn,
    current_column: SortColumn,
    current_direction: SortDirection,
) -> tuple[SortColumn, SortDirection]:
    """Selecting the active column flips direction; a new column starts ascending."""
    column = SortColumn(column)
    if column is SortColumn(current_column):
        return column, SortDirection(current_direction).flipped()
    return column, SortDirection.ASCENDING

"""Tests for host list display ordering."""

import pytest

from proxmon.inventory.sorting import compare_ips, sort_hosts, toggle_sort
from proxmon.models import Host, HostKind, SortColumn, SortDirection

ASC = SortDirection.ASCENDING
DESC = SortDirection.DESCENDING


def _names(hosts: list[Host]) -> list[str]:
    return [h.name for h in hosts]


@pytest.fixture()
def hosts() -> list[Host]:
    return [
        Host(name="b-host", kind=HostKind.VM, status="running", ip="10.0.0.10", node="pve2"),
        Host(name="A-host", kind=HostKind.LXC, status="stopped", ip="10.0.0.9", node="pve1"),
        Host(name="c-host", kind=HostKind.PHYSICAL, status="unknown", ip=None, node=None),
        Host(name="d-host", kind=HostKind.VM, status="running", ip="192.168.1.1", node=None),
        Host(name="e-host", kind=HostKind.LXC, status="running", ip=None, node="pve1"),
    ]


class TestSortByName:
    def test_case_insensitive(self):
        hosts = [Host(name="b-host", kind=HostKind.VM), Host(name="A-host", kind=HostKind.VM)]
        assert _names(sort_hosts(hosts, SortColumn.NAME, ASC)) == ["A-host", "b-host"]

    def test_descending(self, hosts):
        assert _names(sort_hosts(hosts, SortColumn.NAME, DESC)) == [
            "e-host", "d-host", "c-host", "b-host", "A-host",
        ]

    def test_accepts_plain_strings(self, hosts):
        assert sort_hosts(hosts, "name", "asc") == sort_hosts(hosts, SortColumn.NAME, ASC)


class TestSortByIp:
    def test_numeric_order(self, hosts):
        ordered = sort_hosts(hosts, SortColumn.IP, ASC)
        assert [h.ip for h in ordered[:3]] == ["10.0.0.9", "10.0.0.10", "192.168.1.1"]

    def test_missing_ip_last_ascending(self, hosts):
        ordered = sort_hosts(hosts, SortColumn.IP, ASC)
        assert [h.ip for h in ordered[3:]] == [None, None]

    def test_missing_ip_last_descending(self, hosts):
        ordered = sort_hosts(hosts, SortColumn.IP, DESC)
        assert [h.ip for h in ordered] == ["192.168.1.1", "10.0.0.10", "10.0.0.9", None, None]

    def test_unparseable_falls_back_to_string(self):
        assert compare_ips("host.lan", "10.0.0.1") > 0
        assert compare_ips("10.0.0.1", "host.lan") < 0

    def test_mixed_families(self):
        assert compare_ips("10.0.0.1", "fd00::1") < 0


class TestSortByNode:
    def test_missing_node_last_both_directions(self, hosts):
        for direction in (ASC, DESC):
            ordered = sort_hosts(hosts, SortColumn.NODE, direction)
            assert [h.node is None for h in ordered] == [False, False, False, True, True]

    def test_descending_present_nodes(self, hosts):
        ordered = sort_hosts(hosts, SortColumn.NODE, DESC)
        assert [h.node for h in ordered[:3]] == ["pve2", "pve1", "pve1"]


class TestSortByKindAndStatus:
    def test_kind_by_label(self, hosts):
        ordered = sort_hosts(hosts, SortColumn.KIND, ASC)
        assert [str(h.kind) for h in ordered] == ["LXC", "LXC", "Physical", "VM", "VM"]

    def test_status(self, hosts):
        ordered = sort_hosts(hosts, SortColumn.STATUS, ASC)
        assert [h.status for h in ordered] == ["running", "running", "running", "stopped", "unknown"]


class TestSortProperties:
    @pytest.mark.parametrize("column", list(SortColumn))
    @pytest.mark.parametrize("direction", [ASC, DESC])
    def test_idempotent(self, hosts, column, direction):
        once = sort_hosts(hosts, column, direction)
        assert sort_hosts(once, column, direction) == once

    def test_toggle_reverses_distinct_keys(self, hosts):
        asc = sort_hosts(hosts, SortColumn.NAME, ASC)
        desc = sort_hosts(hosts, SortColumn.NAME, DESC)
        assert desc == list(reversed(asc))

    def test_returns_new_list(self, hosts):
        original = list(hosts)
        sort_hosts(hosts, SortColumn.NAME, ASC)
        assert hosts == original


class TestToggleSort:
    def test_same_column_flips(self):
        assert toggle_sort(SortColumn.IP, SortColumn.IP, ASC) == (SortColumn.IP, DESC)
        assert toggle_sort(SortColumn.IP, SortColumn.IP, DESC) == (SortColumn.IP, ASC)

    def test_new_column_resets_to_ascending(self):
        assert toggle_sort(SortColumn.NODE, SortColumn.NAME, DESC) == (SortColumn.NODE, ASC)

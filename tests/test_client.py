"""Tests for the Proxmox VE API client."""

from __future__ import annotations

import ssl
from unittest.mock import patch

import pytest

from proxmon.cluster.client import ClusterClient, build_ssl_context
from proxmon.cluster.errors import ConnectError, ParseError, RequestError
from proxmon.models import HostKind
from tests.conftest import FakeProxmoxApi, RawBody, make_cluster


def _single_node_api(api: FakeProxmoxApi) -> None:
    api.add("/nodes", [{"node": "pve1", "status": "online"}])
    api.add("/nodes/pve1/qemu", [
        {"vmid": 100, "name": "web-01", "status": "running"},
        {"vmid": "101", "name": "web-02", "status": "stopped"},
    ])
    api.add("/nodes/pve1/qemu/100/agent/network-get-interfaces", {"result": [
        {"name": "eth0", "ip-addresses": [{"ip-address": "10.0.0.5", "prefix": 24}]},
    ]})
    api.add("/nodes/pve1/qemu/101/config", {"ipconfig0": "ip=10.0.0.6/24"})
    api.add("/nodes/pve1/lxc", [{"vmid": 200, "name": "db-01", "status": "running"}])
    api.add("/nodes/pve1/lxc/200/interfaces", [
        {"name": "lo", "inet": "127.0.0.1/8"},
        {"name": "eth0", "inet": "10.0.0.20/24"},
    ])


class TestConstruction:
    def test_ssl_context_without_verification(self):
        ctx = build_ssl_context(verify_ssl=False)
        assert ctx.verify_mode == ssl.CERT_NONE
        assert ctx.check_hostname is False

    def test_ssl_context_with_verification(self):
        ctx = build_ssl_context(verify_ssl=True)
        assert ctx.verify_mode == ssl.CERT_REQUIRED

    def test_ssl_failure_is_connect_error(self):
        with patch("ssl.create_default_context", side_effect=ssl.SSLError("bad store")):
            with pytest.raises(ConnectError, match="Failed to create HTTP client"):
                ClusterClient(make_cluster())

    def test_empty_host_is_connect_error(self):
        with pytest.raises(ConnectError):
            ClusterClient(make_cluster(host=""))

    def test_base_url(self):
        client = ClusterClient(make_cluster(host="10.1.2.1", port=8006))
        assert client.base_url == "https://10.1.2.1:8006/api2/json"
        assert client.name == "vs01"


class TestGet:
    def test_unwraps_data_and_sends_token(self, fake_api: FakeProxmoxApi):
        fake_api.add("/version", {"version": "8.2"})
        client = ClusterClient(
            make_cluster(api_token_id="root@pam!mon", api_token_secret="abc")
        )
        assert client.get("/version") == {"version": "8.2"}

        req = fake_api.requests[0]
        assert req.get_header("Authorization") == "PVEAPIToken=root@pam!mon=abc"
        assert req.get_method() == "GET"

    def test_http_error_is_request_error(self, fake_api: FakeProxmoxApi):
        client = ClusterClient(make_cluster())
        with pytest.raises(RequestError, match="status 500"):
            client.get("/missing")

    def test_transport_error_is_request_error(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes", ConnectionRefusedError("refused"))
        client = ClusterClient(make_cluster())
        with pytest.raises(RequestError, match="refused"):
            client.get("/nodes")

    def test_invalid_json_is_parse_error(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes", RawBody(b"<html>oops</html>"))
        client = ClusterClient(make_cluster())
        with pytest.raises(ParseError):
            client.get("/nodes")

    def test_missing_envelope_is_parse_error(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes", RawBody(b'{"errors": {}}'))
        client = ClusterClient(make_cluster())
        with pytest.raises(ParseError, match="'data' envelope"):
            client.get("/nodes")


class TestListNodes:
    def test_node_names_in_order(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes", [{"node": "pve2"}, {"node": "pve1"}])
        assert ClusterClient(make_cluster()).list_nodes() == ["pve2", "pve1"]

    def test_non_list_is_parse_error(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes", None)
        with pytest.raises(ParseError, match="Expected a list"):
            ClusterClient(make_cluster()).list_nodes()

    def test_entry_without_node_is_parse_error(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes", [{"status": "online"}])
        with pytest.raises(ParseError):
            ClusterClient(make_cluster()).list_nodes()

    def test_failure_propagates(self, fake_api: FakeProxmoxApi):
        with pytest.raises(RequestError):
            ClusterClient(make_cluster()).list_nodes()


class TestListUnits:
    def test_list_vms_with_agent_and_config_ips(self, fake_api: FakeProxmoxApi):
        _single_node_api(fake_api)
        hosts = ClusterClient(make_cluster()).list_vms("pve1")

        assert [h.name for h in hosts] == ["web-01", "web-02"]
        web1, web2 = hosts
        assert web1.kind is HostKind.VM
        assert web1.status == "running"
        assert web1.ip == "10.0.0.5"
        assert web1.node == "pve1"
        assert web1.vmid == 100
        assert web1.ansible_user == "gozy"
        assert web2.vmid == 101
        assert web2.ip == "10.0.0.6"

    def test_list_containers(self, fake_api: FakeProxmoxApi):
        _single_node_api(fake_api)
        hosts = ClusterClient(make_cluster(), default_user="ops").list_containers("pve1")
        assert len(hosts) == 1
        assert hosts[0].kind is HostKind.LXC
        assert hosts[0].ip == "10.0.0.20"
        assert hosts[0].ansible_user == "ops"

    def test_unit_without_ip_is_kept(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes/pve1/qemu", [{"vmid": 300, "name": "bare", "status": "stopped"}])
        hosts = ClusterClient(make_cluster()).list_vms("pve1")
        assert len(hosts) == 1
        assert hosts[0].ip is None

    def test_listing_failure_degrades_to_empty(self, fake_api: FakeProxmoxApi):
        assert ClusterClient(make_cluster()).list_vms("pve-down") == []
        assert ClusterClient(make_cluster()).list_containers("pve-down") == []

    def test_entries_without_vmid_skipped(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes/pve1/lxc", [{"name": "ghost"}, {"vmid": "x", "name": "bad"}])
        assert ClusterClient(make_cluster()).list_containers("pve1") == []

    def test_missing_name_and_status_defaults(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes/pve1/qemu", [{"vmid": 400}])
        host = ClusterClient(make_cluster()).list_vms("pve1")[0]
        assert host.name == ""
        assert host.status == "unknown"


class TestFetchAll:
    def test_vms_then_containers_per_node(self, fake_api: FakeProxmoxApi):
        _single_node_api(fake_api)
        hosts = ClusterClient(make_cluster()).fetch_all()
        assert [h.name for h in hosts] == ["web-01", "web-02", "db-01"]

    def test_one_bad_node_does_not_hide_others(self, fake_api: FakeProxmoxApi):
        _single_node_api(fake_api)
        fake_api.add("/nodes", [{"node": "pve0"}, {"node": "pve1"}])
        hosts = ClusterClient(make_cluster()).fetch_all()
        assert [h.node for h in hosts] == ["pve1", "pve1", "pve1"]

    def test_node_listing_failure_propagates(self, fake_api: FakeProxmoxApi):
        fake_api.add("/nodes", TimeoutError("timed out"))
        with pytest.raises(RequestError):
            ClusterClient(make_cluster()).fetch_all()

    def test_read_only(self, fake_api: FakeProxmoxApi):
        _single_node_api(fake_api)
        ClusterClient(make_cluster()).fetch_all()
        assert {r.get_method() for r in fake_api.requests} == {"GET"}

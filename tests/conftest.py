"""Shared fixtures: a fake Proxmox VE API served through a patched urlopen."""

from __future__ import annotations

import json
import threading
import urllib.error
import urllib.parse
from collections.abc import Iterator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from proxmon.models import ClusterConfig

API_PREFIX = "/api2/json"


def _response(payload: Any, raw: bytes | None = None) -> MagicMock:
    resp = MagicMock()
    resp.read.return_value = raw if raw is not None else json.dumps(payload).encode("utf-8")
    resp.__enter__ = lambda s: s
    resp.__exit__ = MagicMock(return_value=False)
    return resp


class FakeProxmoxApi:
    """Routes ``urlopen`` calls to canned responses.

    Routes are keyed by API path (``/nodes``) or, to tell clusters apart,
    by ``host`` + path (``pve-a/nodes``). A value that is an exception is
    raised; ``RawBody`` values are returned without the data envelope;
    anything else is wrapped as ``{"data": value}``. Unknown paths get a
    500 like Proxmox does for a missing guest agent.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[Any] = []
        self._lock = threading.Lock()

    def add(self, path: str, value: Any) -> None:
        self.routes[path] = value

    def paths(self) -> list[str]:
        return [urllib.parse.urlsplit(r.full_url).path[len(API_PREFIX):] for r in self.requests]

    def __call__(self, req: Any, timeout: float | None = None, context: Any = None) -> MagicMock:
        with self._lock:
            self.requests.append(req)
        parts = urllib.parse.urlsplit(req.full_url)
        path = urllib.parse.unquote(parts.path[len(API_PREFIX):])
        key = f"{parts.hostname}{path}"
        if key in self.routes:
            value = self.routes[key]
        elif path in self.routes:
            value = self.routes[path]
        else:
            raise urllib.error.HTTPError(req.full_url, 500, "Internal Server Error", {}, None)

        if isinstance(value, Exception):
            raise value
        if isinstance(value, RawBody):
            return _response(None, raw=value.body)
        return _response({"data": value})


class RawBody:
    def __init__(self, body: bytes) -> None:
        self.body = body


@pytest.fixture()
def fake_api() -> Iterator[FakeProxmoxApi]:
    api = FakeProxmoxApi()
    with patch("urllib.request.urlopen", side_effect=api):
        yield api


def make_cluster(name: str = "vs01", host: str = "pve-a", **kwargs: Any) -> ClusterConfig:
    return ClusterConfig(
        name=name,
        host=host,
        api_token_id=kwargs.pop("api_token_id", "root@pam!proxmon"),
        api_token_secret=kwargs.pop("api_token_secret", "s3cr3t"),
        **kwargs,
    )


@pytest.fixture()
def cluster() -> ClusterConfig:
    return make_cluster()

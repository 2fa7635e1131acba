"""Discovery orchestration across all configured clusters.

``FetchCoordinator.run_discovery`` is one full discovery pass: fetch
every cluster (in parallel), collect per-cluster diagnostics, then
reconcile with the configured overrides and manual hosts. A failing
cluster contributes zero hosts and one ``ClusterError``; it never aborts
the pass.

``start_background`` runs the same pass on a worker thread and hands the
result back through a single-slot queue, so a foreground loop can keep
drawing a loading indicator and watching for a quit request::

    task = coordinator.start_background()
    while (result := task.poll(timeout=0.1)) is None:
        spinner.tick()
        if quit_requested():
            task.cancel()
            break
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from proxmon.cluster.client import ClusterClient
from proxmon.config import ProxmonConfig
from proxmon.inventory.reconciler import reconcile
from proxmon.models import ClusterConfig, ClusterError, DiscoveryResult, Host

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
DEFAULT_POLL_INTERVAL = 0.1


class DiscoveryCancelled(Exception):
    """Raised when a background discovery is abandoned before it completes."""


class HostSource(Protocol):
    """Anything that can produce the hosts of one cluster."""

    def fetch_all(self) -> list[Host]: ...


ClientFactory = Callable[[ClusterConfig], HostSource]


class DiscoveryTask:
    """A discovery pass running on a background thread.

    The result (or the exception that escaped the pass) is delivered
    exactly once through a one-slot queue. After ``cancel()`` any late
    result is dropped.
    """

    def __init__(self, target: Callable[[], DiscoveryResult]) -> None:
        self._handoff: queue.Queue[tuple[DiscoveryResult | None, Exception | None]] = (
            queue.Queue(maxsize=1)
        )
        self._cancelled = threading.Event()
        self._consumed = False
        self._thread = threading.Thread(
            target=self._run,
            args=(target,),
            name="proxmon-discovery",
            daemon=True,
        )

    def start(self) -> DiscoveryTask:
        self._thread.start()
        return self

    def _run(self, target: Callable[[], DiscoveryResult]) -> None:
        try:
            result = target()
        except Exception as exc:
            logger.exception("Background discovery failed")
            self._handoff.put((None, exc))
            return
        if self._cancelled.is_set():
            logger.debug("Discovery finished after cancellation; result will be discarded")
        self._handoff.put((result, None))

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def consumed(self) -> bool:
        return self._consumed

    def cancel(self) -> None:
        """Stop waiting for this task. In-flight requests are left to finish."""
        self._cancelled.set()

    def done(self) -> bool:
        """True once a result is waiting (or has been taken)."""
        return self._consumed or not self._handoff.empty()

    def poll(self, timeout: float = 0.0) -> DiscoveryResult | None:
        """Take the result if it is ready within *timeout* seconds.

        Returns None while the pass is running, after cancellation, and
        on every call after the result has been taken. Re-raises the
        exception if the pass itself blew up.
        """
        if self._consumed or self._cancelled.is_set():
            return None
        try:
            if timeout > 0:
                result, error = self._handoff.get(timeout=timeout)
            else:
                result, error = self._handoff.get_nowait()
        except queue.Empty:
            return None

        self._consumed = True
        if error is not None:
            raise error
        return result

    def wait(
        self,
        tick: Callable[[], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> DiscoveryResult:
        """Poll every *interval* seconds until the result arrives.

        *tick* runs once per interval (drive a loading indicator from it).
        If *should_cancel* returns True first, the task is cancelled and
        ``DiscoveryCancelled`` is raised.
        """
        while True:
            if should_cancel is not None and should_cancel():
                self.cancel()
                raise DiscoveryCancelled("Discovery cancelled before completion")
            if self._consumed:
                raise RuntimeError("Discovery result was already taken")
            result = self.poll(timeout=interval)
            if result is not None:
                return result
            if tick is not None:
                tick()


class FetchCoordinator:
    """Runs discovery passes for a config.

    *client_factory* builds one host source per cluster; the default
    builds a ``ClusterClient`` using the config's default Ansible user.
    """

    def __init__(
        self,
        config: ProxmonConfig,
        client_factory: ClientFactory | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or self._default_client
        self._max_workers = max(1, max_workers)

    @property
    def config(self) -> ProxmonConfig:
        return self._config

    def _default_client(self, cluster: ClusterConfig) -> HostSource:
        return ClusterClient(
            cluster, default_user=self._config.ansible_defaults.default_user,
        )

    def fetch_cluster(self, cluster: ClusterConfig) -> tuple[list[Host], ClusterError | None]:
        """Fetch one cluster, converting any failure into a diagnostic."""
        try:
            client = self._client_factory(cluster)
        except Exception as e:
            logger.warning("Error creating client for %s: %s", cluster.name, e)
            return [], ClusterError(
                cluster=cluster.name,
                message=f"Error creating client for {cluster.name}: {e}",
            )

        try:
            hosts = client.fetch_all()
        except Exception as e:
            logger.warning("Error fetching from %s: %s", cluster.name, e)
            return [], ClusterError(
                cluster=cluster.name,
                message=f"Error fetching from {cluster.name}: {e}",
            )
        return hosts, None

    def run_discovery(
        self,
        clusters: Sequence[ClusterConfig] | None = None,
    ) -> DiscoveryResult:
        """Run one blocking discovery pass.

        Hosts keep configured cluster order regardless of which fetch
        finishes first.
        """
        targets = list(self._config.proxmox_hosts if clusters is None else clusters)
        overrides = [o.model_copy() for o in self._config.ip_overrides]
        manual = [m.model_copy() for m in self._config.manual_hosts]

        if len(targets) > 1 and self._max_workers > 1:
            with ThreadPoolExecutor(
                max_workers=min(self._max_workers, len(targets)),
                thread_name_prefix="proxmon-fetch",
            ) as pool:
                outcomes = list(pool.map(self.fetch_cluster, targets))
        else:
            outcomes = [self.fetch_cluster(c) for c in targets]

        cluster_hosts: list[Host] = []
        errors: list[ClusterError] = []
        for hosts, error in outcomes:
            cluster_hosts.extend(hosts)
            if error is not None:
                errors.append(error)

        result = DiscoveryResult(
            hosts=reconcile(cluster_hosts, overrides, manual),
            errors=errors,
        )
        logger.info("Discovery pass finished: %s", result.summary())
        return result

    def start_background(
        self,
        clusters: Sequence[ClusterConfig] | None = None,
    ) -> DiscoveryTask:
        """Start a discovery pass on a daemon thread and return its task."""
        return DiscoveryTask(lambda: self.run_discovery(clusters)).start()

"""Presentation session state.

A ``Session`` owns the host list, the selected row and the active sort
order. It only changes them after a discovery pass has fully completed
(the list is replaced as a whole) or through the explicit edit paths
below, so a consumer never sees a half-updated list.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from proxmon.config import ProxmonConfig
from proxmon.discovery.coordinator import DEFAULT_POLL_INTERVAL, FetchCoordinator
from proxmon.inventory.reconciler import apply_override
from proxmon.inventory.sorting import sort_hosts, toggle_sort
from proxmon.models import (
    ClusterConfig,
    DiscoveryResult,
    Host,
    SortColumn,
    SortDirection,
)

PAGE_SIZE = 10
LOADING_FRAMES = ("|", "/", "-", "\\")

SaveConfig = Callable[[ProxmonConfig], Any]


class SessionError(Exception):
    """Raised when a session edit is rejected."""


class Session:
    """Host list, selection and sort state for one interactive session."""

    def __init__(
        self,
        sort_column: SortColumn = SortColumn.NAME,
        sort_direction: SortDirection = SortDirection.ASCENDING,
    ) -> None:
        self.hosts: list[Host] = []
        self.selected_index: int | None = None
        self.sort_column = SortColumn(sort_column)
        self.sort_direction = SortDirection(sort_direction)
        self.last_message: str | None = None
        self.is_loading = False
        self.initial_fetch_done = False
        self.loading_frame = 0

    # --- discovery ---

    def apply_discovery(self, result: DiscoveryResult) -> None:
        """Replace the host list with the outcome of a finished pass."""
        self.hosts = list(result.hosts)
        self._clamp_selection()
        self.apply_sort()
        self.last_message = result.errors[-1].message if result.errors else None
        self.is_loading = False
        self.initial_fetch_done = True

    def refresh(self, coordinator: FetchCoordinator) -> DiscoveryResult:
        """Blocking refresh, used for explicit user-triggered reloads."""
        self.is_loading = True
        self.last_message = None
        try:
            result = coordinator.run_discovery()
        finally:
            self.is_loading = False
        self.apply_discovery(result)
        return result

    def run_initial_fetch(
        self,
        coordinator: FetchCoordinator,
        tick: Callable[[], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> DiscoveryResult:
        """Background discovery with a loading indicator.

        Raises ``DiscoveryCancelled`` if *should_cancel* fires first; the
        session is then left exactly as it was.
        """
        self.is_loading = True

        def _tick() -> None:
            self.tick_loading_animation()
            if tick is not None:
                tick()

        task = coordinator.start_background()
        try:
            result = task.wait(tick=_tick, should_cancel=should_cancel, interval=interval)
        except BaseException:
            task.cancel()
            self.is_loading = False
            raise
        self.apply_discovery(result)
        return result

    def tick_loading_animation(self) -> None:
        self.loading_frame += 1

    def loading_indicator(self) -> str:
        return LOADING_FRAMES[self.loading_frame % len(LOADING_FRAMES)]

    # --- sorting ---

    def set_sort_column(self, column: SortColumn) -> None:
        self.sort_column, self.sort_direction = toggle_sort(
            column, self.sort_column, self.sort_direction,
        )
        self.apply_sort()

    def apply_sort(self) -> None:
        """Reorder the list by the active column; selection goes back to the top."""
        self.hosts = sort_hosts(self.hosts, self.sort_column, self.sort_direction)
        self.selected_index = 0 if self.hosts else None

    # --- selection ---

    def _clamp_selection(self) -> None:
        if not self.hosts:
            self.selected_index = None
        elif self.selected_index is None:
            self.selected_index = 0
        elif self.selected_index >= len(self.hosts):
            self.selected_index = len(self.hosts) - 1

    def selected_host(self) -> Host | None:
        if self.selected_index is None or not self.hosts:
            return None
        return self.hosts[self.selected_index]

    def next(self) -> None:
        if self.hosts:
            self.selected_index = ((self.selected_index or 0) + 1) % len(self.hosts)

    def previous(self) -> None:
        if self.hosts:
            self.selected_index = ((self.selected_index or 0) - 1) % len(self.hosts)

    def page_down(self) -> None:
        if self.hosts:
            self.selected_index = min((self.selected_index or 0) + PAGE_SIZE, len(self.hosts) - 1)

    def page_up(self) -> None:
        if self.hosts:
            self.selected_index = max((self.selected_index or 0) - PAGE_SIZE, 0)

    def go_to_top(self) -> None:
        if self.hosts:
            self.selected_index = 0

    def go_to_bottom(self) -> None:
        if self.hosts:
            self.selected_index = len(self.hosts) - 1

    # --- edits ---

    def save_ip_override(
        self,
        config: ProxmonConfig,
        name: str,
        ip: str,
        save: SaveConfig,
    ) -> None:
        """Add, update or (with an empty *ip*) remove the override for *name*.

        The in-memory list is updated before the config is persisted, so
        the change is visible without a new discovery pass. If *save*
        raises, the error propagates and the in-memory state stays updated.
        """
        new_ip = ip.strip()
        if new_ip:
            config.set_override(name, new_ip)
            apply_override(self.hosts, name, new_ip)
        else:
            config.remove_override(name)
            apply_override(self.hosts, name, None)

        save(config)
        self.last_message = f"IP saved for {name}"

    def add_cluster(
        self,
        config: ProxmonConfig,
        cluster: ClusterConfig,
        save: SaveConfig,
    ) -> None:
        """Register a new cluster and persist the config."""
        required = (cluster.name, cluster.host, cluster.api_token_id, cluster.api_token_secret)
        if any(not value.strip() for value in required):
            raise SessionError("All fields except port are required")
        if config.get_cluster(cluster.name) is not None:
            raise SessionError(f"Host '{cluster.name}' already exists")

        config.proxmox_hosts.append(cluster)
        save(config)
        self.last_message = f"Added Proxmox host '{cluster.name}'"

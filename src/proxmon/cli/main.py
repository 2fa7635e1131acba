"""proxmon CLI: discover Proxmox VE hosts and export an Ansible inventory.

Commands:
    hosts           Discover and list all hosts
    export          Discover and print an Ansible INI inventory
    override set    Pin the IP of a host by name
    override clear  Remove an IP override
    override list   Show configured IP overrides
    cluster add     Register a Proxmox VE cluster
    cluster list    Show configured clusters
    validate        Validate the config file
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from proxmon import __version__
from proxmon.config import ConfigError, ProxmonConfig, find_config, load_config, save_config
from proxmon.discovery.coordinator import FetchCoordinator
from proxmon.discovery.session import Session, SessionError
from proxmon.inventory.export import generate_ansible_hosts
from proxmon.models import (
    DEFAULT_PORT,
    ClusterConfig,
    DiscoveryResult,
    Host,
    SortColumn,
    SortDirection,
)

_COLUMNS: list[tuple[str, SortColumn]] = [
    ("Name", SortColumn.NAME),
    ("Type", SortColumn.KIND),
    ("Status", SortColumn.STATUS),
    ("IP Address", SortColumn.IP),
    ("Node", SortColumn.NODE),
]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _config_path(ctx: click.Context) -> Path:
    return ctx.obj["config_path"]


def _load_or_exit(ctx: click.Context, *, missing_ok: bool = False) -> ProxmonConfig:
    path = _config_path(ctx)
    try:
        return load_config(path, missing_ok=missing_ok)
    except ConfigError as e:
        click.echo(click.style("Error: ", fg="red") + str(e), err=True)
        click.echo(
            "Tip: set PROXMON_CONFIG, pass --config, or run 'proxmon cluster add'.",
            err=True,
        )
        sys.exit(1)


def _saver(ctx: click.Context):
    path = _config_path(ctx)

    def _save(config: ProxmonConfig) -> Path:
        return save_config(config, path)

    return _save


def _echo_cluster_errors(result: DiscoveryResult) -> None:
    for error in result.errors:
        click.echo(click.style("WARN", fg="yellow") + f"  {error.message}", err=True)


def _row(host: Host) -> list[str]:
    return [
        host.name,
        str(host.kind),
        host.status,
        host.ip or "N/A",
        host.node or "-",
    ]


def _render_table(session: Session) -> None:
    arrow = "↑" if session.sort_direction is SortDirection.ASCENDING else "↓"
    headers = [
        f"{label} {arrow}" if column is session.sort_column else label
        for label, column in _COLUMNS
    ]
    rows = [_row(h) for h in session.hosts]
    widths = [
        max([len(headers[i])] + [len(r[i]) for r in rows])
        for i in range(len(headers))
    ]

    click.echo(click.style(
        "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True)), bold=True,
    ))
    for row in rows:
        cells = [c.ljust(w) for c, w in zip(row, widths, strict=True)]
        status_color = "green" if row[2] == "running" else "red"
        cells[2] = click.style(cells[2], fg=status_color)
        click.echo("  ".join(cells).rstrip())


# --- Root group ---


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path", default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.yml (default: $PROXMON_CONFIG, ~/.config/proxmon/config.yml, ./config.yml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """proxmon: Proxmox VE host discovery and Ansible inventory export."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path or find_config()


# --- hosts command ---


@cli.command("hosts")
@click.option(
    "--sort", "sort_column", default=SortColumn.NAME.value,
    type=click.Choice([c.value for c in SortColumn]),
    help="Column to sort by",
)
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def hosts_cmd(ctx: click.Context, sort_column: str, desc: bool, json_output: bool) -> None:
    """Discover and list hosts from every configured cluster."""
    config = _load_or_exit(ctx)
    session = Session(
        SortColumn(sort_column),
        SortDirection.DESCENDING if desc else SortDirection.ASCENDING,
    )
    coordinator = FetchCoordinator(config)

    show_spinner = sys.stderr.isatty()

    def _tick() -> None:
        if show_spinner:
            click.echo(f"\r{session.loading_indicator()} Loading...", nl=False, err=True)

    try:
        result = session.run_initial_fetch(coordinator, tick=_tick)
    except KeyboardInterrupt:
        if show_spinner:
            click.echo("\r", nl=False, err=True)
        click.echo("Cancelled.", err=True)
        sys.exit(130)
    if show_spinner:
        click.echo("\r" + " " * 20 + "\r", nl=False, err=True)

    _echo_cluster_errors(result)

    if json_output:
        data = [h.model_dump(mode="json") for h in session.hosts]
        click.echo(json.dumps(data, indent=2))
        return

    if not session.hosts:
        click.echo("No hosts found.")
        return
    _render_table(session)
    click.echo(f"\n{len(session.hosts)} host(s).")


# --- export command ---


@cli.command("export")
@click.option(
    "--output", "-o", default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the inventory to a file instead of stdout",
)
@click.pass_context
def export_cmd(ctx: click.Context, output: Path | None) -> None:
    """Discover hosts and print them as an Ansible INI inventory."""
    config = _load_or_exit(ctx)
    session = Session()
    result = session.refresh(FetchCoordinator(config))
    _echo_cluster_errors(result)

    text = generate_ansible_hosts(session.hosts, config.ansible_defaults)
    if output is None:
        click.echo(text, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(
        click.style("OK", fg="green")
        + f"  wrote {len(session.hosts)} host(s) to {output}",
        err=True,
    )


# --- override group ---


@cli.group()
def override() -> None:
    """IP override commands."""


@override.command("set")
@click.argument("name")
@click.argument("ip")
@click.pass_context
def override_set(ctx: click.Context, name: str, ip: str) -> None:
    """Pin the IP address of host NAME."""
    if not ip.strip():
        click.echo("IP must not be empty; use 'proxmon override clear' instead.", err=True)
        sys.exit(1)
    config = _load_or_exit(ctx, missing_ok=True)
    session = Session()
    try:
        session.save_ip_override(config, name, ip, _saver(ctx))
    except ConfigError as e:
        click.echo(click.style("FAIL", fg="red") + f"  Failed to save: {e}", err=True)
        sys.exit(1)
    click.echo(click.style("OK", fg="green") + f"  {session.last_message}: {ip.strip()}")


@override.command("clear")
@click.argument("name")
@click.pass_context
def override_clear(ctx: click.Context, name: str) -> None:
    """Remove the IP override of host NAME."""
    config = _load_or_exit(ctx)
    if config.get_override(name) is None:
        click.echo(f"No override for {name}.")
        return
    try:
        Session().save_ip_override(config, name, "", _saver(ctx))
    except ConfigError as e:
        click.echo(click.style("FAIL", fg="red") + f"  Failed to save: {e}", err=True)
        sys.exit(1)
    click.echo(click.style("OK", fg="green") + f"  override removed for {name}")


@override.command("list")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def override_list(ctx: click.Context, json_output: bool) -> None:
    """Show configured IP overrides."""
    config = _load_or_exit(ctx)
    if json_output:
        click.echo(json.dumps([o.model_dump() for o in config.ip_overrides], indent=2))
        return
    if not config.ip_overrides:
        click.echo("No IP overrides configured.")
        return
    for entry in config.ip_overrides:
        click.echo(f"  {entry.name:<30} {entry.ip}")


# --- cluster group ---


@cli.group()
def cluster() -> None:
    """Cluster configuration commands."""


@cluster.command("add")
@click.option("--name", prompt="Name (e.g., vs01)", help="Unique cluster name")
@click.option("--host", prompt="Host/IP (e.g., 10.1.2.1)", help="API host or IP")
@click.option("--port", default=DEFAULT_PORT, show_default=True, help="API port")
@click.option(
    "--token-id", prompt="API Token ID (e.g., root@pam!mytoken)",
    help="API token id",
)
@click.option(
    "--token-secret", prompt="API Token Secret", hide_input=True,
    help="API token secret",
)
@click.option("--verify-ssl", is_flag=True, help="Verify the TLS certificate")
@click.pass_context
def cluster_add(
    ctx: click.Context,
    name: str,
    host: str,
    port: int,
    token_id: str,
    token_secret: str,
    verify_ssl: bool,
) -> None:
    """Register a Proxmox VE cluster in the config file."""
    config = _load_or_exit(ctx, missing_ok=True)
    try:
        new_cluster = ClusterConfig(
            name=name.strip(),
            host=host.strip(),
            port=port,
            api_token_id=token_id.strip(),
            api_token_secret=token_secret.strip(),
            verify_ssl=verify_ssl,
        )
    except ValueError as e:
        click.echo(click.style("FAIL", fg="red") + f"  {e}", err=True)
        sys.exit(1)

    session = Session()
    try:
        session.add_cluster(config, new_cluster, _saver(ctx))
    except (SessionError, ConfigError) as e:
        click.echo(click.style("FAIL", fg="red") + f"  {e}", err=True)
        sys.exit(1)
    click.echo(click.style("OK", fg="green") + f"  {session.last_message}")


@cluster.command("list")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def cluster_list(ctx: click.Context, json_output: bool) -> None:
    """Show configured clusters (secrets are never printed)."""
    config = _load_or_exit(ctx)
    if json_output:
        data = [
            c.model_dump(exclude={"api_token_secret"}) for c in config.proxmox_hosts
        ]
        click.echo(json.dumps(data, indent=2))
        return
    if not config.proxmox_hosts:
        click.echo("No clusters configured.")
        return
    for c in config.proxmox_hosts:
        tls = "verify" if c.verify_ssl else "no-verify"
        click.echo(f"  {c.name:<20} {c.host}:{c.port:<6} {c.api_token_id}  [{tls}]")


# --- validate command ---


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate the config file."""
    path = _config_path(ctx)
    try:
        config = load_config(path)
    except ConfigError as e:
        click.echo(click.style("FAIL", fg="red") + f"  {e}")
        sys.exit(1)

    click.echo(click.style("OK", fg="green") + f"  config: {path}")
    click.echo(f"  clusters:     {len(config.proxmox_hosts)}")
    click.echo(f"  manual hosts: {len(config.manual_hosts)}")
    click.echo(f"  ip overrides: {len(config.ip_overrides)}")

    names = [c.name for c in config.proxmox_hosts]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        click.echo(
            click.style("FAIL", fg="red")
            + f"  duplicate cluster name(s): {', '.join(duplicates)}"
        )
        sys.exit(1)

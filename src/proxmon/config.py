"""Config file loading, saving and discovery for proxmon.

The config file is YAML and holds the cluster list, manual hosts, IP
overrides and Ansible export defaults. Its location is resolved from
``$PROXMON_CONFIG``, then ``~/.config/proxmon/config.yml``, then
``./config.yml``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from proxmon.models import AnsibleDefaults, ClusterConfig, IpOverride, ManualHost

CONFIG_ENV_VAR = "PROXMON_CONFIG"
CONFIG_FILENAME = "config.yml"


class ConfigError(Exception):
    """Raised when the config file cannot be read, parsed, validated or written."""


class ProxmonConfig(BaseModel):
    """Parsed proxmon configuration."""

    proxmox_hosts: list[ClusterConfig] = Field(
        default_factory=list,
        validation_alias=AliasChoices("proxmox_hosts", "clusters"),
    )
    manual_hosts: list[ManualHost] = Field(default_factory=list)
    ip_overrides: list[IpOverride] = Field(default_factory=list)
    ansible_defaults: AnsibleDefaults = Field(default_factory=AnsibleDefaults)

    def get_cluster(self, name: str) -> ClusterConfig | None:
        for cluster in self.proxmox_hosts:
            if cluster.name == name:
                return cluster
        return None

    def get_override(self, name: str) -> IpOverride | None:
        """Return the first override for *name*, or None."""
        for override in self.ip_overrides:
            if override.name == name:
                return override
        return None

    def set_override(self, name: str, ip: str) -> None:
        """Add an override for *name*, or update the existing one."""
        existing = self.get_override(name)
        if existing is not None:
            existing.ip = ip
        else:
            self.ip_overrides.append(IpOverride(name=name, ip=ip))

    def remove_override(self, name: str) -> bool:
        """Drop every override for *name*. Returns True if any was removed."""
        before = len(self.ip_overrides)
        self.ip_overrides = [o for o in self.ip_overrides if o.name != name]
        return len(self.ip_overrides) != before


def default_config_path() -> Path:
    """The per-user config location, whether or not it exists."""
    return Path.home() / ".config" / "proxmon" / CONFIG_FILENAME


def find_config() -> Path:
    """Resolve the config path.

    Resolution order:

    1. ``$PROXMON_CONFIG`` if set (even if the file does not exist yet).
    2. ``~/.config/proxmon/config.yml`` if it exists.
    3. ``./config.yml`` in the current directory.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    user_path = default_config_path()
    if user_path.is_file():
        return user_path

    return Path(CONFIG_FILENAME)


def load_config(
    path: str | Path | None = None,
    *,
    missing_ok: bool = False,
) -> ProxmonConfig:
    """Load a proxmon config file.

    Uses :func:`find_config` when *path* is None. A missing file is an
    error unless *missing_ok* is set, in which case an empty config is
    returned so a first cluster can be added and saved.
    """
    config_path = Path(path) if path is not None else find_config()

    if not config_path.is_file():
        if missing_ok:
            return ProxmonConfig()
        raise ConfigError(f"Config file not found: {config_path}")

    return _parse_config(config_path)


def _parse_config(config_path: Path) -> ProxmonConfig:
    try:
        data: Any = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a YAML mapping in {config_path}, got {type(data).__name__}"
        )

    try:
        return ProxmonConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from e


def save_config(config: ProxmonConfig, path: str | Path) -> Path:
    """Write *config* as YAML, creating parent directories as needed.

    Raises:
        ConfigError: If the directory or file cannot be written. The
            in-memory config is left untouched.
    """
    config_path = Path(path)
    text = yaml.safe_dump(
        config.model_dump(mode="json"),
        sort_keys=False,
        default_flow_style=False,
    )
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write config file {config_path}: {e}") from e
    return config_path

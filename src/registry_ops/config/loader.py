"""Load ``OpsConfig`` from defaults, an optional TOML file, and the environment.

Precedence (lowest to highest):
    1. Model defaults
    2. ``registry-ops.toml`` (or the file named by ``REGISTRY_OPS_CONFIG``)
    3. ``REGISTRY_DIR``, ``REGISTRY_PORT``, ``POSTGRES_PORT``
    4. Explicit keyword overrides from the CLI

Example registry-ops.toml:

    [registry]
    dir = "/srv/registry"
    port = 8081
    repo_branch = "main"

    [database]
    port = 15432
    name = "mcp-registry"

    [polling]
    interval = 2
    max_attempts = 60
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from registry_ops.config.models import OpsConfig
from registry_ops.errors import ConfigError

DEFAULT_CONFIG_FILE = "registry-ops.toml"

# TOML table -> {key in table: OpsConfig field}
_TOML_FIELDS: dict[str, dict[str, str]] = {
    "registry": {
        "dir": "registry_dir",
        "port": "api_port",
        "container": "api_container",
        "marker_file": "marker_file",
        "backup_dir": "backup_dir",
        "data_dir": "data_dir",
        "repo_url": "repo_url",
        "repo_branch": "repo_branch",
        "settle_delay": "settle_delay",
        "stabilize_delay": "stabilize_delay",
    },
    "database": {
        "port": "db_port",
        "name": "db_name",
        "user": "db_user",
        "password": "db_password",
        "container": "db_container",
    },
}

_ENV_FIELDS = {
    "REGISTRY_DIR": "registry_dir",
    "REGISTRY_PORT": "api_port",
    "POSTGRES_PORT": "db_port",
}


def _read_toml(config_path: Path) -> dict[str, Any]:
    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    values: dict[str, Any] = {}
    for table, fields in _TOML_FIELDS.items():
        section = data.get(table, {})
        for key, field_name in fields.items():
            if key in section:
                values[field_name] = section[key]

    polling = data.get("polling", {})
    if polling:
        values["poll"] = {
            k: polling[k] for k in ("interval", "max_attempts") if k in polling
        }

    return values


def load_ops_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> OpsConfig:
    """Build the configuration for one invocation.

    Args:
        config_path: TOML file to read. When None, uses ``REGISTRY_OPS_CONFIG``
            if set, else ``registry-ops.toml`` in the current directory if it
            exists.
        environ: Environment mapping (default: ``os.environ``).
        **overrides: Field values that take precedence over everything else.
            ``None`` values are ignored so CLI options can be passed through
            unconditionally.

    Returns:
        Frozen OpsConfig.

    Raises:
        FileNotFoundError: If an explicitly named config file doesn't exist.
        ConfigError: If any value fails validation (e.g. non-numeric port).
    """
    env = os.environ if environ is None else environ

    values: dict[str, Any] = {}

    explicit = config_path is not None or bool(env.get("REGISTRY_OPS_CONFIG"))
    if config_path is None:
        config_path = Path(env.get("REGISTRY_OPS_CONFIG") or DEFAULT_CONFIG_FILE)

    if config_path.exists():
        try:
            values.update(_read_toml(config_path))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    for var, field_name in _ENV_FIELDS.items():
        if env.get(var):
            values[field_name] = env[var]

    values.update({k: v for k, v in overrides.items() if v is not None})

    if "registry_dir" in values:
        values["registry_dir"] = Path(values["registry_dir"]).expanduser()

    try:
        return OpsConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration:\n{e}") from e

"""Configuration loading and merging for Dojo."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml


SECRET_ENV = "DOJO_SECRET"


@dataclass
class DojoConfig:
    # Shared secret the team tokens are derived from (falls back to $DOJO_SECRET)
    secret: Optional[str] = None

    # Number of team tokens derived from the secret
    team_count: int = 20

    # HTTP listen address
    host: str = "0.0.0.0"
    port: int = 8080

    # Health polling, in seconds
    poll_interval: float = 1.0
    poll_timeout: float = 1.0
    transport_timeout: float = 10.0

    log_level: str = "INFO"


def load_config(path: str | Path) -> DojoConfig:
    """Load a DojoConfig from a YAML file."""
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    valid_fields = {f.name for f in fields(DojoConfig)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return DojoConfig(**filtered)


def merge_cli_args(config: DojoConfig, args) -> DojoConfig:
    """Overlay CLI arguments onto an existing config. CLI values take precedence."""
    for f in fields(DojoConfig):
        cli_val = getattr(args, f.name, None)
        if cli_val is not None:
            setattr(config, f.name, cli_val)
    return config


def resolve_secret(config: DojoConfig) -> str:
    """Return the token secret from config or environment."""
    if config.secret is not None:
        return config.secret
    return os.environ.get(SECRET_ENV, "")


def config_to_yaml(config: DojoConfig) -> str:
    """Serialize a DojoConfig to YAML. The secret is never written out."""
    data: dict = {}
    for f in fields(DojoConfig):
        if f.name == "secret":
            continue
        data[f.name] = getattr(config, f.name)
    return yaml.dump(data, default_flow_style=False, sort_keys=False)

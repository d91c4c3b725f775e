"""TOML configuration loader for modeller profiles."""

import tomllib
from pathlib import Path

from sql_modeller.config.models import ModellerConfig, ModellerProfile, SyncSettings


def load_modeller_config(config_path: Path | None = None) -> ModellerConfig:
    """Load modeller configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: db.toml in the working directory)

    Returns:
        ModellerConfig with all profiles and sync settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If a profile or the sync table is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Modeller config not found: {config_path}\n"
            f"Create db.toml with one [profiles.<name>] table per database."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = ModellerProfile(**profile_data)

    return ModellerConfig(
        profiles=profiles,
        sync=SyncSettings(**data.get("sync", {})),
    )

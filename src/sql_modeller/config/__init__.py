"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from sql_modeller.config import load_modeller_config, ModellerProfile, ModellerConfig
"""

from sql_modeller.config.loader import load_modeller_config
from sql_modeller.config.models import ModellerConfig, ModellerProfile, SyncSettings

__all__ = ["load_modeller_config", "ModellerConfig", "ModellerProfile", "SyncSettings"]

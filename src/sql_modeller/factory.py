"""Modeller factory.

Builds everything a caller needs from a db.toml profile: the pooled engine
(the connection supplier), the dialect, the ``SqlModeller`` and the
``SqlSynchronizer``.

Profile resolution: an explicit profile name wins, otherwise the
``<prefix>DB_PROFILE`` environment variable is used.

Usage:
    from sql_modeller.factory import database_name, get_modeller, get_profile

    name, profile = get_profile("local")
    modeller = get_modeller(name)
    users = modeller.read_table(Database(database_name(profile)), "users")
"""

import logging
import os
from typing import Any
from urllib.parse import quote

from sqlalchemy import Engine, create_engine, make_url

from sql_modeller.adapters.base import SqlDialect
from sql_modeller.adapters.mysql import MysqlDialect
from sql_modeller.adapters.postgres import PostgresDialect
from sql_modeller.config.loader import load_modeller_config
from sql_modeller.config.models import ModellerConfig, ModellerProfile
from sql_modeller.modeller import SqlModeller
from sql_modeller.schema.sync import SqlSynchronizer

logger = logging.getLogger(__name__)

_DRIVERS = {
    "mysql": "mysql+pymysql://",
    "postgres": "postgresql+psycopg://",
}


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured or the name is unknown."""

    pass


# ============================================================================
# Profile resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the environment variable, e.g. ``"APP_"``
            reads ``APP_DB_PROFILE``.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If the variable is not set
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or pass --profile <name> to sql-modeller."
    )


def get_profile(
    profile_name: str | None = None,
    config: ModellerConfig | None = None,
    env_prefix: str = "",
) -> tuple[str, ModellerProfile]:
    """Resolve a profile by name (or from the environment).

    Raises:
        ProfileNotFoundError: If no name is available or the name is unknown
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    if config is None:
        config = load_modeller_config()

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )
    return profile_name, config.profiles[profile_name]


# ============================================================================
# URLs
# ============================================================================


def resolve_url(profile: ModellerProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def infer_dialect(url: str) -> str:
    """Dialect name (``"mysql"`` or ``"postgres"``) from a URL scheme.

    Raises:
        ValueError: If the scheme belongs to neither dialect
    """
    scheme = url.split("://", 1)[0].split("+", 1)[0].lower()
    if scheme in ("mysql", "mariadb"):
        return "mysql"
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    raise ValueError(f"Cannot infer dialect from URL scheme '{scheme}'")


def normalize_url(url: str, dialect: str) -> str:
    """Add the driver to a plain URL scheme.

    ``postgres://`` and ``postgresql://`` become ``postgresql+psycopg://``;
    ``mysql://`` and ``mariadb://`` become ``mysql+pymysql://``.  URLs
    that already name a driver are returned unchanged.
    """
    scheme, sep, rest = url.partition("://")
    if not sep or "+" in scheme:
        return url
    return _DRIVERS[dialect] + rest


def database_name(profile: ModellerProfile) -> str:
    """Logical database name: ``profile.database`` or the URL path."""
    if profile.database:
        return profile.database
    name = make_url(resolve_url(profile)).database
    if not name:
        raise ValueError(f"No database name in profile URL '{profile.url}'")
    return name


def create_engine_pooled(database_url: str, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with connection pooling.

    Default pool settings:

    - ``pool_size=5``: Reasonable default for typical workloads.
    - ``max_overflow=10``: Allow burst connections.
    - ``pool_pre_ping=True``: Validate connections before checkout.
    - ``pool_recycle=300``: Recycle connections every 5 minutes.

    Args:
        database_url: Connection URL including the driver
            (``postgresql+psycopg://`` or ``mysql+pymysql://``).
        **kwargs: Additional keyword arguments forwarded to ``create_engine``.

    Returns:
        Configured ``Engine``.  ``engine.connect`` is a connection supplier.
    """
    # Append connect_timeout if not already in URL
    if "connect_timeout" not in database_url:
        separator = "&" if "?" in database_url else "?"
        database_url = f"{database_url}{separator}connect_timeout=5"

    defaults: dict[str, Any] = {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    return create_engine(database_url, **merged)


# ============================================================================
# Modeller factory
# ============================================================================


def get_dialect(profile: ModellerProfile) -> SqlDialect:
    """Dialect for ``profile``, configured from its options."""
    dialect = profile.dialect or infer_dialect(profile.url)
    if dialect == "mysql":
        return MysqlDialect(anonymous_db=profile.anonymous_db)
    return PostgresDialect(schema_name=profile.schema_name)


def get_modeller(
    profile_name: str | None = None,
    config: ModellerConfig | None = None,
    env_prefix: str = "",
    **engine_kwargs: Any,
) -> SqlModeller:
    """Create a ``SqlModeller`` for a profile.

    Args:
        profile_name: Profile name from db.toml.  If None, uses the
            ``<env_prefix>DB_PROFILE`` environment variable.
        config: Pre-loaded configuration; loaded from db.toml when None.
        env_prefix: Prefix for environment variable lookup.
        **engine_kwargs: Forwarded to ``create_engine_pooled``.

    Raises:
        ProfileNotFoundError: If the profile cannot be resolved
        FileNotFoundError: If db.toml is needed but missing

    Example:
        >>> modeller = get_modeller("local")
        >>> modeller.read_database("shop").tables
        [Table(database='shop', name='users', ...)]
    """
    name, profile = get_profile(profile_name, config, env_prefix)
    dialect = get_dialect(profile)
    url = normalize_url(resolve_url(profile), dialect.name)
    logger.debug(f"Creating {dialect.name} modeller for profile '{name}'")
    engine = create_engine_pooled(url, **engine_kwargs)
    return SqlModeller(engine.connect, dialect)


def get_synchronizer(
    profile_name: str | None = None,
    config: ModellerConfig | None = None,
    env_prefix: str = "",
    **engine_kwargs: Any,
) -> SqlSynchronizer:
    """Create a ``SqlSynchronizer`` using the ``[sync]`` settings of db.toml."""
    if config is None:
        config = load_modeller_config()
    modeller = get_modeller(profile_name, config, env_prefix, **engine_kwargs)
    return SqlSynchronizer(
        modeller,
        delete_missing_columns=config.sync.delete_missing_columns,
        delete_missing_indexes=config.sync.delete_missing_indexes,
    )

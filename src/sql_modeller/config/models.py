"""Pydantic models for modeller configuration."""

from typing import Literal

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class ModellerProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    dialect: Literal["mysql", "postgres"] | None = None  # Inferred from url when absent
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    database: str | None = None  # Inferred from the url path when absent
    schema_name: str = "public"  # PostgreSQL only
    anonymous_db: bool = False  # MySQL only: unqualified table names


class SyncSettings(BaseModel):
    """Synchronizer policy from the ``[sync]`` table of db.toml."""

    delete_missing_columns: bool = False
    delete_missing_indexes: bool = False


class ModellerConfig(BaseModel):
    """Complete modeller configuration from db.toml."""

    profiles: dict[str, ModellerProfile]
    sync: SyncSettings = Field(default_factory=SyncSettings)

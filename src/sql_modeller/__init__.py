"""sql-modeller: schema-as-code synchronizer for MySQL and PostgreSQL.

Models tables as data, reads live tables into that model, compares a wanted
model against the live one, and executes the dialect-specific DDL that
reconciles them.

Usage:
    from sql_modeller import Database, Table, IntegerColumn, StringColumn
    from sql_modeller import SqlModeller, SqlSynchronizer, MysqlDialect
    from sql_modeller import compare, format_report, get_modeller
"""

__version__ = "0.1.0"

# Dialects
from sql_modeller.adapters.base import SqlDialect
from sql_modeller.adapters.mysql import MysqlDialect
from sql_modeller.adapters.postgres import PostgresDialect

# Config
from sql_modeller.config.loader import load_modeller_config
from sql_modeller.config.models import ModellerConfig, ModellerProfile, SyncSettings

# Errors
from sql_modeller.errors import (
    IntrospectionError,
    ModellerError,
    UnsupportedFeatureError,
    UnsupportedTypeError,
)

# Factory
from sql_modeller.factory import (
    ProfileNotFoundError,
    create_engine_pooled,
    get_modeller,
    get_synchronizer,
    resolve_url,
)

# Modeller
from sql_modeller.modeller import SqlModeller

# Schema
from sql_modeller.schema.comparator import Diff, DiffType, compare, format_report
from sql_modeller.schema.models import (
    BinaryColumn,
    BitColumn,
    BooleanColumn,
    Column,
    Database,
    DateTimeColumn,
    DecimalColumn,
    DoubleColumn,
    EnumColumn,
    Index,
    IntegerColumn,
    SetColumn,
    StringColumn,
    Table,
    TimeStampColumn,
    WireType,
)
from sql_modeller.schema.sync import Action, ActionType, SqlSynchronizer

__all__ = [
    # Dialects
    "SqlDialect",
    "MysqlDialect",
    "PostgresDialect",
    # Config
    "load_modeller_config",
    "ModellerConfig",
    "ModellerProfile",
    "SyncSettings",
    # Errors
    "ModellerError",
    "IntrospectionError",
    "UnsupportedFeatureError",
    "UnsupportedTypeError",
    # Factory
    "get_modeller",
    "get_synchronizer",
    "create_engine_pooled",
    "ProfileNotFoundError",
    "resolve_url",
    # Modeller
    "SqlModeller",
    # Schema
    "Database",
    "Table",
    "Column",
    "StringColumn",
    "BinaryColumn",
    "DecimalColumn",
    "BitColumn",
    "EnumColumn",
    "SetColumn",
    "IntegerColumn",
    "DoubleColumn",
    "BooleanColumn",
    "DateTimeColumn",
    "TimeStampColumn",
    "Index",
    "WireType",
    "compare",
    "format_report",
    "Diff",
    "DiffType",
    "SqlSynchronizer",
    "Action",
    "ActionType",
]

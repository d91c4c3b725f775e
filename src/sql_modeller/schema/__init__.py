"""Schema model, introspection, comparison and synchronization.

Provides the table model (``Database``, ``Table``, the ``Column`` variants,
``Index``), catalog introspection (``MysqlIntrospector``,
``PostgresIntrospector``), structural comparison (``compare``) and table
synchronization (``SqlSynchronizer``).

Usage:
    from sql_modeller.schema import Database, Table, IntegerColumn, compare
    from sql_modeller.schema import SqlSynchronizer, Action
"""

from sql_modeller.schema.comparator import (
    Diff,
    DiffType,
    compare,
    format_report,
    normalized_length,
    same_default,
)
from sql_modeller.schema.introspector import (
    ColumnDescriptor,
    IndexDescriptor,
    MysqlIntrospector,
    PostgresIntrospector,
    PrimaryKeyDescriptor,
    SchemaIntrospector,
)
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
    # Model
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
    # Introspection
    "SchemaIntrospector",
    "MysqlIntrospector",
    "PostgresIntrospector",
    "ColumnDescriptor",
    "PrimaryKeyDescriptor",
    "IndexDescriptor",
    # Comparison
    "compare",
    "format_report",
    "normalized_length",
    "same_default",
    "Diff",
    "DiffType",
    # Synchronization
    "SqlSynchronizer",
    "Action",
    "ActionType",
]

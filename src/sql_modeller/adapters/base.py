"""SQL dialect protocol definition.

Defines the ``SqlDialect`` Protocol that every concrete dialect must
implement, plus the DDL fragments that are identical across dialects.  The
shared fragments are free functions taking the dialect as their first
argument, so a dialect only supplies quoting and type rendering.

Every ``make_*`` function is pure: it returns SQL text and never touches a
connection.  Executing the statements is ``SqlModeller``'s job.

Usage:
    from sql_modeller.adapters.base import SqlDialect, make_add_index_query

    def index_ddl(dialect: SqlDialect, table: Table) -> list[str]:
        return [make_add_index_query(dialect, index) for index in table.indexes]
"""

from collections.abc import Callable
from typing import Protocol

from sqlalchemy import Connection

from sql_modeller.errors import UnsupportedTypeError
from sql_modeller.schema.comparator import normalized_length
from sql_modeller.schema.introspector import ColumnDescriptor, SchemaIntrospector
from sql_modeller.schema.models import (
    BinaryColumn,
    BitColumn,
    BooleanColumn,
    Column,
    DecimalColumn,
    EnumColumn,
    Index,
    SetColumn,
    StringColumn,
    Table,
)


class SqlDialect(Protocol):
    """Dialect interface that all concrete dialects must implement.

    A dialect knows how to quote names, render column types, build the DDL
    for column and index changes, decode the defaults its catalog reports,
    and recognise its own ENUM/SET representation in introspected metadata.
    """

    name: str
    introspector: SchemaIntrospector

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def get_database_name(self, table: Table) -> str:
        """Quoted database (catalog) name of ``table``."""
        ...

    def get_table_name(self, table: Table) -> str:
        """Fully qualified, quoted table name.

        Example:
            dialect.get_table_name(users)  # '`shop`.`users`'
        """
        ...

    def get_column_name(self, column: Column) -> str:
        ...

    def get_index_name(self, index: Index) -> str:
        ...

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def get_create_type(self, column: Column) -> str:
        """Render the type clause of ``column`` including its modifiers.

        Args:
            column: Column to render.

        Returns:
            Type and modifiers, e.g. ``"VARCHAR(64) NOT NULL DEFAULT 'x'"``.

        Raises:
            UnsupportedFeatureError: If the dialect cannot represent the column.
        """
        ...

    def make_create_table_query(self, table: Table) -> list[str]:
        """Statements creating ``table`` with its columns and primary key."""
        ...

    def make_add_column_query(self, column: Column) -> list[str]:
        ...

    def make_modify_column_query(
        self, changed: Column, current: Column | None = None
    ) -> list[str]:
        """Statements turning the live column into ``changed``.

        Args:
            changed: The column as it should be.
            current: The column as it is, when known.  Dialects use it to
                decide whether a key or enum type must be rebuilt; without it
                they assume the worst case.

        Returns:
            Ordered statements; executing them in order performs the change.
        """
        ...

    def make_remove_index_query(self, index: Index) -> str:
        ...

    def make_rename_index_query(self, current: Index, changed: Index) -> str:
        ...

    def make_modify_index_queries(
        self, changed: Index, current: Index | None = None
    ) -> list[str]:
        """Statements redefining an index (drop then re-create)."""
        ...

    # ------------------------------------------------------------------
    # Type knowledge
    # ------------------------------------------------------------------

    def types_are_compatible(self, one: Column, other: Column) -> bool:
        """True when the two columns need no type change to match."""
        ...

    def normalized_length(self, column: Column) -> int:
        """Storage-tier length of a string or binary column."""
        ...

    def supports_set(self) -> bool:
        ...

    def is_datetime_column(self, type_name: str) -> bool:
        """True for date/time types without time zone semantics."""
        ...

    def extract_default(self, value: str | None) -> str | None:
        """Decode a default value as reported by the catalog."""
        ...

    def extract_set_values(self, value: str) -> frozenset[str]:
        ...

    # ------------------------------------------------------------------
    # Introspection hooks
    # ------------------------------------------------------------------

    def is_enum_column(self, conn: Connection, descriptor: ColumnDescriptor) -> bool:
        ...

    def is_set_column(self, conn: Connection, descriptor: ColumnDescriptor) -> bool:
        ...

    def read_enum_values(
        self, conn: Connection, database: str, table: str, descriptor: ColumnDescriptor
    ) -> frozenset[str]:
        ...

    def read_set_values(
        self, conn: Connection, database: str, table: str, descriptor: ColumnDescriptor
    ) -> frozenset[str]:
        ...


# ============================================================================
# Shared DDL fragments
# ============================================================================


def quote_literal(value: str) -> str:
    """Render ``value`` as a single-quoted SQL string literal.

    Example:
        >>> quote_literal("it's")
        "'it''s'"
    """
    return "'" + value.replace("'", "''") + "'"


def make_add_index_query(dialect: SqlDialect, index: Index) -> str:
    """CREATE [UNIQUE] INDEX statement for ``index``."""
    columns = ", ".join(dialect.get_column_name(column) for column in index.columns)
    unique = "UNIQUE " if index.unique else ""
    return (
        f"CREATE {unique}INDEX {dialect.get_index_name(index)} "
        f"ON {dialect.get_table_name(index.table)} ({columns})"
    )


def make_delete_table_query(dialect: SqlDialect, table: Table) -> str:
    return f"DROP TABLE {dialect.get_table_name(table)}"


def make_rename_column_query(dialect: SqlDialect, current: Column, changed: Column) -> str:
    return (
        f"ALTER TABLE {dialect.get_table_name(changed.table)} "
        f"RENAME COLUMN {dialect.get_column_name(current)} "
        f"TO {dialect.get_column_name(changed)}"
    )


def make_delete_column_query(dialect: SqlDialect, column: Column) -> str:
    return (
        f"ALTER TABLE {dialect.get_table_name(column.table)} "
        f"DROP COLUMN {dialect.get_column_name(column)}"
    )


def primary_key_columns(table: Table) -> list[Column]:
    return [column for column in table.columns if column.key]


def key_columns_after(changed: Column) -> list[Column]:
    """Primary key of ``changed``'s table once ``changed`` is applied.

    Keeps table order; ``changed`` replaces its live namesake, or is
    appended when the table does not hold it yet.
    """
    keys = []
    seen = False
    for column in changed.table.columns:
        if column.name.lower() == changed.name.lower():
            seen = True
            column = changed
        if column.key:
            keys.append(column)
    if not seen and changed.key:
        keys.append(changed)
    return keys


_TEMPORAL_KEYWORDS = frozenset(
    {"CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME", "LOCALTIME", "LOCALTIMESTAMP"}
)


def temporal_default(value: str) -> str:
    """Quote a date/time default unless it is a keyword or a function call.

    Example:
        >>> temporal_default("2020-01-01 00:00:00")
        "'2020-01-01 00:00:00'"
        >>> temporal_default("CURRENT_TIMESTAMP")
        'CURRENT_TIMESTAMP'
    """
    if value.upper() in _TEMPORAL_KEYWORDS or value.endswith(")"):
        return value
    return quote_literal(value)


def bit_digits(value: str) -> str | None:
    """Binary digits of a bit default, or None when it is not written as digits."""
    text = value.strip()
    if text.lower().startswith("b'") and text.endswith("'"):
        text = text[2:-1]
    if text and set(text) <= {"0", "1"}:
        return text
    return None


def sorted_labels(column: EnumColumn | SetColumn) -> str:
    """Comma separated, quoted labels in a stable order."""
    return ", ".join(quote_literal(label) for label in sorted(column.labels))


# ============================================================================
# Shared type knowledge
# ============================================================================


def is_bit_boolean_pair(one: Column, other: Column) -> bool:
    """True when one column is a single bit and the other a boolean."""
    if isinstance(one, BitColumn) and isinstance(other, BooleanColumn):
        return one.bits == 1
    if isinstance(one, BooleanColumn) and isinstance(other, BitColumn):
        return other.bits == 1
    return False


def same_type(
    one: Column, other: Column, normalize: Callable[[Column], int] = normalized_length
) -> bool:
    """Variant-level type equality shared by both dialects.

    Wire-type spelling of integers and decimals is left to the dialect;
    this checks the variant and its payload only.
    """
    if type(one) is not type(other):
        return False
    if isinstance(one, (StringColumn, BinaryColumn)):
        return normalize(one) == normalize(other)
    if isinstance(one, DecimalColumn):
        return one.precision == other.precision and one.scale == other.scale
    if isinstance(one, BitColumn):
        return one.bits == other.bits
    if isinstance(one, (EnumColumn, SetColumn)):
        return one.labels == other.labels
    return True


def unhandled_column(column: Column) -> UnsupportedTypeError:
    return UnsupportedTypeError(
        f"Column '{column.name}' has unhandled type {type(column).__name__}",
        column.name,
    )

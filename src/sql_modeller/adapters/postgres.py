"""PostgreSQL dialect.

PostgreSQL has no SET type, and its ENUMs are named types that live beside
the table.  Each enum column gets its own type named ``<table>_<column>``,
created on first use behind a catalog existence check.  Changing the labels
renames the old type away, creates the new one, retypes the column through
a text cast and finally drops the old type.

Auto-increment integers are created as ``SERIAL``/``BIGSERIAL``.  When such
a column is modified it is retyped to its base integer type and keeps its
sequence default.

Usage:
    from sql_modeller.adapters.postgres import PostgresDialect

    dialect = PostgresDialect(schema_name="public")
    dialect.make_create_table_query(table)
"""

import logging
import re

from sqlalchemy import Connection, text

from sql_modeller.adapters.base import (
    bit_digits,
    is_bit_boolean_pair,
    key_columns_after,
    make_add_index_query,
    primary_key_columns,
    quote_literal,
    same_type,
    sorted_labels,
    temporal_default,
    unhandled_column,
)
from sql_modeller.errors import UnsupportedFeatureError
from sql_modeller.schema.comparator import boolean_value, tier_length
from sql_modeller.schema.introspector import (
    UNLIMITED_LENGTH,
    ColumnDescriptor,
    PostgresIntrospector,
)
from sql_modeller.schema.models import (
    BinaryColumn,
    BitColumn,
    BooleanColumn,
    Column,
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

logger = logging.getLogger(__name__)

_INTEGER_TYPES = {
    WireType.TINYINT: "SMALLINT",
    WireType.SMALLINT: "SMALLINT",
    WireType.INTEGER: "INTEGER",
    WireType.BIGINT: "BIGINT",
}

_SERIAL_TYPES = {
    WireType.TINYINT: "SERIAL",
    WireType.SMALLINT: "SERIAL",
    WireType.INTEGER: "SERIAL",
    WireType.BIGINT: "BIGSERIAL",
}

# Catalog type names that are plain character types, never enums.
_CHARACTER_TYPES = frozenset({"varchar", "bpchar", "text"})

_QUOTED_DEFAULT = re.compile(r"^'((?:[^']|'')*)'(?:::[\w\s\"\.\[\]()]+)?$", re.DOTALL)


def _quote_name(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _integer_family(column: IntegerColumn) -> str:
    return _INTEGER_TYPES[column.wire_type]


class PostgresDialect:
    """PostgreSQL implementation of the ``SqlDialect`` protocol.

    Args:
        schema_name: Schema that holds the tables and enum types.
    """

    name = "postgres"

    def __init__(self, schema_name: str = "public") -> None:
        self.schema_name = schema_name
        self.introspector = PostgresIntrospector(schema_name)

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def get_database_name(self, table: Table) -> str:
        return _quote_name(table.database.name)

    def get_table_name(self, table: Table) -> str:
        return (
            f"{self.get_database_name(table)}."
            f"{_quote_name(self.schema_name)}.{_quote_name(table.name)}"
        )

    def get_column_name(self, column: Column) -> str:
        return _quote_name(column.name)

    def get_index_name(self, index: Index) -> str:
        return _quote_name(index.name)

    def get_enum_type_name(self, column: Column) -> str:
        """Bare (unquoted) name of the enum type backing ``column``."""
        return f"{column.table.name}_{column.name}"

    def _qualified(self, name: str) -> str:
        return f"{_quote_name(self.schema_name)}.{_quote_name(name)}"

    def _primary_key_name(self, table: Table) -> str:
        return _quote_name(f"{table.name}_pkey")

    # ------------------------------------------------------------------
    # Type rendering
    # ------------------------------------------------------------------

    def get_create_type(
        self, column: Column, with_key: bool = True, serial: bool = True
    ) -> str:
        """Render ``column``'s type clause.

        Args:
            column: Column to render.
            with_key: Append ``PRIMARY KEY`` for key columns.
            serial: Render auto-increment integers as ``SERIAL``/``BIGSERIAL``.

        Raises:
            UnsupportedFeatureError: For SET columns.
        """
        parts = [self._base_type(column, serial=serial)]
        if not column.nullable:
            parts.append("NOT NULL")
        if column.default is not None and not column.auto_increment:
            parts.append(f"DEFAULT {self._render_default(column)}")
        if with_key and column.key:
            parts.append("PRIMARY KEY")
        return " ".join(parts)

    def _base_type(self, column: Column, serial: bool = False) -> str:
        if isinstance(column, SetColumn):
            raise UnsupportedFeatureError(
                f"PostgreSQL does not support SET columns (column '{column.name}')",
                column.name,
            )
        if isinstance(column, StringColumn):
            if column.length > 65535:
                return "TEXT"
            return f"VARCHAR({column.length})"
        if isinstance(column, BinaryColumn):
            return "BYTEA"
        if isinstance(column, DecimalColumn):
            return f"DECIMAL({column.precision},{column.scale})"
        if isinstance(column, BitColumn):
            return f"BIT({column.bits})"
        if isinstance(column, BooleanColumn):
            return "BOOLEAN"
        if isinstance(column, EnumColumn):
            return self._qualified(self.get_enum_type_name(column))
        if isinstance(column, IntegerColumn):
            if serial and column.auto_increment:
                return _SERIAL_TYPES[column.wire_type]
            return _integer_family(column)
        if isinstance(column, DoubleColumn):
            return "DOUBLE PRECISION"
        if isinstance(column, DateTimeColumn):
            return "TIMESTAMP"
        if isinstance(column, TimeStampColumn):
            return "TIMESTAMPTZ"
        raise unhandled_column(column)

    def _render_default(self, column: Column) -> str:
        if isinstance(column, BooleanColumn):
            return "TRUE" if boolean_value(column.default) else "FALSE"
        if isinstance(column, BitColumn):
            digits = bit_digits(column.default)
            if digits is None:
                digits = "1" if boolean_value(column.default) else "0"
            return f"B'{digits.zfill(column.bits)}'"
        if isinstance(column, (StringColumn, EnumColumn, BinaryColumn)):
            return quote_literal(column.default)
        if isinstance(column, (DateTimeColumn, TimeStampColumn)):
            return temporal_default(column.default)
        return column.default

    def make_create_enum_type_query(self, column: EnumColumn) -> str:
        """Idempotent CREATE TYPE for an enum column."""
        type_name = self.get_enum_type_name(column)
        return (
            "DO $$ BEGIN "
            "IF NOT EXISTS (SELECT 1 FROM pg_type t "
            "JOIN pg_namespace n ON n.oid = t.typnamespace "
            f"WHERE t.typname = {quote_literal(type_name)} "
            f"AND n.nspname = {quote_literal(self.schema_name)}) THEN "
            f"CREATE TYPE {self._qualified(type_name)} AS ENUM ({sorted_labels(column)}); "
            "END IF; END$$;"
        )

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def make_create_table_query(self, table: Table) -> list[str]:
        statements = [
            self.make_create_enum_type_query(column)
            for column in table.columns
            if isinstance(column, EnumColumn)
        ]
        definitions = [
            f"{self.get_column_name(column)} {self.get_create_type(column, with_key=False)}"
            for column in table.columns
        ]
        keys = primary_key_columns(table)
        if keys:
            names = ", ".join(self.get_column_name(column) for column in keys)
            definitions.append(f"PRIMARY KEY ({names})")
        statements.append(
            f"CREATE TABLE {self.get_table_name(table)} ({', '.join(definitions)})"
        )
        return statements

    def make_add_column_query(self, column: Column) -> list[str]:
        statements = []
        if isinstance(column, EnumColumn):
            statements.append(self.make_create_enum_type_query(column))
        statements.append(
            f"ALTER TABLE {self.get_table_name(column.table)} "
            f"ADD COLUMN {self.get_column_name(column)} {self.get_create_type(column)}"
        )
        return statements

    def make_modify_column_query(
        self, changed: Column, current: Column | None = None
    ) -> list[str]:
        """Statements turning the live column into ``changed``.

        There is no in-place fast path: the default is always dropped, the
        column retyped through a text cast and nullability re-applied before
        the wanted default is restored.  Enum columns whose labels change (or
        whose live labels are unknown) get the rename/create/drop type
        sequence around that statement.
        """
        if isinstance(changed, SetColumn):
            self._base_type(changed)

        table_name = self.get_table_name(changed.table)
        statements = []

        key_changed = current is not None and current.key != changed.key
        if key_changed:
            statements.append(
                f"ALTER TABLE {table_name} "
                f"DROP CONSTRAINT IF EXISTS {self._primary_key_name(changed.table)}"
            )

        recreate_enum = isinstance(changed, EnumColumn) and (
            not isinstance(current, EnumColumn) or current.labels != changed.labels
        )
        if recreate_enum:
            type_name = self.get_enum_type_name(changed)
            statements.append(
                "DO $$ BEGIN "
                "IF EXISTS (SELECT 1 FROM pg_type t "
                "JOIN pg_namespace n ON n.oid = t.typnamespace "
                f"WHERE t.typname = {quote_literal(type_name)} "
                f"AND n.nspname = {quote_literal(self.schema_name)}) THEN "
                f"ALTER TYPE {self._qualified(type_name)} "
                f"RENAME TO {_quote_name(type_name + '_old')}; "
                "END IF; END$$;"
            )
            statements.append(self.make_create_enum_type_query(changed))

        if current is not None and current.auto_increment and not changed.auto_increment:
            # An identity column rejects DROP DEFAULT.
            statements.append(
                f"ALTER TABLE {table_name} ALTER COLUMN {self.get_column_name(changed)} "
                "DROP IDENTITY IF EXISTS"
            )
        statements.append(self._alter_column_statement(changed, current))

        if recreate_enum:
            statements.append(
                f"DROP TYPE IF EXISTS {self._qualified(self.get_enum_type_name(changed) + '_old')}"
            )
        keys = key_columns_after(changed)
        if key_changed and keys:
            names = ", ".join(self.get_column_name(column) for column in keys)
            statements.append(f"ALTER TABLE {table_name} ADD PRIMARY KEY ({names})")
        return statements

    def _alter_column_statement(self, changed: Column, current: Column | None) -> str:
        column_name = self.get_column_name(changed)
        type_name = self._base_type(changed, serial=False)
        alter = f"ALTER COLUMN {column_name}"

        keeps_sequence = changed.auto_increment and (
            current is None or current.auto_increment
        )
        clauses = []
        if not keeps_sequence:
            clauses.append(f"{alter} DROP DEFAULT")
        clauses.append(f"{alter} TYPE {type_name} USING ({column_name}::text::{type_name})")
        if current is not None and changed.auto_increment and not current.auto_increment:
            clauses.append(f"{alter} ADD GENERATED BY DEFAULT AS IDENTITY")
        clauses.append(f"{alter} {'DROP' if changed.nullable else 'SET'} NOT NULL")
        if changed.default is not None and not changed.auto_increment:
            clauses.append(f"{alter} SET DEFAULT {self._render_default(changed)}")
        return f"ALTER TABLE {self.get_table_name(changed.table)} {', '.join(clauses)}"

    def make_remove_index_query(self, index: Index) -> str:
        return f"DROP INDEX IF EXISTS {self._qualified(index.name)}"

    def make_rename_index_query(self, current: Index, changed: Index) -> str:
        return (
            f"ALTER INDEX {self._qualified(current.name)} "
            f"RENAME TO {self.get_index_name(changed)}"
        )

    def make_modify_index_queries(
        self, changed: Index, current: Index | None = None
    ) -> list[str]:
        return [
            self.make_remove_index_query(current if current is not None else changed),
            make_add_index_query(self, changed),
        ]

    # ------------------------------------------------------------------
    # Type knowledge
    # ------------------------------------------------------------------

    def types_are_compatible(self, one: Column, other: Column) -> bool:
        if is_bit_boolean_pair(one, other):
            return True
        if not same_type(one, other, self.normalized_length):
            return False
        if isinstance(one, IntegerColumn):
            # TINYINT is stored as SMALLINT.
            return _integer_family(one) == _integer_family(other)
        return True

    def normalized_length(self, column: Column) -> int:
        """Tier length; BYTEA and TEXT are unbounded."""
        if isinstance(column, BinaryColumn):
            return UNLIMITED_LENGTH
        if isinstance(column, StringColumn):
            if column.length > 65535:
                return UNLIMITED_LENGTH
            return tier_length(column.length)
        raise unhandled_column(column)

    def supports_set(self) -> bool:
        return False

    def is_datetime_column(self, type_name: str) -> bool:
        return type_name.lower() != "timestamptz"

    def extract_default(self, value: str | None) -> str | None:
        """Decode a PostgreSQL ``column_default`` expression.

        Examples:
            >>> PostgresDialect().extract_default("NULL::character varying") is None
            True
            >>> PostgresDialect().extract_default("nextval('users_id_seq'::regclass)") is None
            True
            >>> PostgresDialect().extract_default("'it''s'::character varying")
            "it's"
        """
        if value is None:
            return None
        if value.upper() == "NULL" or value.upper().startswith("NULL::"):
            return None
        if value.startswith("nextval("):
            return None
        match = _QUOTED_DEFAULT.match(value)
        if match:
            return match.group(1).replace("''", "'")
        return value

    def extract_set_values(self, value: str) -> frozenset[str]:
        raise UnsupportedFeatureError("PostgreSQL does not support SET columns")

    # ------------------------------------------------------------------
    # Introspection hooks
    # ------------------------------------------------------------------

    def is_enum_column(self, conn: Connection, descriptor: ColumnDescriptor) -> bool:
        if descriptor.wire_type != WireType.VARCHAR:
            return False
        if descriptor.type_name.lower() in _CHARACTER_TYPES:
            return False
        query = """
            SELECT COUNT(*)
            FROM pg_type t
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE t.typname = :type_name
              AND t.typtype = 'e'
              AND n.nspname = :schema
        """
        result = conn.execute(
            text(query), {"type_name": descriptor.type_name, "schema": self.schema_name}
        )
        return bool(result.scalar())

    def is_set_column(self, conn: Connection, descriptor: ColumnDescriptor) -> bool:
        return False

    def read_enum_values(
        self, conn: Connection, database: str, table: str, descriptor: ColumnDescriptor
    ) -> frozenset[str]:
        logger.debug(f"Reading labels of enum type {descriptor.type_name}")
        query = """
            SELECT e.enumlabel
            FROM pg_type t
            JOIN pg_enum e ON e.enumtypid = t.oid
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE t.typname = :type_name
              AND n.nspname = :schema
            ORDER BY e.enumsortorder
        """
        result = conn.execute(
            text(query), {"type_name": descriptor.type_name, "schema": self.schema_name}
        )
        return frozenset(row[0] for row in result.fetchall())

    def read_set_values(
        self, conn: Connection, database: str, table: str, descriptor: ColumnDescriptor
    ) -> frozenset[str]:
        raise UnsupportedFeatureError(
            f"PostgreSQL does not support SET columns (column '{descriptor.name}')",
            descriptor.name,
        )

"""Raw structural metadata from a live database.

This module queries the catalog of a live database and returns flat
descriptor records:
- ``ColumnDescriptor``: one per column (name, wire type, size, nullability,
  auto-increment, native type name, raw default text)
- ``PrimaryKeyDescriptor``: one per primary-key member column
- ``IndexDescriptor``: one per (index, column) pair

Descriptors are deliberately dumb; turning them into a ``Table`` model is
the job of ``SqlModeller.read_table``.  Each introspector works on a
SQLAlchemy ``Connection`` handed to it by the caller and never opens or
closes connections itself.

Usage:
    with engine.connect() as conn:
        columns = MysqlIntrospector().get_columns(conn, "shop", "users")
"""

import logging
from typing import Protocol

from pydantic import BaseModel
from sqlalchemy import Connection, text

from sql_modeller.schema.models import WireType

logger = logging.getLogger(__name__)


class ColumnDescriptor(BaseModel):
    """Column metadata as reported by the catalog.

    Example:
        >>> ColumnDescriptor(name="id", wire_type=WireType.INTEGER, type_name="INT")
        ColumnDescriptor(name='id', wire_type=<WireType.INTEGER: 4>, ...)
    """

    name: str
    wire_type: WireType
    type_name: str
    size: int = 0
    decimal_digits: int = 0
    nullable: bool = True
    auto_increment: bool = False
    default: str | None = None


class PrimaryKeyDescriptor(BaseModel):
    """A primary key member column and the key's constraint name."""

    name: str
    column_name: str


class IndexDescriptor(BaseModel):
    """One (index, column) pair."""

    name: str
    column_name: str
    unique: bool = False


class SchemaIntrospector(Protocol):
    """Catalog access that every dialect must provide."""

    def get_table_names(self, conn: Connection, database: str) -> list[str]:
        """Names of the base tables in ``database``."""
        ...

    def table_exists(self, conn: Connection, database: str, table: str) -> bool:
        ...

    def get_columns(
        self, conn: Connection, database: str, table: str
    ) -> list[ColumnDescriptor]:
        """Column descriptors in ordinal order."""
        ...

    def get_primary_keys(
        self, conn: Connection, database: str, table: str
    ) -> list[PrimaryKeyDescriptor]:
        ...

    def get_indexes(
        self, conn: Connection, database: str, table: str
    ) -> list[IndexDescriptor]:
        """Index rows, including the index backing the primary key."""
        ...


# ============================================================================
# MySQL / MariaDB
# ============================================================================


_MYSQL_WIRE_TYPES = {
    "char": WireType.CHAR,
    "varchar": WireType.VARCHAR,
    "tinytext": WireType.LONGVARCHAR,
    "text": WireType.LONGVARCHAR,
    "mediumtext": WireType.LONGVARCHAR,
    "longtext": WireType.LONGVARCHAR,
    "enum": WireType.CHAR,
    "set": WireType.CHAR,
    "binary": WireType.BINARY,
    "varbinary": WireType.VARBINARY,
    "tinyblob": WireType.LONGVARBINARY,
    "blob": WireType.LONGVARBINARY,
    "mediumblob": WireType.LONGVARBINARY,
    "longblob": WireType.LONGVARBINARY,
    "tinyint": WireType.TINYINT,
    "smallint": WireType.SMALLINT,
    "mediumint": WireType.INTEGER,
    "int": WireType.INTEGER,
    "integer": WireType.INTEGER,
    "bigint": WireType.BIGINT,
    "decimal": WireType.DECIMAL,
    "numeric": WireType.DECIMAL,
    "double": WireType.DOUBLE,
    "float": WireType.REAL,
    "bit": WireType.BIT,
    "bool": WireType.BIT,
    "boolean": WireType.BIT,
    "date": WireType.DATE,
    "time": WireType.TIME,
    "datetime": WireType.TIMESTAMP,
    "timestamp": WireType.TIMESTAMP,
}


class MysqlIntrospector:
    """Introspects MySQL/MariaDB via ``information_schema``."""

    def get_table_names(self, conn: Connection, database: str) -> list[str]:
        query = """
            SELECT TABLE_NAME
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :database
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """
        result = conn.execute(text(query), {"database": database})
        return [row[0] for row in result.fetchall()]

    def table_exists(self, conn: Connection, database: str, table: str) -> bool:
        query = """
            SELECT COUNT(*)
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
        """
        result = conn.execute(text(query), {"database": database, "table": table})
        return bool(result.scalar())

    def get_columns(
        self, conn: Connection, database: str, table: str
    ) -> list[ColumnDescriptor]:
        logger.debug(f"Reading columns of {database}.{table}")
        query = """
            SELECT
                COLUMN_NAME,
                DATA_TYPE,
                COLUMN_TYPE,
                CHARACTER_MAXIMUM_LENGTH,
                NUMERIC_PRECISION,
                NUMERIC_SCALE,
                IS_NULLABLE,
                EXTRA,
                COLUMN_DEFAULT
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
            ORDER BY ORDINAL_POSITION
        """
        result = conn.execute(text(query), {"database": database, "table": table})
        columns = []
        for row in result.fetchall():
            (name, data_type, column_type, char_length,
             precision, scale, is_nullable, extra, default) = row
            data_type = data_type.lower()
            wire_type = _MYSQL_WIRE_TYPES.get(data_type, WireType.OTHER)
            size = char_length or precision or 0
            if data_type == "tinyint" and column_type.lower().startswith("tinyint(1)"):
                # BOOLEAN is stored as TINYINT(1); report it as a single bit.
                wire_type = WireType.BIT
                size = 1
            elif data_type in ("bool", "boolean"):
                size = 1
            columns.append(
                ColumnDescriptor(
                    name=name,
                    wire_type=wire_type,
                    type_name=data_type.upper(),
                    size=int(size),
                    decimal_digits=int(scale or 0),
                    nullable=(is_nullable == "YES"),
                    auto_increment="auto_increment" in (extra or "").lower(),
                    default=default,
                )
            )
        return columns

    def get_primary_keys(
        self, conn: Connection, database: str, table: str
    ) -> list[PrimaryKeyDescriptor]:
        query = """
            SELECT tc.CONSTRAINT_NAME, kcu.COLUMN_NAME
            FROM information_schema.TABLE_CONSTRAINTS tc
            JOIN information_schema.KEY_COLUMN_USAGE kcu
                ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
                AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
                AND tc.TABLE_NAME = kcu.TABLE_NAME
            WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
              AND tc.TABLE_SCHEMA = :database
              AND tc.TABLE_NAME = :table
            ORDER BY kcu.ORDINAL_POSITION
        """
        result = conn.execute(text(query), {"database": database, "table": table})
        return [
            PrimaryKeyDescriptor(name=name, column_name=column)
            for name, column in result.fetchall()
        ]

    def get_indexes(
        self, conn: Connection, database: str, table: str
    ) -> list[IndexDescriptor]:
        query = """
            SELECT INDEX_NAME, COLUMN_NAME, NON_UNIQUE
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
            ORDER BY INDEX_NAME, SEQ_IN_INDEX
        """
        result = conn.execute(text(query), {"database": database, "table": table})
        rows = result.fetchall()
        # Functional key parts have no COLUMN_NAME.
        functional = sorted({name for name, column, _ in rows if column is None})
        for name in functional:
            logger.warning(f"Skipping functional index {name} on table {table}")
        return [
            IndexDescriptor(name=name, column_name=column, unique=not int(non_unique))
            for name, column, non_unique in rows
            if name not in functional
        ]


# ============================================================================
# PostgreSQL
# ============================================================================


UNLIMITED_LENGTH = 2147483647

_POSTGRES_WIRE_TYPES = {
    "character varying": WireType.VARCHAR,
    "character": WireType.CHAR,
    "text": WireType.LONGVARCHAR,
    "smallint": WireType.SMALLINT,
    "integer": WireType.INTEGER,
    "bigint": WireType.BIGINT,
    "numeric": WireType.NUMERIC,
    "double precision": WireType.DOUBLE,
    "real": WireType.REAL,
    "boolean": WireType.BOOLEAN,
    "bit": WireType.BIT,
    "bit varying": WireType.BIT,
    "bytea": WireType.BINARY,
    "date": WireType.DATE,
    "time without time zone": WireType.TIME,
    "time with time zone": WireType.TIME,
    "timestamp without time zone": WireType.TIMESTAMP,
    "timestamp with time zone": WireType.TIMESTAMP,
    # Enum types; resolved further by the dialect.
    "USER-DEFINED": WireType.VARCHAR,
}


class PostgresIntrospector:
    """Introspects PostgreSQL via ``information_schema`` and ``pg_catalog``.

    Args:
        schema_name: PostgreSQL schema holding the tables (default: public)
    """

    def __init__(self, schema_name: str = "public") -> None:
        self.schema_name = schema_name

    def get_table_names(self, conn: Connection, database: str) -> list[str]:
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_catalog = :database
              AND table_schema = :schema
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        result = conn.execute(text(query), {"database": database, "schema": self.schema_name})
        return [row[0] for row in result.fetchall()]

    def table_exists(self, conn: Connection, database: str, table: str) -> bool:
        query = """
            SELECT COUNT(*)
            FROM information_schema.tables
            WHERE table_catalog = :database
              AND table_schema = :schema
              AND table_name = :table
        """
        result = conn.execute(
            text(query), {"database": database, "schema": self.schema_name, "table": table}
        )
        return bool(result.scalar())

    def get_columns(
        self, conn: Connection, database: str, table: str
    ) -> list[ColumnDescriptor]:
        logger.debug(f"Reading columns of {database}.{self.schema_name}.{table}")
        query = """
            SELECT
                column_name,
                data_type,
                udt_name,
                character_maximum_length,
                numeric_precision,
                numeric_scale,
                is_nullable,
                is_identity,
                column_default
            FROM information_schema.columns
            WHERE table_catalog = :database
              AND table_schema = :schema
              AND table_name = :table
            ORDER BY ordinal_position
        """
        result = conn.execute(
            text(query), {"database": database, "schema": self.schema_name, "table": table}
        )
        columns = []
        for row in result.fetchall():
            (name, data_type, udt_name, char_length,
             precision, scale, is_nullable, is_identity, default) = row
            wire_type = _POSTGRES_WIRE_TYPES.get(data_type, WireType.OTHER)
            if data_type in ("text", "bytea") or (
                data_type == "character varying" and char_length is None
            ):
                size = UNLIMITED_LENGTH
            else:
                size = char_length or precision or 0
            auto_increment = is_identity == "YES" or (
                default is not None and default.startswith("nextval(")
            )
            columns.append(
                ColumnDescriptor(
                    name=name,
                    wire_type=wire_type,
                    type_name=udt_name,
                    size=int(size),
                    decimal_digits=int(scale or 0),
                    nullable=(is_nullable == "YES"),
                    auto_increment=auto_increment,
                    default=default,
                )
            )
        return columns

    def get_primary_keys(
        self, conn: Connection, database: str, table: str
    ) -> list[PrimaryKeyDescriptor]:
        query = """
            SELECT tc.constraint_name, kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
                AND tc.table_name = kcu.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
              AND tc.table_catalog = :database
              AND tc.table_schema = :schema
              AND tc.table_name = :table
            ORDER BY kcu.ordinal_position
        """
        result = conn.execute(
            text(query), {"database": database, "schema": self.schema_name, "table": table}
        )
        return [
            PrimaryKeyDescriptor(name=name, column_name=column)
            for name, column in result.fetchall()
        ]

    def get_indexes(
        self, conn: Connection, database: str, table: str
    ) -> list[IndexDescriptor]:
        query = """
            SELECT
                i.relname AS index_name,
                a.attname AS column_name,
                ix.indisunique AS is_unique
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = :schema
              AND t.relname = :table
            ORDER BY i.relname, x.ordinality
        """
        result = conn.execute(text(query), {"schema": self.schema_name, "table": table})
        return [
            IndexDescriptor(name=name, column_name=column, unique=bool(unique))
            for name, column, unique in result.fetchall()
        ]

"""MySQL / MariaDB dialect.

ENUM and SET are rendered inline in the column type.  Long strings and
binaries are promoted to the TEXT and BLOB storage classes, and a column
that currently carries the primary key must lose it before it can be
retyped.

Usage:
    from sql_modeller.adapters.mysql import MysqlDialect

    dialect = MysqlDialect()
    dialect.make_add_column_query(column)
    # ['ALTER TABLE `shop`.`users` ADD COLUMN `email` VARCHAR(128)']
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
from sql_modeller.schema.comparator import tier_length
from sql_modeller.schema.introspector import ColumnDescriptor, MysqlIntrospector
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
)

logger = logging.getLogger(__name__)

_TEXT_CLASSES = ((16777215, "LONGTEXT"), (65535, "MEDIUMTEXT"), (255, "TEXT"))
_BLOB_CLASSES = ((16777215, "LONGBLOB"), (65535, "MEDIUMBLOB"), (255, "BLOB"))

_BIT_LITERAL = re.compile(r"^b'([01]*)'$", re.IGNORECASE)


def _quote_name(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def _storage_class(length: int, classes: tuple[tuple[int, str], ...], small: str) -> str:
    for threshold, type_name in classes:
        if length > threshold:
            return type_name
    return small


class MysqlDialect:
    """MySQL-family implementation of the ``SqlDialect`` protocol.

    Args:
        anonymous_db: Render table names without the database qualifier,
            so statements apply to the connection's default database.
    """

    name = "mysql"

    def __init__(self, anonymous_db: bool = False) -> None:
        self.anonymous_db = anonymous_db
        self.introspector = MysqlIntrospector()

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def get_database_name(self, table: Table) -> str:
        return _quote_name(table.database.name)

    def get_table_name(self, table: Table) -> str:
        if self.anonymous_db:
            return _quote_name(table.name)
        return f"{self.get_database_name(table)}.{_quote_name(table.name)}"

    def get_column_name(self, column: Column) -> str:
        return _quote_name(column.name)

    def get_index_name(self, index: Index) -> str:
        return _quote_name(index.name)

    # ------------------------------------------------------------------
    # Type rendering
    # ------------------------------------------------------------------

    def get_create_type(self, column: Column, with_key: bool = True) -> str:
        """Render ``column``'s type clause.

        The clause order is type, ``NOT NULL``, ``DEFAULT``,
        ``AUTO_INCREMENT`` and ``PRIMARY KEY``.  ``with_key=False`` leaves the
        key out, for CREATE TABLE and MODIFY COLUMN, which declare the key as
        a separate clause.
        """
        parts = [self._base_type(column)]
        if not column.nullable:
            parts.append("NOT NULL")
        if column.default is not None and not column.auto_increment:
            parts.append(f"DEFAULT {self._render_default(column)}")
        if column.auto_increment:
            parts.append("AUTO_INCREMENT")
        if with_key and column.key:
            parts.append("PRIMARY KEY")
        return " ".join(parts)

    def _base_type(self, column: Column) -> str:
        if isinstance(column, StringColumn):
            return _storage_class(column.length, _TEXT_CLASSES, f"VARCHAR({column.length})")
        if isinstance(column, BinaryColumn):
            return _storage_class(column.length, _BLOB_CLASSES, "TINYBLOB")
        if isinstance(column, DecimalColumn):
            return f"DECIMAL({column.precision},{column.scale})"
        if isinstance(column, BitColumn):
            return f"BIT({column.bits})"
        if isinstance(column, BooleanColumn):
            return "BOOLEAN"
        if isinstance(column, EnumColumn):
            return f"ENUM({sorted_labels(column)})"
        if isinstance(column, SetColumn):
            return f"SET({sorted_labels(column)})"
        if isinstance(column, IntegerColumn):
            return column.wire_type.name
        if isinstance(column, DoubleColumn):
            return "DOUBLE"
        if isinstance(column, DateTimeColumn):
            return "DATETIME"
        if isinstance(column, TimeStampColumn):
            return "TIMESTAMP"
        raise unhandled_column(column)

    def _render_default(self, column: Column) -> str:
        if isinstance(column, (StringColumn, EnumColumn, SetColumn, BinaryColumn)):
            return quote_literal(column.default)
        if isinstance(column, (DateTimeColumn, TimeStampColumn)):
            return temporal_default(column.default)
        if isinstance(column, BitColumn):
            digits = bit_digits(column.default)
            if digits is not None:
                return f"b'{digits}'"
        return column.default

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def make_create_table_query(self, table: Table) -> list[str]:
        definitions = [
            f"{self.get_column_name(column)} {self.get_create_type(column, with_key=False)}"
            for column in table.columns
        ]
        keys = primary_key_columns(table)
        if keys:
            names = ", ".join(self.get_column_name(column) for column in keys)
            definitions.append(f"PRIMARY KEY ({names})")
        return [f"CREATE TABLE {self.get_table_name(table)} ({', '.join(definitions)})"]

    def make_add_column_query(self, column: Column) -> list[str]:
        return [
            f"ALTER TABLE {self.get_table_name(column.table)} "
            f"ADD COLUMN {self.get_column_name(column)} {self.get_create_type(column)}"
        ]

    def make_modify_column_query(
        self, changed: Column, current: Column | None = None
    ) -> list[str]:
        table_name = self.get_table_name(changed.table)
        column_name = self.get_column_name(changed)
        statements = []
        was_key = current.key if current is not None else changed.key
        keys = key_columns_after(changed)
        if was_key or (changed.key and len(keys) > 1):
            # AUTO_INCREMENT must go together with the key it depends on.
            stripped = changed.replace(key=False, auto_increment=False)
            statements.append(
                f"ALTER TABLE {table_name} MODIFY COLUMN {column_name} "
                f"{self.get_create_type(stripped, with_key=False)}, DROP PRIMARY KEY"
            )
        modify = (
            f"ALTER TABLE {table_name} MODIFY COLUMN {column_name} "
            f"{self.get_create_type(changed, with_key=False)}"
        )
        if (was_key or changed.key) and keys:
            names = ", ".join(self.get_column_name(column) for column in keys)
            modify += f", ADD PRIMARY KEY ({names})"
        statements.append(modify)
        return statements

    def make_remove_index_query(self, index: Index) -> str:
        return f"DROP INDEX {self.get_index_name(index)} on {self.get_table_name(index.table)}"

    def make_rename_index_query(self, current: Index, changed: Index) -> str:
        return (
            f"ALTER TABLE {self.get_table_name(changed.table)} "
            f"RENAME INDEX {self.get_index_name(current)} TO {self.get_index_name(changed)}"
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
            return one.wire_type == other.wire_type
        return True

    def normalized_length(self, column: Column) -> int:
        """Tier length, with every binary up to 255 bytes read as TINYBLOB."""
        if isinstance(column, BinaryColumn) and column.length <= 255:
            return 255
        if isinstance(column, (StringColumn, BinaryColumn)):
            return tier_length(column.length)
        raise unhandled_column(column)

    def supports_set(self) -> bool:
        return True

    def is_datetime_column(self, type_name: str) -> bool:
        return type_name.upper() != "TIMESTAMP"

    def extract_default(self, value: str | None) -> str | None:
        """Decode a MySQL/MariaDB ``COLUMN_DEFAULT`` value.

        MariaDB quotes string defaults and reports ``NULL`` literally; MySQL
        reports strings bare.  Bit defaults arrive as ``b'1'``.

        Examples:
            >>> MysqlDialect().extract_default("NULL") is None
            True
            >>> MysqlDialect().extract_default("b'1'")
            '1'
            >>> MysqlDialect().extract_default("'it''s'")
            "it's"
        """
        if value is None or value.upper() == "NULL":
            return None
        match = _BIT_LITERAL.match(value)
        if match:
            return match.group(1)
        if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
            return value[1:-1].replace("''", "'")
        return value

    def extract_set_values(self, value: str) -> frozenset[str]:
        """Parse the labels out of an ``enum(...)`` or ``set(...)`` column type.

        Example:
            >>> sorted(MysqlDialect().extract_set_values("set('a','b,c','it''s')"))
            ['a', 'b,c', "it's"]
        """
        start = value.find("(")
        end = value.rfind(")")
        if start < 0 or end < start:
            return frozenset()
        body = value[start + 1:end]
        labels = []
        current: list[str] = []
        in_quote = False
        i = 0
        while i < len(body):
            char = body[i]
            if in_quote:
                if char == "'" and i + 1 < len(body) and body[i + 1] == "'":
                    current.append("'")
                    i += 1
                elif char == "\\" and i + 1 < len(body):
                    current.append(body[i + 1])
                    i += 1
                elif char == "'":
                    in_quote = False
                    labels.append("".join(current))
                    current = []
                else:
                    current.append(char)
            elif char == "'":
                in_quote = True
            i += 1
        return frozenset(labels)

    # ------------------------------------------------------------------
    # Introspection hooks
    # ------------------------------------------------------------------

    def is_enum_column(self, conn: Connection, descriptor: ColumnDescriptor) -> bool:
        return descriptor.type_name.upper() == "ENUM"

    def is_set_column(self, conn: Connection, descriptor: ColumnDescriptor) -> bool:
        return descriptor.type_name.upper() == "SET"

    def read_enum_values(
        self, conn: Connection, database: str, table: str, descriptor: ColumnDescriptor
    ) -> frozenset[str]:
        return self._read_column_labels(conn, database, table, descriptor.name)

    def read_set_values(
        self, conn: Connection, database: str, table: str, descriptor: ColumnDescriptor
    ) -> frozenset[str]:
        return self._read_column_labels(conn, database, table, descriptor.name)

    def _read_column_labels(
        self, conn: Connection, database: str, table: str, column: str
    ) -> frozenset[str]:
        logger.debug(f"Reading labels of {database}.{table}.{column}")
        query = """
            SELECT COLUMN_TYPE
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
              AND COLUMN_NAME = :column
        """
        result = conn.execute(
            text(query), {"database": database, "table": table, "column": column}
        )
        column_type = result.scalar()
        return self.extract_set_values(column_type or "")

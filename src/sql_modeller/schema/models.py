"""Schema model: databases, tables, columns and indexes.

This module contains passive data structures only:
- ``WireType``: portable type codes used to classify introspected columns
- ``Database`` and ``Table``: containers, mutable while a model is built
- ``Column`` and its closed family of variants (immutable once built)
- ``Index``: a named set of column names on a table

A model describes either a live database (built by ``SqlModeller``) or the
structure a caller wants (built by hand).  The comparator and synchronizer
treat both the same way.

Example:
    >>> db = Database("shop")
    >>> users = db.add_table(Table(db, "users"))
    >>> users.add_column(IntegerColumn(table=users, name="id", key=True, auto_increment=True))
    IntegerColumn(name='id', ...)
    >>> users.add_column(StringColumn(table=users, name="email", length=128, nullable=True))
    StringColumn(name='email', ...)
    >>> users.add_index(Index(table=users, name="ix_email", column_names=("email",), unique=True))
    Index(name='ix_email', ...)
"""

import dataclasses
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class WireType(IntEnum):
    """Database-neutral type codes (same numbering as the JDBC type codes)."""

    BIT = -7
    TINYINT = -6
    BIGINT = -5
    LONGVARBINARY = -4
    VARBINARY = -3
    BINARY = -2
    LONGVARCHAR = -1
    CHAR = 1
    NUMERIC = 2
    DECIMAL = 3
    INTEGER = 4
    SMALLINT = 5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    VARCHAR = 12
    BOOLEAN = 16
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    OTHER = 1111
    BLOB = 2004


STRING_WIRE_TYPES = frozenset({WireType.CHAR, WireType.VARCHAR, WireType.LONGVARCHAR})
BINARY_WIRE_TYPES = frozenset(
    {WireType.BINARY, WireType.VARBINARY, WireType.LONGVARBINARY, WireType.BLOB}
)
DATETIME_WIRE_TYPES = frozenset({WireType.DATE, WireType.TIME, WireType.TIMESTAMP})
INTEGER_WIRE_TYPES = frozenset(
    {WireType.TINYINT, WireType.SMALLINT, WireType.INTEGER, WireType.BIGINT}
)
DECIMAL_WIRE_TYPES = frozenset({WireType.DECIMAL, WireType.NUMERIC})
DOUBLE_WIRE_TYPES = frozenset({WireType.DOUBLE, WireType.REAL, WireType.FLOAT})


# ============================================================================
# Columns
# ============================================================================


@dataclass(frozen=True, kw_only=True)
class Column:
    """Common attributes of every column variant.

    ``Column`` itself cannot be instantiated; use one of the variants below.
    The ``table`` back-reference is excluded from equality and repr.
    """

    table: "Table" = field(compare=False, repr=False)
    name: str
    wire_type: WireType
    nullable: bool = False
    key: bool = False
    auto_increment: bool = False
    default: str | None = None

    def __post_init__(self) -> None:
        if type(self) is Column:
            raise TypeError("Column is abstract; instantiate one of its variants")

    def replace(self, **changes: Any) -> "Column":
        """Return a copy of this column with the given attributes changed."""
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True, kw_only=True)
class StringColumn(Column):
    """Character data with a declared length."""

    wire_type: WireType = WireType.VARCHAR
    length: int


@dataclass(frozen=True, kw_only=True)
class BinaryColumn(Column):
    """Byte data with a declared length."""

    wire_type: WireType = WireType.VARBINARY
    length: int


@dataclass(frozen=True, kw_only=True)
class DecimalColumn(Column):
    """Fixed point numbers."""

    wire_type: WireType = WireType.DECIMAL
    precision: int
    scale: int = 0


@dataclass(frozen=True, kw_only=True)
class BitColumn(Column):
    """A bit field of ``bits`` bits."""

    wire_type: WireType = WireType.BIT
    bits: int = 1


@dataclass(frozen=True, kw_only=True)
class EnumColumn(Column):
    """A single value out of a fixed set of labels."""

    wire_type: WireType = WireType.OTHER
    labels: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "labels", frozenset(self.labels))


@dataclass(frozen=True, kw_only=True)
class SetColumn(Column):
    """Any subset of a fixed set of labels. Not every dialect supports it."""

    wire_type: WireType = WireType.OTHER
    labels: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "labels", frozenset(self.labels))


@dataclass(frozen=True, kw_only=True)
class IntegerColumn(Column):
    wire_type: WireType = WireType.INTEGER

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.wire_type not in INTEGER_WIRE_TYPES:
            raise ValueError(f"Integer column '{self.name}' cannot have type {self.wire_type.name}")


@dataclass(frozen=True, kw_only=True)
class DoubleColumn(Column):
    wire_type: WireType = WireType.DOUBLE


@dataclass(frozen=True, kw_only=True)
class BooleanColumn(Column):
    wire_type: WireType = WireType.BOOLEAN


@dataclass(frozen=True, kw_only=True)
class DateTimeColumn(Column):
    wire_type: WireType = WireType.TIMESTAMP


@dataclass(frozen=True, kw_only=True)
class TimeStampColumn(Column):
    wire_type: WireType = WireType.TIMESTAMP


# ============================================================================
# Indexes
# ============================================================================


@dataclass(frozen=True, kw_only=True)
class Index:
    """A named index over a set of columns of its table.

    Columns are held by name only; ``columns`` resolves them against the
    owning table.  Names are de-duplicated case-insensitively, first
    spelling wins.
    """

    table: "Table" = field(compare=False, repr=False)
    name: str
    column_names: tuple[str, ...] = ()
    unique: bool = False

    def __post_init__(self) -> None:
        names: list[str] = []
        seen: set[str] = set()
        for item in self.column_names:
            name = item.name if isinstance(item, Column) else item
            if name.lower() not in seen:
                seen.add(name.lower())
                names.append(name)
        object.__setattr__(self, "column_names", tuple(names))

    @property
    def columns(self) -> list[Column]:
        """The member columns, resolved against the owning table."""
        result = []
        for name in self.column_names:
            column = self.table.get_column(name)
            if column is None:
                raise KeyError(
                    f"Index '{self.name}' references unknown column '{name}' "
                    f"in table '{self.table.name}'"
                )
            result.append(column)
        return result

    @property
    def column_set(self) -> frozenset[str]:
        """Lower-cased member column names, for order-insensitive comparison."""
        return frozenset(name.lower() for name in self.column_names)


# ============================================================================
# Containers
# ============================================================================


class Table:
    """A table: columns keyed case-insensitively, indexes keyed by name.

    Column lookups ignore case; the spelling of the column as added is kept
    and used when generating SQL.
    """

    def __init__(self, database: "Database", name: str) -> None:
        self.database = database
        self.name = name
        self._columns: dict[str, Column] = {}
        self._indexes: dict[str, Index] = {}

    def add_column(self, column: Column) -> Column:
        """Add a column, replacing any column of the same name."""
        if column.table is not self:
            raise ValueError(
                f"Column '{column.name}' belongs to table '{column.table.name}', "
                f"not '{self.name}'"
            )
        self._columns[column.name.lower()] = column
        return column

    def remove_column(self, name: str) -> Column | None:
        return self._columns.pop(name.lower(), None)

    def add_index(self, index: Index) -> Index:
        if index.table is not self:
            raise ValueError(
                f"Index '{index.name}' belongs to table '{index.table.name}', "
                f"not '{self.name}'"
            )
        self._indexes[index.name] = index
        return index

    def remove_index(self, name: str) -> Index | None:
        return self._indexes.pop(name, None)

    @property
    def columns(self) -> list[Column]:
        return list(self._columns.values())

    @property
    def indexes(self) -> list[Index]:
        return list(self._indexes.values())

    def get_column(self, name: str) -> Column | None:
        return self._columns.get(name.lower())

    def get_index(self, name: str) -> Index | None:
        return self._indexes.get(name)

    def copy(self, database: "Database | None" = None) -> "Table":
        """Copy this table, optionally re-homing it in another database.

        Columns and indexes are re-created with their back-reference pointing
        at the copy.  The copy is not added to the target database.
        """
        clone = Table(database if database is not None else self.database, self.name)
        for column in self.columns:
            clone.add_column(column.replace(table=clone))
        for index in self.indexes:
            clone.add_index(dataclasses.replace(index, table=clone))
        return clone

    def __repr__(self) -> str:
        return (
            f"Table(database={self.database.name!r}, name={self.name!r}, "
            f"columns={[c.name for c in self.columns]!r}, "
            f"indexes={[i.name for i in self.indexes]!r})"
        )


class Database:
    """A named database owning its tables."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._tables: dict[str, Table] = {}

    def add_table(self, table: Table) -> Table:
        if table.database is not self:
            raise ValueError(f"Table '{table.name}' belongs to another database")
        self._tables[table.name] = table
        return table

    @property
    def tables(self) -> list[Table]:
        return list(self._tables.values())

    def get_table(self, name: str) -> Table | None:
        return self._tables.get(name)

    def __repr__(self) -> str:
        return f"Database(name={self.name!r}, tables={list(self._tables)!r})"

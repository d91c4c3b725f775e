"""Structural comparison of two table models.

Compares the table a database *has* with the table a caller *wants* and
reports every discrepancy as a ``Diff``.  Pure logic -- no I/O, no database
connections, no dialect objects.  The only dialect-specific input is the
optional length normalizer, so that the comparator and a dialect agree on
what "same length" means.

Usage:
    from sql_modeller.schema.comparator import compare, format_report

    diffs = compare(live_table, wanted_table)
    if diffs:
        print(format_report(diffs))
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from sql_modeller.errors import UnsupportedTypeError
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

LENGTH_TIERS = (255, 65535, 16777215, 2147483647)

_TRUE_VALUES = frozenset({"1", "true", "b'1'"})
_BIT_LITERAL = re.compile(r"^[bB]'([01]*)'$")


class DiffType(str, Enum):
    """Kinds of discrepancy. EXTRA_* means present live but not wanted."""

    EXTRA_COLUMN = "extra_column"
    MISSING_COLUMN = "missing_column"
    WRONG_NAME = "wrong_name"
    EXTRA_AUTO_INCREMENT = "extra_auto_increment"
    MISSING_AUTO_INCREMENT = "missing_auto_increment"
    EXTRA_NULLABLE = "extra_nullable"
    MISSING_NULLABLE = "missing_nullable"
    EXTRA_KEY = "extra_key"
    MISSING_KEY = "missing_key"
    WRONG_TYPE = "wrong_type"
    TOO_LONG = "too_long"
    TOO_SHORT = "too_short"
    EXTRA_VALUE = "extra_value"
    MISSING_VALUE = "missing_value"
    EXTRA_DEFAULT = "extra_default"
    MISSING_DEFAULT = "missing_default"
    WRONG_DEFAULT = "wrong_default"
    EXTRA_INDEX = "extra_index"
    MISSING_INDEX = "missing_index"
    WRONG_INDEX = "wrong_index"


_MESSAGES = {
    DiffType.EXTRA_COLUMN: "Column '{name}' exists but is not wanted",
    DiffType.MISSING_COLUMN: "Column '{name}' is missing",
    DiffType.WRONG_NAME: "Column '{name}' is spelled differently",
    DiffType.EXTRA_AUTO_INCREMENT: "Column '{name}' is auto-increment but should not be",
    DiffType.MISSING_AUTO_INCREMENT: "Column '{name}' should be auto-increment",
    DiffType.EXTRA_NULLABLE: "Column '{name}' is nullable but should not be",
    DiffType.MISSING_NULLABLE: "Column '{name}' should be nullable",
    DiffType.EXTRA_KEY: "Column '{name}' is a primary key but should not be",
    DiffType.MISSING_KEY: "Column '{name}' should be a primary key",
    DiffType.WRONG_TYPE: "Column '{name}' has the wrong type",
    DiffType.TOO_LONG: "Column '{name}' is too long",
    DiffType.TOO_SHORT: "Column '{name}' is too short",
    DiffType.EXTRA_VALUE: "Column '{name}' allows value '{value}' which is not wanted",
    DiffType.MISSING_VALUE: "Column '{name}' does not allow value '{value}'",
    DiffType.EXTRA_DEFAULT: "Column '{name}' has a default but should not",
    DiffType.MISSING_DEFAULT: "Column '{name}' is missing its default",
    DiffType.WRONG_DEFAULT: "Column '{name}' has the wrong default",
    DiffType.EXTRA_INDEX: "Index '{name}' exists but is not wanted",
    DiffType.MISSING_INDEX: "Index '{name}' is missing",
    DiffType.WRONG_INDEX: "Index '{name}' has a different definition",
}


@dataclass(frozen=True)
class Diff:
    """One discrepancy between a live and a wanted table.

    ``column`` is the wanted column (the live one for ``EXTRA_COLUMN``),
    ``index`` likewise for index diffs, and ``value`` carries the enum/set
    label for ``EXTRA_VALUE``/``MISSING_VALUE``.
    """

    type: DiffType
    column: Column | None = None
    index: Index | None = None
    value: str | None = None

    @property
    def name(self) -> str:
        if self.column is not None:
            return self.column.name
        return self.index.name if self.index is not None else ""

    @property
    def message(self) -> str:
        return _MESSAGES[self.type].format(name=self.name, value=self.value)


# ============================================================================
# Shared helpers
# ============================================================================


def normalized_length(column: Column) -> int:
    """Map a string/binary column's declared length onto its storage tier.

    Lengths up to 255 are kept as-is; anything longer is promoted to the
    smallest tier in ``LENGTH_TIERS`` that holds it.

    Examples:
        >>> normalized_length(StringColumn(table=t, name="a", length=300))
        65535
        >>> normalized_length(StringColumn(table=t, name="a", length=70000))
        16777215
    """
    if not isinstance(column, (StringColumn, BinaryColumn)):
        raise UnsupportedTypeError(
            f"Column '{column.name}' of type {type(column).__name__} has no length",
            column.name,
        )
    return tier_length(column.length)


def tier_length(length: int) -> int:
    if length <= LENGTH_TIERS[0]:
        return length
    for tier in LENGTH_TIERS[1:]:
        if length <= tier:
            return tier
    return LENGTH_TIERS[-1]


def boolean_value(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def bit_value(value: str) -> int | None:
    """Numeric value of a bit default given as digits, b'...' or a boolean word."""
    text = value.strip()
    match = _BIT_LITERAL.match(text)
    if match:
        text = match.group(1) or "0"
    if text and set(text) <= {"0", "1"}:
        return int(text, 2)
    if text.lower() in {"true", "false"}:
        return int(boolean_value(text))
    return None


def same_default(have: Column, want: Column) -> bool:
    """Decide if two columns carry the same default value.

    Defaults are compared textually, except that boolean-like columns
    (booleans, single bits, and integers compared against booleans) compare
    by truth value so ``1``, ``TRUE`` and ``true`` are equal.  Bit columns
    compare numerically, so ``101``, ``00000101`` and ``b'101'`` are equal.
    """
    if have.default is None or want.default is None:
        return have.default is None and want.default is None
    if isinstance(have, BitColumn) and isinstance(want, BitColumn):
        values = bit_value(have.default), bit_value(want.default)
        if None not in values:
            return values[0] == values[1]
    if _is_boolean_like(have) and _is_boolean_like(want):
        return boolean_value(have.default) == boolean_value(want.default)
    if isinstance(have, BooleanColumn) and isinstance(want, IntegerColumn):
        return boolean_value(have.default) == boolean_value(want.default)
    if isinstance(have, IntegerColumn) and isinstance(want, BooleanColumn):
        return boolean_value(have.default) == boolean_value(want.default)
    return have.default == want.default


def _is_boolean_like(column: Column) -> bool:
    return isinstance(column, BooleanColumn) or (
        isinstance(column, BitColumn) and column.bits == 1
    )


# ============================================================================
# Public API
# ============================================================================


def compare(
    have: Table,
    want: Table,
    normalize: Callable[[Column], int] = normalized_length,
) -> list[Diff]:
    """Compare a live table against a wanted table.

    Column names are matched case-insensitively.  The result lists, in order:
    columns only live (``EXTRA_COLUMN``), columns only wanted
    (``MISSING_COLUMN``), per-column differences for columns in both, and
    finally index differences.

    Args:
        have: The table as it exists.
        want: The table as it should be.
        normalize: Length normalizer for string/binary columns.  Dialects
            pass their own ``normalized_length`` here.

    Returns:
        List of ``Diff``; empty when the tables are equivalent.

    Examples:
        >>> compare(table, table)
        []
    """
    diffs: list[Diff] = []
    have_names = [c.name.lower() for c in have.columns]
    want_names = [c.name.lower() for c in want.columns]

    for name in have_names:
        if want.get_column(name) is None:
            diffs.append(Diff(DiffType.EXTRA_COLUMN, column=have.get_column(name)))
    for name in want_names:
        if have.get_column(name) is None:
            diffs.append(Diff(DiffType.MISSING_COLUMN, column=want.get_column(name)))
    for name in want_names:
        have_column = have.get_column(name)
        if have_column is not None:
            diffs.extend(compare_columns(have_column, want.get_column(name), normalize))

    diffs.extend(compare_indexes(have, want))
    return diffs


def compare_columns(
    have: Column,
    want: Column,
    normalize: Callable[[Column], int] = normalized_length,
) -> list[Diff]:
    """Compare two columns that share a (case-insensitive) name."""
    diffs: list[Diff] = []
    if have.name != want.name:
        diffs.append(Diff(DiffType.WRONG_NAME, column=want))
    diffs.extend(
        _compare_flag(have.auto_increment, want.auto_increment, want,
                      DiffType.EXTRA_AUTO_INCREMENT, DiffType.MISSING_AUTO_INCREMENT)
    )
    diffs.extend(
        _compare_flag(have.nullable, want.nullable, want,
                      DiffType.EXTRA_NULLABLE, DiffType.MISSING_NULLABLE)
    )
    diffs.extend(
        _compare_flag(have.key, want.key, want, DiffType.EXTRA_KEY, DiffType.MISSING_KEY)
    )
    diffs.extend(_compare_type(have, want, normalize))
    return diffs


def compare_indexes(have: Table, want: Table) -> list[Diff]:
    """Compare the indexes of two tables by name."""
    diffs: list[Diff] = []
    for index in have.indexes:
        if want.get_index(index.name) is None:
            diffs.append(Diff(DiffType.EXTRA_INDEX, index=index))
    for index in want.indexes:
        if have.get_index(index.name) is None:
            diffs.append(Diff(DiffType.MISSING_INDEX, index=index))
    for index in want.indexes:
        have_index = have.get_index(index.name)
        if have_index is None:
            continue
        if have_index.unique != index.unique or have_index.column_set != index.column_set:
            diffs.append(Diff(DiffType.WRONG_INDEX, index=index))
    return diffs


def format_report(diffs: list[Diff]) -> str:
    """Format a list of diffs as a human-readable report."""
    if not diffs:
        return "Tables are identical"
    lines = [f"{len(diffs)} difference(s):"]
    for diff in diffs:
        lines.append(f"  - [{diff.type.value}] {diff.message}")
    return "\n".join(lines)


# ============================================================================
# Per-type comparison
# ============================================================================


def _compare_flag(
    have: bool, want: bool, column: Column, extra: DiffType, missing: DiffType
) -> list[Diff]:
    if have and not want:
        return [Diff(extra, column=column)]
    if want and not have:
        return [Diff(missing, column=column)]
    return []


def _compare_type(
    have: Column, want: Column, normalize: Callable[[Column], int]
) -> list[Diff]:
    # Dispatch on the live column's variant.
    if isinstance(have, EnumColumn):
        if isinstance(want, EnumColumn):
            return _compare_labels(have.labels, want) + _compare_default(have, want)
        return [Diff(DiffType.WRONG_TYPE, column=want)]
    if isinstance(have, StringColumn):
        if isinstance(want, StringColumn):
            return _compare_length(normalize(have), normalize(want), want) + _compare_default(
                have, want
            )
        return [Diff(DiffType.WRONG_TYPE, column=want)]
    if isinstance(have, SetColumn):
        if isinstance(want, SetColumn):
            return _compare_labels(have.labels, want) + _compare_default(have, want)
        return [Diff(DiffType.WRONG_TYPE, column=want)]
    if isinstance(have, BitColumn):
        if isinstance(want, BitColumn):
            return _compare_length(have.bits, want.bits, want) + _compare_default(have, want)
        if isinstance(want, BooleanColumn) and have.bits == 1:
            return _compare_default(have, want)
        return [Diff(DiffType.WRONG_TYPE, column=want)]
    if isinstance(have, BooleanColumn):
        if isinstance(want, BooleanColumn):
            return _compare_default(have, want)
        if isinstance(want, BitColumn) and want.bits == 1:
            return _compare_default(have, want)
        return [Diff(DiffType.WRONG_TYPE, column=want)]
    if isinstance(have, DecimalColumn):
        if isinstance(want, DecimalColumn):
            if have.precision != want.precision or have.scale != want.scale:
                return [Diff(DiffType.WRONG_TYPE, column=want)]
            return _compare_default(have, want)
        return [Diff(DiffType.WRONG_TYPE, column=want)]
    if isinstance(have, BinaryColumn):
        if isinstance(want, BinaryColumn):
            return _compare_length(normalize(have), normalize(want), want)
        return [Diff(DiffType.WRONG_TYPE, column=want)]
    for variant in (DateTimeColumn, TimeStampColumn, DoubleColumn, IntegerColumn):
        if isinstance(have, variant):
            if isinstance(want, variant):
                return _compare_default(have, want)
            return [Diff(DiffType.WRONG_TYPE, column=want)]
    raise UnsupportedTypeError(
        f"Cannot compare column '{have.name}' of unhandled type {type(have).__name__}",
        have.name,
    )


def _compare_labels(have: frozenset[str], want: EnumColumn | SetColumn) -> list[Diff]:
    diffs: list[Diff] = []
    for label in sorted(have | want.labels):
        if label in have and label not in want.labels:
            diffs.append(Diff(DiffType.EXTRA_VALUE, column=want, value=label))
        elif label in want.labels and label not in have:
            diffs.append(Diff(DiffType.MISSING_VALUE, column=want, value=label))
    return diffs


def _compare_length(have: int, want: int, column: Column) -> list[Diff]:
    if have > want:
        return [Diff(DiffType.TOO_LONG, column=column)]
    if have < want:
        return [Diff(DiffType.TOO_SHORT, column=column)]
    return []


def _compare_default(have: Column, want: Column) -> list[Diff]:
    if have.default is None and want.default is None:
        return []
    if have.default is None:
        return [Diff(DiffType.MISSING_DEFAULT, column=want)]
    if want.default is None:
        return [Diff(DiffType.EXTRA_DEFAULT, column=want)]
    if same_default(have, want):
        return []
    return [Diff(DiffType.WRONG_DEFAULT, column=want)]

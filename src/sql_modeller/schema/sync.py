"""Bring a live table in line with a wanted table model.

``SqlSynchronizer.synchronize`` creates the table when it does not exist.
Otherwise it reads the live table and applies one change at a time.
Columns are handled first: additions, then renames and modifications in
wanted-column order, then live columns the model no longer has.  The table
is then re-read and its indexes reconciled.  Every applied change is
returned as an ``Action``.

Nothing is batched or wrapped in a transaction.  If a change fails, the
changes before it stay applied and the error propagates.

Usage:
    from sql_modeller.schema.sync import SqlSynchronizer

    synchronizer = SqlSynchronizer(modeller, delete_missing_columns=True)
    for action in synchronizer.synchronize(wanted_users):
        print(action.message)
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from sql_modeller.schema.comparator import same_default
from sql_modeller.schema.models import Column, Database, Index, Table

if TYPE_CHECKING:
    from sql_modeller.modeller import SqlModeller

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"
    DELETE_COLUMN = "delete_column"
    MODIFY_COLUMN = "modify_column"
    RENAME_COLUMN = "rename_column"
    ADD_INDEX = "add_index"
    MODIFY_INDEX = "modify_index"
    DELETE_INDEX = "delete_index"


class Action(BaseModel):
    """One change applied to the live database.

    Attributes:
        type: Kind of change.
        message: Human-readable description naming the objects involved.
    """

    type: ActionType
    message: str

    @classmethod
    def create_table(cls, table: Table) -> "Action":
        return cls(
            type=ActionType.CREATE_TABLE,
            message=f"Created table {table.name} in database {table.database.name}",
        )

    @classmethod
    def add_column(cls, column: Column) -> "Action":
        return cls(
            type=ActionType.ADD_COLUMN,
            message=f"Added column {column.name} to table {_where(column.table)}",
        )

    @classmethod
    def delete_column(cls, column: Column) -> "Action":
        return cls(
            type=ActionType.DELETE_COLUMN,
            message=f"Deleted column {column.name} from table {_where(column.table)}",
        )

    @classmethod
    def modify_column(cls, column: Column) -> "Action":
        return cls(
            type=ActionType.MODIFY_COLUMN,
            message=f"Modified column {column.name} in table {_where(column.table)}",
        )

    @classmethod
    def rename_column(cls, current: Column, changed: Column) -> "Action":
        return cls(
            type=ActionType.RENAME_COLUMN,
            message=(
                f"Renamed column {current.name} to {changed.name} "
                f"in table {_where(changed.table)}"
            ),
        )

    @classmethod
    def add_index(cls, index: Index) -> "Action":
        return cls(
            type=ActionType.ADD_INDEX,
            message=f"Added index {index.name} to table {_where(index.table)}",
        )

    @classmethod
    def modify_index(cls, index: Index) -> "Action":
        return cls(
            type=ActionType.MODIFY_INDEX,
            message=f"Modified index {index.name} in table {_where(index.table)}",
        )

    @classmethod
    def delete_index(cls, index: Index) -> "Action":
        return cls(
            type=ActionType.DELETE_INDEX,
            message=f"Deleted index {index.name} from table {_where(index.table)}",
        )


def _where(table: Table) -> str:
    return f"{table.name} in database {table.database.name}"


def _find_index(table: Table, name: str) -> Index | None:
    for index in table.indexes:
        if index.name.lower() == name.lower():
            return index
    return None


class SqlSynchronizer:
    """Applies the changes needed to turn live tables into wanted ones.

    Args:
        modeller: A ``SqlModeller`` (or anything with the same methods).
        delete_missing_columns: Drop live columns the wanted table lacks.
            When false they are made nullable instead.
        delete_missing_indexes: Drop live indexes the wanted table lacks.
    """

    def __init__(
        self,
        modeller: "SqlModeller",
        delete_missing_columns: bool = False,
        delete_missing_indexes: bool = False,
    ) -> None:
        self.modeller = modeller
        self.delete_missing_columns = delete_missing_columns
        self.delete_missing_indexes = delete_missing_indexes

    def synchronize(self, want: Table) -> list[Action]:
        """Synchronize the live table named like ``want``.

        Args:
            want: The table as it should be.

        Returns:
            Applied actions, in the order they were executed.  Empty when the
            live table already matches.

        Raises:
            ModellerError: If reading or a DDL statement fails.
        """
        if not self.modeller.table_exists(want):
            self.modeller.create_table(want)
            return [self._log(Action.create_table(want))]

        actions = self._synchronize_columns(want)
        actions += self._synchronize_indexes(want)
        return actions

    def _read_live(self, want: Table) -> Table:
        return self.modeller.read_table(Database(want.database.name), want.name)

    def needs_modify(self, current: Column, want: Column) -> bool:
        """True when ``current`` differs from ``want`` in anything but name case."""
        return (
            current.nullable != want.nullable
            or current.key != want.key
            or current.auto_increment != want.auto_increment
            or not self.modeller.types_are_compatible(current, want)
            or not same_default(current, want)
        )

    def _synchronize_columns(self, want: Table) -> list[Action]:
        live = self._read_live(want)
        actions: list[Action] = []

        for column in want.columns:
            if live.get_column(column.name) is None:
                self.modeller.add_column(column)
                actions.append(self._log(Action.add_column(column)))

        for column in want.columns:
            current = live.get_column(column.name)
            if current is None:
                continue
            if current.name != column.name:
                self.modeller.rename_column(current, column)
                actions.append(self._log(Action.rename_column(current, column)))
                current = current.replace(name=column.name)
            if self.needs_modify(current, column):
                self.modeller.modify_column(column, current)
                actions.append(self._log(Action.modify_column(column)))

        for column in live.columns:
            if want.get_column(column.name) is not None:
                continue
            if self.delete_missing_columns:
                self.modeller.delete_column(column)
                actions.append(self._log(Action.delete_column(column)))
            elif column.key:
                logger.warning(
                    f"Column '{column.name}' of '{want.name}' is not wanted but is part "
                    f"of the primary key; left unchanged"
                )
            elif not column.nullable:
                widened = column.replace(nullable=True)
                self.modeller.modify_column(widened, column)
                actions.append(self._log(Action.modify_column(widened)))

        return actions

    def _synchronize_indexes(self, want: Table) -> list[Action]:
        live = self._read_live(want)
        actions: list[Action] = []

        for index in want.indexes:
            current = _find_index(live, index.name)
            if current is None:
                self.modeller.add_index(index)
                actions.append(self._log(Action.add_index(index)))
            elif self._index_differs(current, index):
                self.modeller.modify_index(index, current)
                actions.append(self._log(Action.modify_index(index)))

        if self.delete_missing_indexes:
            for index in live.indexes:
                if _find_index(want, index.name) is None:
                    self.modeller.remove_index(index)
                    actions.append(self._log(Action.delete_index(index)))

        return actions

    def _index_differs(self, current: Index, want: Index) -> bool:
        if current.name != want.name or current.unique != want.unique:
            return True
        if current.column_set != want.column_set:
            return True
        # Same member names; a member column changed underneath the index.
        for have_column, want_column in zip(
            sorted(current.columns, key=lambda c: c.name.lower()),
            sorted(want.columns, key=lambda c: c.name.lower()),
        ):
            if self.needs_modify(have_column, want_column):
                return True
        return False

    def _log(self, action: Action) -> Action:
        logger.info(action.message)
        return action

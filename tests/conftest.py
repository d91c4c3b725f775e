"""Shared fakes for modeller tests.

``FakeConnection`` stands in for a SQLAlchemy ``Connection``: it records the
text of every executed statement and answers queries from a list of
``(substring, rows)`` routes, first match wins.  ``InMemoryModeller`` keeps
live tables as model objects so synchronizer scenarios run without a
database.
"""

import dataclasses
from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from sql_modeller.adapters.mysql import MysqlDialect
from sql_modeller.schema.models import Column, Database, Index, Table


class FakeResult:
    def __init__(self, rows: list[tuple]) -> None:
        self._rows = rows

    def fetchall(self) -> list[tuple]:
        return list(self._rows)

    def fetchone(self) -> tuple | None:
        return self._rows[0] if self._rows else None

    def scalar(self) -> Any:
        return self._rows[0][0] if self._rows else None


Route = tuple[str, list[tuple] | Callable[[dict], list[tuple]]]


class FakeConnection:
    """Records statements; answers from routes; optionally fails on a substring."""

    def __init__(self, routes: list[Route] | None = None, fail_on: str | None = None) -> None:
        self.routes = routes or []
        self.fail_on = fail_on
        self.statements: list[str] = []
        self.params: list[dict] = []
        self.commits = 0
        self.closed = False

    def __enter__(self) -> "FakeConnection":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.closed = True

    def execute(self, statement: Any, params: dict | None = None) -> FakeResult:
        sql = str(statement)
        if self.fail_on is not None and self.fail_on in sql:
            raise OperationalError(sql, params or {}, Exception("boom"))
        self.statements.append(sql)
        self.params.append(params or {})
        for substring, rows in self.routes:
            if substring in sql:
                return FakeResult(rows(params or {}) if callable(rows) else rows)
        return FakeResult([])

    def commit(self) -> None:
        self.commits += 1


class FakeSupplier:
    """Zero-argument connection supplier that counts how often it is called."""

    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn
        self.calls = 0

    def __call__(self) -> FakeConnection:
        self.calls += 1
        return self.conn


class InMemoryModeller:
    """Modeller double keeping live tables in memory.

    DDL methods mutate the live model directly and record a call log.
    """

    def __init__(self, database_name: str = "shop", dialect: Any = None) -> None:
        self.live = Database(database_name)
        self.dialect = dialect or MysqlDialect()
        self.calls: list[tuple[str, str]] = []

    def _live_table(self, name: str) -> Table:
        return self.live.get_table(name)

    def table_exists(self, table: Table) -> bool:
        return self.live.get_table(table.name) is not None

    def read_table(self, database: Database, name: str) -> Table:
        table = self._live_table(name).copy(database)
        database.add_table(table)
        return table

    def create_table(self, table: Table) -> None:
        self.calls.append(("create_table", table.name))
        self.live.add_table(table.copy(self.live))

    def add_column(self, column: Column) -> None:
        self.calls.append(("add_column", column.name))
        live = self._live_table(column.table.name)
        live.add_column(column.replace(table=live))

    def rename_column(self, current: Column, changed: Column) -> None:
        self.calls.append(("rename_column", changed.name))
        live = self._live_table(changed.table.name)
        live.remove_column(current.name)
        live.add_column(current.replace(table=live, name=changed.name))

    def modify_column(self, changed: Column, current: Column | None = None) -> None:
        self.calls.append(("modify_column", changed.name))
        live = self._live_table(changed.table.name)
        live.add_column(changed.replace(table=live))

    def delete_column(self, column: Column) -> None:
        self.calls.append(("delete_column", column.name))
        self._live_table(column.table.name).remove_column(column.name)

    def add_index(self, index: Index) -> None:
        self.calls.append(("add_index", index.name))
        live = self._live_table(index.table.name)
        live.add_index(dataclasses.replace(index, table=live))

    def modify_index(self, changed: Index, current: Index | None = None) -> None:
        self.calls.append(("modify_index", changed.name))
        live = self._live_table(changed.table.name)
        if current is not None:
            live.remove_index(current.name)
        live.add_index(dataclasses.replace(changed, table=live))

    def remove_index(self, index: Index) -> None:
        self.calls.append(("remove_index", index.name))
        self._live_table(index.table.name).remove_index(index.name)

    def types_are_compatible(self, one: Column, other: Column) -> bool:
        return self.dialect.types_are_compatible(one, other)

    def normalized_length(self, column: Column) -> int:
        return self.dialect.normalized_length(column)

    def supports_set(self) -> bool:
        return self.dialect.supports_set()


@pytest.fixture
def database() -> Database:
    return Database("shop")


@pytest.fixture
def users(database: Database) -> Table:
    """Empty ``shop.users`` table registered in its database."""
    return database.add_table(Table(database, "users"))

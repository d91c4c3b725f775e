"""SQL dialects package.

Provides the ``SqlDialect`` Protocol, the DDL fragments shared by every
dialect, and the MySQL and PostgreSQL implementations.

Usage:
    from sql_modeller.adapters import MysqlDialect, PostgresDialect

    dialect = PostgresDialect(schema_name="public")
"""

from sql_modeller.adapters.base import (
    SqlDialect,
    make_add_index_query,
    make_delete_column_query,
    make_delete_table_query,
    make_rename_column_query,
    quote_literal,
)
from sql_modeller.adapters.mysql import MysqlDialect
from sql_modeller.adapters.postgres import PostgresDialect

__all__ = [
    "SqlDialect",
    "MysqlDialect",
    "PostgresDialect",
    "make_add_index_query",
    "make_delete_column_query",
    "make_delete_table_query",
    "make_rename_column_query",
    "quote_literal",
]

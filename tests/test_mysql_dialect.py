"""Tests for the MySQL dialect: DDL rendering, type knowledge, defaults."""

import pytest

from conftest import FakeConnection
from sql_modeller.adapters.base import (
    make_add_index_query,
    make_delete_column_query,
    make_delete_table_query,
    make_rename_column_query,
)
from sql_modeller.adapters.mysql import MysqlDialect
from sql_modeller.schema.comparator import compare_columns
from sql_modeller.schema.introspector import ColumnDescriptor
from sql_modeller.schema.models import (
    BinaryColumn,
    BitColumn,
    BooleanColumn,
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


@pytest.fixture
def dialect() -> MysqlDialect:
    return MysqlDialect()


class TestNames:
    def test_qualified_table_name(self, dialect: MysqlDialect, users: Table) -> None:
        assert dialect.get_table_name(users) == "`shop`.`users`"

    def test_anonymous_db(self, users: Table) -> None:
        assert MysqlDialect(anonymous_db=True).get_table_name(users) == "`users`"

    def test_backticks_are_escaped(self, dialect: MysqlDialect, users: Table) -> None:
        column = IntegerColumn(table=users, name="we`ird")
        assert dialect.get_column_name(column) == "`we``ird`"


class TestCreateType:
    """Type clauses: type, NOT NULL, DEFAULT, AUTO_INCREMENT, PRIMARY KEY."""

    @pytest.mark.parametrize(
        "length, expected",
        [(50, "VARCHAR(50)"), (255, "VARCHAR(255)"), (256, "TEXT"), (65535, "TEXT"),
         (65536, "MEDIUMTEXT"), (16777215, "MEDIUMTEXT"), (16777216, "LONGTEXT")],
    )
    def test_string_storage_classes(
        self, dialect: MysqlDialect, users: Table, length: int, expected: str
    ) -> None:
        column = StringColumn(table=users, name="s", length=length, nullable=True)
        assert dialect.get_create_type(column) == expected

    @pytest.mark.parametrize(
        "length, expected",
        [(16, "TINYBLOB"), (255, "TINYBLOB"), (256, "BLOB"), (65536, "MEDIUMBLOB"),
         (16777216, "LONGBLOB")],
    )
    def test_binary_storage_classes(
        self, dialect: MysqlDialect, users: Table, length: int, expected: str
    ) -> None:
        column = BinaryColumn(table=users, name="b", length=length, nullable=True)
        assert dialect.get_create_type(column) == expected

    def test_key_auto_increment_integer(self, dialect: MysqlDialect, users: Table) -> None:
        column = IntegerColumn(table=users, name="id", key=True, auto_increment=True, default="5")
        assert dialect.get_create_type(column) == "INTEGER NOT NULL AUTO_INCREMENT PRIMARY KEY"

    def test_bigint(self, dialect: MysqlDialect, users: Table) -> None:
        column = IntegerColumn(table=users, name="id", wire_type=WireType.BIGINT, nullable=True)
        assert dialect.get_create_type(column) == "BIGINT"

    def test_string_default_is_quoted(self, dialect: MysqlDialect, users: Table) -> None:
        column = StringColumn(table=users, name="s", length=10, default="it's")
        assert dialect.get_create_type(column) == "VARCHAR(10) NOT NULL DEFAULT 'it''s'"

    def test_inline_enum_and_set(self, dialect: MysqlDialect, users: Table) -> None:
        enum = EnumColumn(table=users, name="e", labels={"b", "a"}, default="a")
        values = SetColumn(table=users, name="s", labels={"x", "y"}, nullable=True)
        assert dialect.get_create_type(enum) == "ENUM('a', 'b') NOT NULL DEFAULT 'a'"
        assert dialect.get_create_type(values) == "SET('x', 'y')"

    def test_other_types(self, dialect: MysqlDialect, users: Table) -> None:
        cases = [
            (DecimalColumn(table=users, name="d", precision=10, scale=2), "DECIMAL(10,2) NOT NULL"),
            (BitColumn(table=users, name="b", bits=3, default="0"), "BIT(3) NOT NULL DEFAULT b'0'"),
            (BooleanColumn(table=users, name="f", default="1"), "BOOLEAN NOT NULL DEFAULT 1"),
            (DoubleColumn(table=users, name="x", nullable=True), "DOUBLE"),
            (DateTimeColumn(table=users, name="c", nullable=True), "DATETIME"),
            (TimeStampColumn(table=users, name="u", nullable=True), "TIMESTAMP"),
        ]
        for column, expected in cases:
            assert dialect.get_create_type(column) == expected

    @pytest.mark.parametrize(
        "column_type, default, expected",
        [
            (DateTimeColumn, "2020-01-01 00:00:00",
             "DATETIME NOT NULL DEFAULT '2020-01-01 00:00:00'"),
            (DateTimeColumn, "CURRENT_TIMESTAMP", "DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP"),
            (TimeStampColumn, "current_timestamp(6)",
             "TIMESTAMP NOT NULL DEFAULT current_timestamp(6)"),
        ],
    )
    def test_temporal_defaults(
        self, dialect: MysqlDialect, users: Table, column_type, default: str, expected: str
    ) -> None:
        """Literal dates are quoted; CURRENT_TIMESTAMP and calls are not."""
        column = column_type(table=users, name="created", default=default)
        assert dialect.get_create_type(column) == expected

    def test_bit_default_is_a_bit_literal(self, dialect: MysqlDialect, users: Table) -> None:
        column = BitColumn(table=users, name="flags", bits=8, default="101")
        assert dialect.get_create_type(column) == "BIT(8) NOT NULL DEFAULT b'101'"

    def test_bit_default_reads_back_unchanged(self, dialect: MysqlDialect, users: Table) -> None:
        want = BitColumn(table=users, name="flags", bits=8, default="101")
        rendered = dialect.get_create_type(want).rsplit("DEFAULT ", 1)[1]
        have = want.replace(default=dialect.extract_default(rendered))
        assert have.default == "101"
        assert compare_columns(have, want) == []


class TestTableAndColumnDdl:
    def test_create_table(self, dialect: MysqlDialect, users: Table) -> None:
        """Keys are declared once, as a table constraint."""
        users.add_column(IntegerColumn(table=users, name="id", key=True, auto_increment=True))
        users.add_column(StringColumn(table=users, name="name", length=50))
        assert dialect.make_create_table_query(users) == [
            "CREATE TABLE `shop`.`users` (`id` INTEGER NOT NULL AUTO_INCREMENT, "
            "`name` VARCHAR(50) NOT NULL, PRIMARY KEY (`id`))"
        ]

    def test_add_set_column(self, dialect: MysqlDialect, users: Table) -> None:
        column = SetColumn(table=users, name="tags", labels={"a"}, nullable=True)
        assert dialect.make_add_column_query(column) == [
            "ALTER TABLE `shop`.`users` ADD COLUMN `tags` SET('a')"
        ]

    def test_modify_plain_column(self, dialect: MysqlDialect, users: Table) -> None:
        column = StringColumn(table=users, name="name", length=100)
        assert dialect.make_modify_column_query(column) == [
            "ALTER TABLE `shop`.`users` MODIFY COLUMN `name` VARCHAR(100) NOT NULL"
        ]

    def test_modify_key_column_drops_primary_key_first(
        self, dialect: MysqlDialect, users: Table
    ) -> None:
        """The key is dropped (with AUTO_INCREMENT) before the real MODIFY."""
        column = IntegerColumn(
            table=users, name="id", wire_type=WireType.BIGINT, key=True, auto_increment=True
        )
        assert dialect.make_modify_column_query(column) == [
            "ALTER TABLE `shop`.`users` MODIFY COLUMN `id` BIGINT NOT NULL, DROP PRIMARY KEY",
            "ALTER TABLE `shop`.`users` MODIFY COLUMN `id` BIGINT NOT NULL AUTO_INCREMENT, "
            "ADD PRIMARY KEY (`id`)",
        ]

    def test_modify_uses_current_key_flag(self, dialect: MysqlDialect, users: Table) -> None:
        """Removing the key from a current key column still drops it first."""
        current = IntegerColumn(table=users, name="id", key=True)
        changed = IntegerColumn(table=users, name="id")
        statements = dialect.make_modify_column_query(changed, current)
        assert len(statements) == 2
        assert statements[0].endswith("DROP PRIMARY KEY")
        assert not statements[1].endswith("PRIMARY KEY")

    def test_modify_composite_key_member_keeps_whole_key(
        self, dialect: MysqlDialect, users: Table
    ) -> None:
        users.add_column(IntegerColumn(table=users, name="a", key=True))
        users.add_column(IntegerColumn(table=users, name="b", key=True))
        changed = IntegerColumn(table=users, name="a", wire_type=WireType.BIGINT, key=True)
        assert dialect.make_modify_column_query(changed, users.get_column("a")) == [
            "ALTER TABLE `shop`.`users` MODIFY COLUMN `a` BIGINT NOT NULL, DROP PRIMARY KEY",
            "ALTER TABLE `shop`.`users` MODIFY COLUMN `a` BIGINT NOT NULL, "
            "ADD PRIMARY KEY (`a`, `b`)",
        ]

    def test_leaving_composite_key_keeps_the_rest(
        self, dialect: MysqlDialect, users: Table
    ) -> None:
        users.add_column(IntegerColumn(table=users, name="a", key=True))
        users.add_column(IntegerColumn(table=users, name="b", key=True))
        changed = IntegerColumn(table=users, name="a")
        statements = dialect.make_modify_column_query(changed, users.get_column("a"))
        assert statements[0].endswith("DROP PRIMARY KEY")
        assert statements[1].endswith("ADD PRIMARY KEY (`b`)")

    def test_joining_composite_key_rebuilds_it(self, dialect: MysqlDialect, users: Table) -> None:
        users.add_column(IntegerColumn(table=users, name="a", key=True))
        users.add_column(IntegerColumn(table=users, name="b"))
        changed = IntegerColumn(table=users, name="b", key=True)
        statements = dialect.make_modify_column_query(changed, users.get_column("b"))
        assert statements[0].endswith("DROP PRIMARY KEY")
        assert statements[1].endswith("ADD PRIMARY KEY (`a`, `b`)")

    def test_shared_fragments(self, dialect: MysqlDialect, users: Table) -> None:
        old = StringColumn(table=users, name="Name", length=5)
        new = StringColumn(table=users, name="name", length=5)
        assert make_rename_column_query(dialect, old, new) == (
            "ALTER TABLE `shop`.`users` RENAME COLUMN `Name` TO `name`"
        )
        assert make_delete_column_query(dialect, new) == (
            "ALTER TABLE `shop`.`users` DROP COLUMN `name`"
        )
        assert make_delete_table_query(dialect, users) == "DROP TABLE `shop`.`users`"


class TestIndexDdl:
    @pytest.fixture
    def index(self, users: Table) -> Index:
        users.add_column(StringColumn(table=users, name="email", length=128))
        users.add_column(StringColumn(table=users, name="name", length=50))
        return Index(table=users, name="ix_email", column_names=("email", "name"), unique=True)

    def test_add_index(self, dialect: MysqlDialect, index: Index) -> None:
        assert make_add_index_query(dialect, index) == (
            "CREATE UNIQUE INDEX `ix_email` ON `shop`.`users` (`email`, `name`)"
        )

    def test_remove_and_rename(self, dialect: MysqlDialect, index: Index, users: Table) -> None:
        renamed = Index(table=users, name="ix_mail", column_names=("email",))
        assert dialect.make_remove_index_query(index) == "DROP INDEX `ix_email` on `shop`.`users`"
        assert dialect.make_rename_index_query(index, renamed) == (
            "ALTER TABLE `shop`.`users` RENAME INDEX `ix_email` TO `ix_mail`"
        )

    def test_modify_index_drops_then_adds(self, dialect: MysqlDialect, index: Index) -> None:
        statements = dialect.make_modify_index_queries(index)
        assert statements[0].startswith("DROP INDEX `ix_email`")
        assert statements[1].startswith("CREATE UNIQUE INDEX `ix_email`")


class TestTypeKnowledge:
    def test_bit_one_and_boolean_are_compatible(self, dialect: MysqlDialect, users: Table) -> None:
        bit = BitColumn(table=users, name="f", bits=1)
        flag = BooleanColumn(table=users, name="f")
        assert dialect.types_are_compatible(bit, flag)
        assert dialect.types_are_compatible(flag, bit)
        assert not dialect.types_are_compatible(BitColumn(table=users, name="f", bits=2), flag)

    def test_integer_width_matters(self, dialect: MysqlDialect, users: Table) -> None:
        small = IntegerColumn(table=users, name="i", wire_type=WireType.SMALLINT)
        big = IntegerColumn(table=users, name="i", wire_type=WireType.BIGINT)
        assert not dialect.types_are_compatible(small, big)

    def test_string_lengths_by_tier(self, dialect: MysqlDialect, users: Table) -> None:
        assert dialect.types_are_compatible(
            StringColumn(table=users, name="s", length=300),
            StringColumn(table=users, name="s", length=60000),
        )
        assert not dialect.types_are_compatible(
            StringColumn(table=users, name="s", length=50),
            StringColumn(table=users, name="s", length=100),
        )

    def test_short_binary_reads_back_as_tinyblob(self, dialect: MysqlDialect, users: Table) -> None:
        assert dialect.normalized_length(BinaryColumn(table=users, name="b", length=16)) == 255

    def test_supports_set(self, dialect: MysqlDialect) -> None:
        assert dialect.supports_set() is True

    def test_datetime_classification(self, dialect: MysqlDialect) -> None:
        assert dialect.is_datetime_column("DATETIME")
        assert dialect.is_datetime_column("DATE")
        assert not dialect.is_datetime_column("TIMESTAMP")


class TestDefaultsAndLabels:
    @pytest.mark.parametrize(
        "raw, expected",
        [(None, None), ("NULL", None), ("''", ""), ("b'1'", "1"), ("'abc'", "abc"),
         ("'it''s'", "it's"), ("abc", "abc"), ("CURRENT_TIMESTAMP", "CURRENT_TIMESTAMP")],
    )
    def test_extract_default(self, dialect: MysqlDialect, raw, expected) -> None:
        assert dialect.extract_default(raw) == expected

    def test_extract_set_values(self, dialect: MysqlDialect) -> None:
        assert dialect.extract_set_values("set('a','b,c','it''s')") == frozenset(
            {"a", "b,c", "it's"}
        )
        assert dialect.extract_set_values("enum('x')") == frozenset({"x"})

    def test_enum_and_set_detection(self, dialect: MysqlDialect) -> None:
        conn = FakeConnection()
        enum = ColumnDescriptor(name="e", wire_type=WireType.CHAR, type_name="ENUM")
        values = ColumnDescriptor(name="s", wire_type=WireType.CHAR, type_name="SET")
        assert dialect.is_enum_column(conn, enum)
        assert not dialect.is_set_column(conn, enum)
        assert dialect.is_set_column(conn, values)
        assert conn.statements == []

    def test_read_enum_values_queries_column_type(self, dialect: MysqlDialect) -> None:
        conn = FakeConnection(routes=[("SELECT COLUMN_TYPE", [("enum('new','done')",)])])
        descriptor = ColumnDescriptor(name="status", wire_type=WireType.CHAR, type_name="ENUM")
        labels = dialect.read_enum_values(conn, "shop", "users", descriptor)
        assert labels == frozenset({"new", "done"})
        assert conn.params[0] == {"database": "shop", "table": "users", "column": "status"}

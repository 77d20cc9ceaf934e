from relmap.dialects import SQLiteDialect


def test_sqlite_identifier_quoting():
    dialect = SQLiteDialect()
    assert dialect.quote_identifier("table") == '"table"'
    assert dialect.quote_identifier('bad"name') == '"bad""name"'
    assert dialect.format_table("post") == '"post"'


def test_sqlite_placeholder_and_empty_insert():
    dialect = SQLiteDialect()
    assert dialect.parameter_placeholder() == "?"
    assert dialect.empty_insert('"foo"') == 'INSERT INTO "foo" DEFAULT VALUES'
    assert not dialect.capabilities.supports_returning

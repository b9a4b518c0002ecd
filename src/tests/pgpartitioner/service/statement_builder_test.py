from datetime import date, datetime

import pytest

from pgpartitioner.service.statement_builder import StatementBuilder


@pytest.fixture
def statement_builder():
    return StatementBuilder()


def test_quote_only_when_needed(statement_builder):
    assert statement_builder.quote("orders") == "orders"
    assert statement_builder.quote("Orders") == '"Orders"'
    assert statement_builder.qualify("public", "orders") == "public.orders"


def test_literal_rendering(statement_builder):
    assert statement_builder.literal(5) == "5"
    assert statement_builder.literal(date(2023, 1, 1)) == "'2023-01-01'"
    assert statement_builder.literal(datetime(2023, 1, 1, 10, 30)) == "'2023-01-01 10:30:00'"
    assert statement_builder.literal("O'Brien") == "'O''Brien'"


def test_literal_rejects_bool(statement_builder):
    with pytest.raises(ValueError):
        statement_builder.literal(True)


def test_typed_literal(statement_builder):
    assert statement_builder.typed_literal(10, "bigint") == "10"
    assert statement_builder.typed_literal(date(2023, 1, 1), "date") == "'2023-01-01'::date"


def test_range_check(statement_builder):
    assert statement_builder.range_check("id", 1, 100, "bigint") == "((id IS NOT NULL) AND (id >= 1) AND (id < 100))"


def test_between_check(statement_builder):
    expression = statement_builder.between_check(
        "created_at", datetime(2023, 1, 1), datetime(2023, 1, 31, 23, 59, 59, 999999), "timestamp"
    )

    assert expression == (
        "(created_at BETWEEN '2023-01-01 00:00:00'::timestamp "
        "AND '2023-01-31 23:59:59.999999'::timestamp)"
    )


def test_bound_check(statement_builder):
    assert statement_builder.bound_check("created_at", ">=", date(2023, 1, 1), "date") == "(created_at >= '2023-01-01'::date)"
    with pytest.raises(ValueError):
        statement_builder.bound_check("created_at", "=", date(2023, 1, 1), "date")


@pytest.mark.parametrize("expression", [
    "customer_id", "lower(email)", "created_at desc nulls last", "name text_pattern_ops",
    "date_trunc('day', created_at)", "coalesce(customer_id, 0)", "(price * quantity)", "created_at::date",
])
def test_validate_expression_accepts_columns_and_modifiers(statement_builder, expression):
    assert statement_builder.validate_expression(expression) == expression


@pytest.mark.parametrize("expression", [
    "", "id); drop table orders; --", "id, name", "lower(email", "lower(email))", "id /* x */", "'unterminated",
])
def test_validate_expression_rejects_injection(statement_builder, expression):
    with pytest.raises(ValueError):
        statement_builder.validate_expression(expression)


def test_validate_storage_options(statement_builder):
    assert statement_builder.validate_storage_options(["fillfactor=90", "autovacuum_enabled=false"]) == [
        "fillfactor=90", "autovacuum_enabled=false"
    ]
    with pytest.raises(ValueError):
        statement_builder.validate_storage_options(["fillfactor=90); drop table orders"])


def test_index_name_truncates_and_numbers(statement_builder):
    assert statement_builder.index_name("orders", "customer_id", 59) == "orders_customer_id_idx"
    assert statement_builder.index_name("orders", "customer_id", 59, attempt=1) == "orders_customer_id1_idx"

    long_name = statement_builder.index_name("a" * 70, "customer_id", 59)
    assert len(long_name) == 63
    assert long_name.endswith("_idx")


@pytest.mark.parametrize("expression, column", [
    ("customer_id", "customer_id"),
    ("created_at desc", "created_at"),
    ("LOWER(email)", "email"),
    ("date_trunc('day', created_at)", "created_at"),
    ("coalesce(customer_id, 0)", "customer_id"),
    ("lower(trim(\"Email\"))", "email"),
    ("(price * quantity)", "price"),
    ("now()", "now"),
])
def test_expression_column(statement_builder, expression, column):
    assert statement_builder.expression_column(expression) == column

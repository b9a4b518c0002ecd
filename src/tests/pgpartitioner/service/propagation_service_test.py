import pytest
from unittest.mock import MagicMock

from pgpartitioner.exceptions.unsupported_index_method_error import UnsupportedIndexMethodError
from tests.providers.fake_catalog import FakeCatalog, build_services


@pytest.fixture
def catalog():
    catalog = FakeCatalog()
    catalog.create_partitioned("orders", {"id": "int8", "customer_id": "int8", "email": "text"}, key="id")
    catalog.add_partition("orders", "orders_1_1001", 1, 1001)
    catalog.add_partition("orders", "orders_1001_2001", 1001, 2001)
    catalog.create_table("orders_template", {"id": "int8", "customer_id": "int8", "email": "text"})
    return catalog


@pytest.fixture
def propagation_service(catalog):
    return build_services(catalog, MagicMock()).propagation


def test_index_statements_children_then_parent_then_template(propagation_service):
    statements = propagation_service.generate_index_statements("public", "orders", ["customer_id"])

    assert statements == [
        "/* Creating index 1 of 4 */ create index concurrently orders_1001_2001_customer_id_idx "
        "on public.orders_1001_2001 using btree (customer_id);",
        "/* Creating index 2 of 4 */ create index concurrently orders_1_1001_customer_id_idx "
        "on public.orders_1_1001 using btree (customer_id);",
        "/* Creating index 3 of 4 */ create index orders_customer_id_idx on public.orders using btree (customer_id);",
        "/* Creating index 4 of 4 */ create index orders_template_customer_id_idx "
        "on public.orders_template using btree (customer_id);",
    ]


def test_unique_index_without_partition_column_skips_parent(propagation_service):
    statements = propagation_service.generate_index_statements("public", "orders", ["email"], unique=True)

    assert len(statements) == 3
    assert all(s.split("*/ ")[1].startswith("create unique index") for s in statements)
    assert not any(" on public.orders using" in s for s in statements)
    assert sum(" concurrently " in s for s in statements) == 2


def test_unique_index_with_partition_column_keeps_parent(propagation_service):
    statements = propagation_service.generate_index_statements("public", "orders", ["id", "email"], unique=True)

    assert len(statements) == 4
    assert any("create unique index orders_id_email_idx on public.orders using btree (id, email);" in s for s in statements)


def test_functional_expression_keeps_expression_and_names_by_column(propagation_service):
    statements = propagation_service.generate_index_statements("public", "orders", ["LOWER(email)"], method="hash")

    assert "create index orders_email_idx on public.orders using hash (lower(email));" in statements[2]


def test_index_name_collision_appends_number(catalog, propagation_service):
    catalog.indexes.add("orders_customer_id_idx")

    statements = propagation_service.generate_index_statements("public", "orders", ["customer_id"])

    assert "create index orders_customer_id1_idx on public.orders" in statements[2]


def test_index_name_collisions_exhausted_emit_last_candidate(catalog, propagation_service):
    catalog.indexes.add("orders_customer_id_idx")
    catalog.indexes.update(f"orders_customer_id{n}_idx" for n in range(1, 10))

    statements = propagation_service.generate_index_statements("public", "orders", ["customer_id"])

    assert "create index orders_customer_id9_idx on public.orders" in statements[2]
    propagation_service.logger.warning.assert_called_once()


def test_unsupported_index_method(propagation_service):
    with pytest.raises(UnsupportedIndexMethodError):
        propagation_service.generate_index_statements("public", "orders", ["customer_id"], method="bitmap")


def test_foreign_key_statements_order(propagation_service):
    statements = propagation_service.generate_foreign_key_statements(
        "public", "orders", "orders_customer_fk", "customers", ["customer_id"], ["id"]
    )

    assert statements == [
        "alter table public.orders_1001_2001 add constraint orders_customer_fk "
        "foreign key (customer_id) references customers(id) not valid;",
        "alter table public.orders_1_1001 add constraint orders_customer_fk "
        "foreign key (customer_id) references customers(id) not valid;",
        "/* Validating constraint 1 of 2 */ alter table public.orders_1001_2001 validate constraint orders_customer_fk;",
        "/* Validating constraint 2 of 2 */ alter table public.orders_1_1001 validate constraint orders_customer_fk;",
        "alter table public.orders add constraint orders_customer_fk foreign key (customer_id) references customers(id);",
        "alter table public.orders_template add constraint orders_customer_fk "
        "foreign key (customer_id) references customers(id);",
    ]


def test_foreign_key_with_schema_qualified_parent(propagation_service):
    statements = propagation_service.generate_foreign_key_statements(
        "public", "orders", "orders_customer_fk", "sales.customers", ["customer_id"], ["id"]
    )

    assert "references sales.customers(id)" in statements[-1]


def test_foreign_key_column_lists_must_match(propagation_service):
    with pytest.raises(ValueError):
        propagation_service.generate_foreign_key_statements(
            "public", "orders", "orders_customer_fk", "customers", ["customer_id", "region"], ["id"]
        )


@pytest.mark.parametrize("expression, index_name", [
    ("date_trunc('day', created_at)", "orders_created_at_idx"),
    ("coalesce(customer_id, 0)", "orders_customer_id_idx"),
])
def test_multi_argument_function_expressions(propagation_service, expression, index_name):
    statements = propagation_service.generate_index_statements("public", "orders", [expression])

    assert len(statements) == 4
    assert f"create index {index_name} on public.orders using btree ({expression});" in statements[2]


def test_expression_with_statement_separator_is_rejected(propagation_service):
    with pytest.raises(ValueError):
        propagation_service.generate_index_statements("public", "orders", ["coalesce(customer_id, 0); drop table orders"])

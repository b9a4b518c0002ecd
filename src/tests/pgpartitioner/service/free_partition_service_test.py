from datetime import date

import pytest
from unittest.mock import MagicMock

from pgpartitioner.exceptions.not_partitioned_error import NotPartitionedError
from pgpartitioner.exceptions.unsupported_column_type_error import UnsupportedColumnTypeError
from tests.providers.fake_catalog import FakeCatalog, build_services


@pytest.fixture
def catalog():
    catalog = FakeCatalog(today=date(2026, 10, 19))
    catalog.create_partitioned("orders", {"id": "int8"}, key="id")
    catalog.add_partition("orders", "orders_mammoth", -999, 1)
    catalog.add_partition("orders", "orders_1_1000001", 1, 1000001)
    catalog.add_partition("orders", "orders_1000001_2000001", 1000001, 2000001)
    catalog.add_partition("orders", "orders_2000001_3000001", 2000001, 3000001)
    catalog.add_partition("orders", "orders_default", is_default=True)
    return catalog


@pytest.fixture
def services(catalog):
    return build_services(catalog, MagicMock())


def test_empty_integer_table_treats_max_as_zero(services):
    assert services.free_partition.count_free_partitions("public", "orders") == 3


def test_integer_counts_partitions_above_current_max(catalog, services):
    catalog.insert("orders", id=1500000)

    assert services.free_partition.count_free_partitions("public", "orders") == 1


def test_count_is_idempotent(catalog, services):
    catalog.insert("orders", id=10)

    first = services.free_partition.count_free_partitions("public", "orders")
    second = services.free_partition.count_free_partitions("public", "orders")

    assert first == second == 2


def test_rows_in_default_partition_are_ignored_above_last_bound(catalog, services):
    catalog.insert("orders", id=9000000)

    assert services.free_partition.count_free_partitions("public", "orders") == 3


def test_partition_without_upper_bound_is_ignored(catalog, services):
    catalog.insert("orders", id=10)
    catalog.add_partition("orders", "orders_3000001_maxvalue", 3000001, None)

    assert services.free_partition.count_free_partitions("public", "orders") == 2


def test_date_counts_partitions_starting_after_today(services):
    catalog = services.free_partition.catalog_repository
    catalog.create_partitioned("events", {"created_on": "date"}, key="created_on")
    for lower, upper in [
        (date(2026, 9, 1), date(2026, 10, 1)),
        (date(2026, 10, 1), date(2026, 11, 1)),
        (date(2026, 11, 1), date(2026, 12, 1)),
        (date(2026, 12, 1), date(2027, 1, 1)),
    ]:
        catalog.add_partition("events", f"events_{lower:%Y%m%d}_{upper:%Y%m%d}", lower, upper)

    assert services.free_partition.count_free_partitions("public", "events") == 2


def test_range_groups_return_most_constrained_group(services):
    catalog = services.free_partition.catalog_repository
    catalog.create_partitioned("ledger", {"id": "int8"}, key="id")
    catalog.add_partition("ledger", "ledger_r1_1_1001", 1, 1001)
    catalog.add_partition("ledger", "ledger_r1_1001_2001", 1001, 2001)
    catalog.add_partition("ledger", "ledger_r1_2001_3001", 2001, 3001)
    catalog.add_partition("ledger", "ledger_r2_1000001_1001001", 1000001, 1001001)
    catalog.add_partition("ledger", "ledger_r2_1001001_1002001", 1001001, 1002001)
    catalog.insert("ledger", id=500)
    catalog.insert("ledger", id=1000500)

    assert services.free_partition.count_free_partitions("public", "ledger") == 1
    assert services.free_partition.count_free_partitions("public", "ledger", range_key="r1") == 2
    assert services.free_partition.count_free_partitions("public", "ledger", range_key="r2") == 1


def test_range_key_requires_integer_column(services):
    catalog = services.free_partition.catalog_repository
    catalog.create_partitioned("events", {"created_on": "date"}, key="created_on")
    catalog.add_partition("events", "events_20260901_20261001", date(2026, 9, 1), date(2026, 10, 1))

    with pytest.raises(UnsupportedColumnTypeError):
        services.free_partition.count_free_partitions("public", "events", range_key="r1")


def test_not_partitioned(services):
    catalog = services.free_partition.catalog_repository
    catalog.create_table("customers", {"id": "int8"})

    with pytest.raises(NotPartitionedError):
        services.free_partition.count_free_partitions("public", "customers")

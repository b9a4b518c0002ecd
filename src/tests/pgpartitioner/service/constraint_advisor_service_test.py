from datetime import date, datetime

import pytest
from unittest.mock import MagicMock

from pgpartitioner.exceptions.unsupported_column_type_error import UnsupportedColumnTypeError
from tests.providers.fake_catalog import FakeCatalog, build_services


@pytest.fixture
def catalog():
    catalog = FakeCatalog()
    catalog.create_partitioned("measurements", {"id": "int8", "created_at": "timestamp", "value": "int4"}, key="id")
    catalog.add_partition("measurements", "measurements_1_101", 1, 101)
    catalog.add_partition("measurements", "measurements_101_201", 101, 201)
    catalog.add_partition("measurements", "measurements_201_301", 201, 301)
    catalog.insert("measurements", id=1, created_at=datetime(2023, 1, 1))
    catalog.insert("measurements", id=100, created_at=datetime(2023, 1, 5, 12, 30))
    catalog.insert("measurements", id=101, created_at=datetime(2023, 1, 6))
    catalog.insert("measurements", id=150, created_at=datetime(2023, 1, 7))
    return catalog


@pytest.fixture
def constraint_advisor_service(catalog):
    return build_services(catalog, MagicMock()).constraint_advisor


def test_adds_min_for_partitions_with_rows_and_max_for_full_partitions(catalog, constraint_advisor_service):
    added = constraint_advisor_service.add_pruning_constraints("public", "measurements", "created", "created_at")

    assert added == [
        "measurements_101_201_created_min",
        "measurements_1_101_created_min",
        "measurements_1_101_created_max",
    ]
    constraints = catalog.tables["measurements_1_101"].constraints
    assert constraints["measurements_1_101_created_min"] == {
        "expression": "(created_at >= '2023-01-01 00:00:00'::timestamp)", "valid": True
    }
    assert constraints["measurements_1_101_created_max"] == {
        "expression": "(created_at <= '2023-01-05 12:30:00'::timestamp)", "valid": True
    }
    assert catalog.tables["measurements_201_301"].constraints == {}


def test_existing_constraints_are_not_widened(catalog, constraint_advisor_service):
    constraint_advisor_service.add_pruning_constraints("public", "measurements", "created", "created_at")
    catalog.insert("measurements", id=99, created_at=datetime(2022, 12, 1))

    assert constraint_advisor_service.add_pruning_constraints("public", "measurements", "created", "created_at") == []
    assert catalog.tables["measurements_1_101"].constraints["measurements_1_101_created_min"]["expression"] == (
        "(created_at >= '2023-01-01 00:00:00'::timestamp)"
    )


def test_max_constraint_added_once_partition_fills(catalog, constraint_advisor_service):
    constraint_advisor_service.add_pruning_constraints("public", "measurements", "created", "created_at")
    catalog.insert("measurements", id=200, created_at=datetime(2023, 1, 9))

    added = constraint_advisor_service.add_pruning_constraints("public", "measurements", "created", "created_at")

    assert added == ["measurements_101_201_created_max"]


def test_partition_without_upper_bound_is_skipped(catalog, constraint_advisor_service):
    catalog.add_partition("measurements", "measurements_301_maxvalue", 301, None)

    added = constraint_advisor_service.add_pruning_constraints("public", "measurements", "created", "created_at")

    assert "measurements_301_maxvalue_created_min" not in added
    assert "measurements_301_maxvalue_created_max" not in added
    assert catalog.tables["measurements_301_maxvalue"].constraints == {}


def test_constraint_names_are_truncated(constraint_advisor_service):
    added = constraint_advisor_service.add_pruning_constraints("public", "measurements", "m" * 50, "created_at")

    assert added
    assert all(len(name) == 63 for name in added)


def test_requires_integer_partition_key(constraint_advisor_service):
    catalog = constraint_advisor_service.catalog_repository
    catalog.create_partitioned("events", {"created_on": "date"}, key="created_on")

    with pytest.raises(UnsupportedColumnTypeError):
        constraint_advisor_service.add_pruning_constraints("public", "events", "created", "created_on")


def test_requires_temporal_target_column(constraint_advisor_service):
    with pytest.raises(UnsupportedColumnTypeError):
        constraint_advisor_service.add_pruning_constraints("public", "measurements", "value", "value")


def test_date_target_column(constraint_advisor_service):
    catalog = constraint_advisor_service.catalog_repository
    catalog.create_partitioned("visits", {"id": "int4", "visited_on": "date"}, key="id")
    catalog.add_partition("visits", "visits_1_11", 1, 11)
    catalog.insert("visits", id=3, visited_on=date(2023, 3, 1))

    assert constraint_advisor_service.add_pruning_constraints("public", "visits", "visited", "visited_on") == [
        "visits_1_11_visited_min"
    ]
    assert catalog.tables["visits_1_11"].constraints["visits_1_11_visited_min"]["expression"] == (
        "(visited_on >= '2023-03-01'::date)"
    )

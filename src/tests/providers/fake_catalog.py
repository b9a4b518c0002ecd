from contextlib import nullcontext
from datetime import date
from typing import Dict, List, Optional

from pgpartitioner.exceptions.lock_not_available_error import LockNotAvailableError
from pgpartitioner.models.detached_partition import DetachedPartition


class FakeTable:
    def __init__(self, name: str, columns: Dict[str, str], partition_key: Optional[str] = None, owner: str = "app_owner"):
        self.name = name
        self.columns = dict(columns)
        self.partition_key = partition_key
        self.owner = owner
        self.parent: Optional[str] = None
        self.lower = None
        self.upper = None
        self.is_default = False
        self.rows: List[dict] = []
        self.constraints: Dict[str, dict] = {}
        self.storage_options: List[str] = []


class FakeCatalog:
    """
    Catálogo em memória que simula as consultas do CatalogRepository e os comandos
    do DdlRepository usados pelos serviços de crescimento, detach/drop e constraints.
    """

    def __init__(self, today: date = date(2026, 10, 19), schema: str = "public"):
        self.today = today
        self.schema = schema
        self.tables: Dict[str, FakeTable] = {}
        self.indexes = set()
        self.lock_failures: Dict[str, int] = {}
        self.statements: List[tuple] = []
        self.lock_timeouts: List[int] = []

    # montagem do cenário

    def create_partitioned(self, name: str, columns: Dict[str, str], key: str, owner: str = "app_owner") -> FakeTable:
        table = FakeTable(name, columns, partition_key=key, owner=owner)
        self.tables[name] = table
        return table

    def create_table(self, name: str, columns: Dict[str, str], owner: str = "app_owner") -> FakeTable:
        table = FakeTable(name, columns, owner=owner)
        self.tables[name] = table
        return table

    def add_partition(self, parent: str, name: str, lower=None, upper=None, is_default: bool = False) -> FakeTable:
        table = FakeTable(name, self.tables[parent].columns, owner=self.tables[parent].owner)
        table.parent = parent
        table.lower, table.upper, table.is_default = lower, upper, is_default
        self.tables[name] = table
        return table

    def insert(self, table: str, **row):
        target = self.tables[table]
        if target.partition_key:
            value = row[target.partition_key]
            children = self._children(table)
            target = next(
                (c for c in children if not c.is_default and c.lower <= value < c.upper),
                next((c for c in children if c.is_default), None),
            )
            if target is None:
                raise ValueError(f"no partition of {table} for {value}")
        target.rows.append(row)

    def fail_locks(self, operation: str, times: int):
        self.lock_failures[operation] = times

    def children_of(self, table: str) -> List[FakeTable]:
        return sorted(self._children(table), key=lambda c: (c.is_default, c.lower))

    def _children(self, table: str) -> List[FakeTable]:
        return [t for t in self.tables.values() if t.parent == table]

    def _all_rows(self, table: str) -> List[dict]:
        rows = list(self.tables[table].rows)
        for child in self._children(table):
            rows += self._all_rows(child.name)
        return rows

    def _values(self, table: str, column: str) -> list:
        return [row[column] for row in self._all_rows(table) if row.get(column) is not None]

    def _lock(self, operation: str):
        remaining = self.lock_failures.get(operation, 0)
        if remaining:
            self.lock_failures[operation] = remaining - 1
            raise LockNotAvailableError(f"canceling statement due to lock timeout ({operation})")

    # CatalogRepository

    def is_range_partitioned(self, schema, table):
        return table in self.tables and self.tables[table].partition_key is not None

    def get_partition_key(self, schema, table):
        current = self.tables.get(table)
        if current is None or current.partition_key is None:
            return None
        return current.partition_key, current.columns[current.partition_key]

    def get_column_type(self, schema, table, column):
        current = self.tables.get(table)
        return current.columns.get(column) if current else None

    def list_partitions(self, schema, table, cast_type):
        return [
            {"name": c.name, "is_default": c.is_default, "lower": c.lower, "upper": c.upper}
            for c in sorted(self._children(table), key=lambda c: c.name)
        ]

    def list_children(self, schema, table):
        return sorted(c.name for c in self._children(table))

    def relation_exists(self, schema, name):
        return name in self.tables

    def index_exists(self, schema, name):
        return name in self.indexes

    def constraint_exists(self, schema, table, name):
        return table in self.tables and name in self.tables[table].constraints

    def get_parent(self, schema, name):
        current = self.tables.get(name)
        return f"{schema}.{current.parent}" if current and current.parent else None

    def is_attached(self, schema, name):
        return self.get_parent(schema, name) is not None

    def get_storage_options(self, schema, name):
        return list(self.tables[name].storage_options)

    def get_table_owner(self, schema, name):
        return self.tables[name].owner

    def current_date(self):
        return self.today

    def max_value_below(self, schema, table, column, limit):
        values = [v for v in self._values(table, column) if v < limit]
        return max(values) if values else 0

    def has_rows(self, schema, table):
        return bool(self._all_rows(table))

    def has_value(self, schema, table, column, value):
        return value in self._values(table, column)

    def min_value(self, schema, table, column):
        values = self._values(table, column)
        return min(values) if values else None

    def max_value(self, schema, table, column):
        values = self._values(table, column)
        return max(values) if values else None

    # DdlRepository

    def savepoint(self):
        return nullcontext()

    def set_lock_timeout(self, milliseconds):
        self.lock_timeouts.append(milliseconds)

    def create_table_like(self, schema, name, source, options="INCLUDING ALL", partition_column=None):
        self.statements.append(("create", name, source))
        table = FakeTable(name, self.tables[source].columns, partition_key=partition_column, owner="maintenance_user")
        self.tables[name] = table

    def add_check_constraint(self, schema, table, name, expression, not_valid=False):
        self._lock("add_check")
        self.statements.append(("add_check", table, name, expression))
        self.tables[table].constraints[name] = {"expression": expression, "valid": not not_valid}

    def mark_constraint_valid(self, schema, table, name):
        self.tables[table].constraints[name]["valid"] = True

    def drop_constraint(self, schema, table, name):
        self.statements.append(("drop_constraint", table, name))
        del self.tables[table].constraints[name]

    def set_storage_options(self, schema, table, options):
        self.tables[table].storage_options = list(options)

    def attach_partition(self, schema, parent, child, lower, upper):
        self._lock("attach")
        self.statements.append(("attach", parent, child, lower, upper))
        table = self.tables[child]
        table.parent, table.lower, table.upper = parent, lower, upper

    def detach_partition(self, schema, parent, child):
        self._lock("detach")
        self.statements.append(("detach", parent, child))
        self.tables[child].parent = None

    def set_owner(self, schema, table, owner):
        self.tables[table].owner = owner

    def drop_table(self, schema, table):
        self._lock("drop")
        self.statements.append(("drop", table))
        del self.tables[table]


class FakeDetachedPartitionRepository:
    """
    Registro de partições desanexadas em memória, com a mesma interface do DetachedPartitionRepository.
    """

    def __init__(self):
        self.records: Dict[tuple, DetachedPartition] = {}

    def get(self, schema_name, parent_relname, partition_relname):
        return self.records.get((schema_name, parent_relname, partition_relname))

    def register(self, schema_name, parent_relname, partition_relname, partition_range, detached_date):
        record = DetachedPartition(
            schema_name=schema_name,
            parent_relname=parent_relname,
            partition_relname=partition_relname,
            partition_range=list(partition_range),
            detached_date=detached_date,
        )
        self.records[(schema_name, parent_relname, partition_relname)] = record
        return record

    def remove(self, schema_name, parent_relname, partition_relname):
        return self.records.pop((schema_name, parent_relname, partition_relname), None) is not None

    def get_eligible_for_drop(self, schema_name, parent_relname, cutoff):
        return sorted(
            (
                r for r in self.records.values()
                if r.schema_name == schema_name and r.parent_relname == parent_relname and r.detached_date <= cutoff
            ),
            key=lambda r: (r.detached_date, r.partition_relname),
        )


def build_services(catalog: FakeCatalog, logger, registry: Optional[FakeDetachedPartitionRepository] = None):
    """
    Monta os serviços reais sobre o catálogo em memória. A espera entre tentativas de lock é desligada.
    """
    from types import SimpleNamespace
    from unittest.mock import MagicMock

    from pgpartitioner.service.constraint_advisor_service import ConstraintAdvisorService
    from pgpartitioner.service.detach_service import DetachService
    from pgpartitioner.service.free_partition_service import FreePartitionService
    from pgpartitioner.service.lock_retry import LockRetry
    from pgpartitioner.service.partition_creator_service import PartitionCreatorService
    from pgpartitioner.service.propagation_service import PropagationService
    from pgpartitioner.service.range_group_service import RangeGroupService
    from pgpartitioner.service.statement_builder import StatementBuilder
    from pgpartitioner.service.type_resolver_service import TypeResolverService

    registry = registry or FakeDetachedPartitionRepository()
    statement_builder = StatementBuilder()
    lock_retry = LockRetry(logger, catalog)
    lock_retry.sleep = MagicMock()
    type_resolver = TypeResolverService(logger, catalog)
    range_group = RangeGroupService(logger, catalog, type_resolver)
    free_partition = FreePartitionService(logger, catalog, type_resolver, range_group)
    return SimpleNamespace(
        registry=registry,
        statement_builder=statement_builder,
        lock_retry=lock_retry,
        type_resolver=type_resolver,
        range_group=range_group,
        free_partition=free_partition,
        partition_creator=PartitionCreatorService(
            logger, catalog, catalog, statement_builder, type_resolver, range_group, free_partition, lock_retry
        ),
        propagation=PropagationService(logger, catalog, statement_builder),
        constraint_advisor=ConstraintAdvisorService(
            logger, catalog, catalog, statement_builder, type_resolver, range_group, lock_retry
        ),
        detach=DetachService(logger, catalog, catalog, registry, type_resolver, range_group, lock_retry),
    )

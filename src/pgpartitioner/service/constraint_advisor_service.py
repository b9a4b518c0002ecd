from logging import Logger
from typing import List
from injector import inject

from pgpartitioner.config.constants import LOCK_TIMEOUT_MS, MAX_IDENTIFIER_LENGTH
from pgpartitioner.exceptions.unsupported_column_type_error import UnsupportedColumnTypeError
from pgpartitioner.models.column_type import ColumnTypeFamily
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.repositories.ddl_repository import DdlRepository
from pgpartitioner.service.lock_retry import LockRetry
from pgpartitioner.service.range_group_service import RangeGroupService
from pgpartitioner.service.statement_builder import StatementBuilder
from pgpartitioner.service.type_resolver_service import TypeResolverService


class ConstraintAdvisorService:
    """
    Adiciona CHECKs de min/max em uma coluna date/timestamp de tabelas particionadas
    por chave inteira, para que o planner consiga descartar partições filtrando pela data.
    Assume dados append-only: as constraints nunca são alargadas depois de criadas.
    """

    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository, ddl_repository: DdlRepository,
                 statement_builder: StatementBuilder, type_resolver_service: TypeResolverService,
                 range_group_service: RangeGroupService, lock_retry: LockRetry):
        self.logger = logger
        self.catalog_repository = catalog_repository
        self.ddl_repository = ddl_repository
        self.statement_builder = statement_builder
        self.type_resolver_service = type_resolver_service
        self.range_group_service = range_group_service
        self.lock_retry = lock_retry

    def add_pruning_constraints(self, schema: str, table: str, marker: str, column: str) -> List[str]:
        """
        :return: nomes das constraints criadas.
        :raises UnsupportedColumnTypeError: chave não inteira ou coluna alvo não date/timestamp.
        """
        key = self.type_resolver_service.resolve(schema, table)
        if key.family != ColumnTypeFamily.INTEGER:
            raise UnsupportedColumnTypeError(
                f"A chave de particionamento de {schema}.{table} deve ser inteira, encontrado {key.column_type}."
            )
        target = self.type_resolver_service.resolve_column(schema, table, column)
        if not target.family.is_temporal:
            raise UnsupportedColumnTypeError(
                f"A coluna {column} de {schema}.{table} deve ser date ou timestamp, encontrado {target.column_type}."
            )

        partitioned = self.range_group_service.load(schema, table, key)
        self.ddl_repository.set_lock_timeout(LOCK_TIMEOUT_MS)

        added = []
        for partition in sorted((p for p in partitioned.partitions() if p.is_selectable), key=lambda p: p.name):
            min_name = f"{partition.name}_{marker}_min"[:MAX_IDENTIFIER_LENGTH]
            if (self.catalog_repository.has_rows(schema, partition.name)
                    and not self.catalog_repository.constraint_exists(schema, partition.name, min_name)):
                value = self.catalog_repository.min_value(schema, partition.name, column)
                if value is not None:
                    self._add_constraint(schema, partition.name, min_name, self.statement_builder.bound_check(column, ">=", value, target.cast_type))
                    added.append(min_name)

            max_name = f"{partition.name}_{marker}_max"[:MAX_IDENTIFIER_LENGTH]
            if (not self.catalog_repository.constraint_exists(schema, partition.name, max_name)
                    and self.catalog_repository.has_value(schema, partition.name, key.column_name, partition.upper - 1)):
                value = self.catalog_repository.max_value(schema, partition.name, column)
                if value is not None:
                    self._add_constraint(schema, partition.name, max_name, self.statement_builder.bound_check(column, "<=", value, target.cast_type))
                    added.append(max_name)

        self.logger.info(f"[{self.__class__.__name__}] Added {len(added)} pruning constraints on [{schema}.{table}]")
        return added

    def _add_constraint(self, schema: str, table: str, name: str, expression: str):
        """
        NOT VALID seguido da marcação direta no catálogo: o limite acabou de ser lido da própria partição.
        """
        self.logger.debug(f"[{self.__class__.__name__}] Adding [{name}] {expression} on [{schema}.{table}]")

        def add():
            self.ddl_repository.add_check_constraint(schema, table, name, expression, not_valid=True)
            self.ddl_repository.mark_constraint_valid(schema, table, name)

        self.lock_retry.run(add, f"constraint {name} on {schema}.{table}")

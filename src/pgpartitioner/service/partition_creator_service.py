from logging import Logger
from typing import Optional
from injector import inject

from pgpartitioner.config.constants import LOCK_TIMEOUT_MS, TEMPORARY_CONSTRAINT_NAME
from pgpartitioner.exceptions.lock_timeout_exhausted_error import LockTimeoutExhaustedError
from pgpartitioner.exceptions.partition_maintenance_error import PartitionMaintenanceError
from pgpartitioner.models.dto.partition_dto import PartitionKeyDTO
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.repositories.ddl_repository import DdlRepository
from pgpartitioner.service.boundaries import Bound, next_bounds, partition_name
from pgpartitioner.service.free_partition_service import FreePartitionService
from pgpartitioner.service.lock_retry import LockRetry
from pgpartitioner.service.range_group_service import RangeGroupService
from pgpartitioner.service.statement_builder import StatementBuilder
from pgpartitioner.service.type_resolver_service import TypeResolverService


class PartitionCreatorService:
    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository, ddl_repository: DdlRepository,
                 statement_builder: StatementBuilder, type_resolver_service: TypeResolverService,
                 range_group_service: RangeGroupService, free_partition_service: FreePartitionService,
                 lock_retry: LockRetry):
        self.logger = logger
        self.catalog_repository = catalog_repository
        self.ddl_repository = ddl_repository
        self.statement_builder = statement_builder
        self.type_resolver_service = type_resolver_service
        self.range_group_service = range_group_service
        self.free_partition_service = free_partition_service
        self.lock_retry = lock_retry

    def ensure_free_partitions(self, schema: str, table: str, min_free: int) -> bool:
        """
        Cria partições até cada grupo de range ter ``min_free`` partições livres.

        :return: False quando algum grupo não atingiu o mínimo por falta de lock.
        """
        key = self.type_resolver_service.resolve(schema, table)
        partitioned = self.range_group_service.load(schema, table, key)

        success = True
        for group in partitioned.active_groups():
            if not self._grow_group(schema, table, key, group.key, min_free):
                self.logger.error(
                    f"[{self.__class__.__name__}] Range group [{group.key}] of [{schema}.{table}] did not reach {min_free} free partitions"
                )
                success = False
        return success

    def _count(self, schema: str, table: str, key: PartitionKeyDTO, range_key: Optional[str]) -> int:
        return self.free_partition_service.count_free_partitions(
            schema, table, key.column_name, key.column_type, range_key
        )

    def _grow_group(self, schema: str, table: str, key: PartitionKeyDTO, range_key: Optional[str], min_free: int) -> bool:
        free = self._count(schema, table, key, range_key)
        self.logger.debug(f"[{self.__class__.__name__}] [{schema}.{table}] group [{range_key}]: {free} free, {min_free} wanted")

        while free < min_free:
            group = self.range_group_service.load(schema, table, key).group(range_key)
            last = group.last() if group else None
            if last is None:
                raise PartitionMaintenanceError(
                    f"Grupo [{range_key}] de {schema}.{table} não possui partição para servir de modelo."
                )

            lower, upper = next_bounds(key.family, last.lower, last.upper)
            name = partition_name(table, range_key, lower, upper)
            if not self.create_partition(schema, table, key, last.name, name, lower, upper):
                return False
            free = self._count(schema, table, key, range_key)
        return True

    def create_partition(self, schema: str, table: str, key: PartitionKeyDTO, template: str, name: str,
                         lower: Bound, upper: Bound) -> bool:
        """
        Cria ``name`` como cópia de ``template`` e anexa ao pai para [lower, upper).
        A CHECK temporária com os mesmos limites evita a varredura no ATTACH.
        Se o lock não for obtido a tabela nova é removida e retorna False.
        """
        self.logger.info(f"[{self.__class__.__name__}] Creating partition [{schema}.{name}] for [{lower}, {upper})")
        self.ddl_repository.set_lock_timeout(LOCK_TIMEOUT_MS)
        self.ddl_repository.create_table_like(schema, name, template)
        self.ddl_repository.add_check_constraint(
            schema, name, TEMPORARY_CONSTRAINT_NAME,
            self.statement_builder.range_check(key.column_name, lower, upper, key.cast_type),
        )
        self.ddl_repository.set_storage_options(schema, name, self.catalog_repository.get_storage_options(schema, template))

        try:
            self.lock_retry.run(
                lambda: self.ddl_repository.attach_partition(schema, table, name, lower, upper),
                f"attach of {schema}.{name}",
            )
        except LockTimeoutExhaustedError as e:
            self.logger.error(f"[{self.__class__.__name__}] {e.message}; dropping [{schema}.{name}]")
            self.ddl_repository.drop_table(schema, name)
            return False

        owner = self.catalog_repository.get_table_owner(schema, table)
        if owner:
            self.ddl_repository.set_owner(schema, name, owner)
        self.ddl_repository.drop_constraint(schema, name, TEMPORARY_CONSTRAINT_NAME)
        self.logger.info(f"[{self.__class__.__name__}] Partition [{schema}.{name}] attached to [{schema}.{table}]")
        return True

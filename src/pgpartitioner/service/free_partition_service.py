from logging import Logger
from typing import Optional
from injector import inject

from pgpartitioner.exceptions.unsupported_column_type_error import UnsupportedColumnTypeError
from pgpartitioner.models.column_type import ColumnTypeFamily
from pgpartitioner.models.dto.partition_dto import PartitionedTableDTO, RangeGroupDTO
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.service.boundaries import to_date
from pgpartitioner.service.range_group_service import RangeGroupService
from pgpartitioner.service.type_resolver_service import TypeResolverService


class FreePartitionService:
    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository,
                 type_resolver_service: TypeResolverService, range_group_service: RangeGroupService):
        self.logger = logger
        self.catalog_repository = catalog_repository
        self.type_resolver_service = type_resolver_service
        self.range_group_service = range_group_service

    def count_free_partitions(self, schema: str, table: str, column: Optional[str] = None,
                              column_type: Optional[str] = None, range_key: Optional[str] = None) -> int:
        """
        Conta as partições livres, isto é, inteiramente à frente dos dados gravados.
        Com vários grupos de range e sem ``range_key`` retorna o menor valor entre os grupos.
        """
        key = self.type_resolver_service.resolve(schema, table, column, column_type)
        partitioned = self.range_group_service.load(schema, table, key)

        if range_key is not None or partitioned.has_range_groups:
            if key.family != ColumnTypeFamily.INTEGER:
                raise UnsupportedColumnTypeError(
                    f"Grupos de range exigem coluna inteira; {schema}.{table}.{key.column_name} é {key.column_type}."
                )

        if range_key is not None:
            group = partitioned.group(range_key) or RangeGroupDTO(key=range_key)
            return self._count_group(partitioned, group)

        counts = {group.key: self._count_group(partitioned, group) for group in partitioned.active_groups()}
        self.logger.debug(f"[{self.__class__.__name__}] Free partitions of [{schema}.{table}] per group: {counts}")
        return min(counts.values())

    def _count_group(self, partitioned: PartitionedTableDTO, group: RangeGroupDTO) -> int:
        partitions = group.selectable()
        if not partitions:
            return 0

        if partitioned.key.family == ColumnTypeFamily.INTEGER:
            group_upper = max(p.upper for p in group.bounded())
            current_max = self.catalog_repository.max_value_below(
                partitioned.schema_name, partitioned.table_name, partitioned.key.column_name, group_upper
            )
            free = sum(1 for p in partitions if p.lower > current_max)
            self.logger.debug(f"[{self.__class__.__name__}] Group [{group.key}]: max value [{current_max}], free [{free}]")
            return free

        today = self.catalog_repository.current_date()
        free = sum(1 for p in partitions if to_date(p.lower) > today)
        self.logger.debug(f"[{self.__class__.__name__}] Group [{group.key}]: current date [{today}], free [{free}]")
        return free

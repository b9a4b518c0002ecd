import re
from logging import Logger
from typing import Dict, List, Optional
from injector import inject

from pgpartitioner.models.dto.partition_dto import PartitionDTO, PartitionKeyDTO, PartitionedTableDTO, RangeGroupDTO
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.service.type_resolver_service import TypeResolverService


class RangeGroupService:
    """
    Monta a visão das partições de uma tabela a partir do catálogo.
    O grupo de range (``<tabela>_r<N>_...``) é extraído do nome uma única vez aqui
    e segue como atributo de cada PartitionDTO.
    """

    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository, type_resolver_service: TypeResolverService):
        self.logger = logger
        self.catalog_repository = catalog_repository
        self.type_resolver_service = type_resolver_service

    def range_key_of(self, table: str, partition_name: str) -> Optional[str]:
        match = re.match(rf"^{re.escape(table)}_(r\d+)_", partition_name)
        return match.group(1) if match else None

    def load(self, schema: str, table: str, key: Optional[PartitionKeyDTO] = None) -> PartitionedTableDTO:
        key = key or self.type_resolver_service.resolve(schema, table)
        rows = self.catalog_repository.list_partitions(schema, table, key.cast_type)

        default_partition = None
        grouped: Dict[Optional[str], List[PartitionDTO]] = {}
        for row in rows:
            partition = PartitionDTO(
                name=row["name"],
                lower=row["lower"],
                upper=row["upper"],
                is_default=bool(row["is_default"]),
                range_key=self.range_key_of(table, row["name"]),
            )
            if partition.is_default:
                default_partition = partition
                continue
            grouped.setdefault(partition.range_key, []).append(partition)

        groups = [RangeGroupDTO(key=group_key, partitions=partitions) for group_key, partitions in grouped.items()]
        for group in groups:
            if not group.is_contiguous():
                self.logger.warning(f"[{self.__class__.__name__}] Range group [{group.key}] of [{schema}.{table}] is not contiguous")

        self.logger.debug(
            f"[{self.__class__.__name__}] Loaded [{schema}.{table}]: {len(rows)} partitions in groups {[g.key for g in groups]}"
        )
        return PartitionedTableDTO(
            schema_name=schema,
            table_name=table,
            key=key,
            groups=groups,
            default_partition=default_partition,
        )

from logging import Logger
from typing import Optional
from injector import inject

from pgpartitioner.exceptions.not_partitioned_error import NotPartitionedError
from pgpartitioner.exceptions.unsupported_column_type_error import UnsupportedColumnTypeError
from pgpartitioner.models.column_type import family_of
from pgpartitioner.models.dto.partition_dto import PartitionKeyDTO
from pgpartitioner.repositories.catalog_repository import CatalogRepository


class TypeResolverService:
    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository):
        self.logger = logger
        self.catalog_repository = catalog_repository

    def resolve(self, schema: str, table: str, column: Optional[str] = None, column_type: Optional[str] = None) -> PartitionKeyDTO:
        """
        Resolve a chave de particionamento de uma tabela particionada por range.
        Coluna e tipo não informados são buscados no catálogo.

        :raises NotPartitionedError: a tabela não tem chave de particionamento por range.
        :raises UnsupportedColumnTypeError: o tipo não é inteiro, date ou timestamp.
        """
        if not self.catalog_repository.is_range_partitioned(schema, table):
            raise NotPartitionedError(f"Tabela {schema}.{table} não é particionada por range.")

        if not column or not column_type:
            key = self.catalog_repository.get_partition_key(schema, table)
            if not key:
                raise NotPartitionedError(f"Tabela {schema}.{table} não possui chave de particionamento.")
            column = column or key[0]
            if not column_type:
                column_type = key[1] if column == key[0] else self.catalog_repository.get_column_type(schema, table, column)

        family = family_of(column_type)
        if family is None:
            raise UnsupportedColumnTypeError(f"Tipo '{column_type}' da coluna {column} não é suportado.")

        self.logger.debug(f"[{self.__class__.__name__}] Partition key of [{schema}.{table}]: [{column}] [{column_type}] [{family.value}]")
        return PartitionKeyDTO(column_name=column, column_type=column_type.strip().lower(), family=family)

    def resolve_column(self, schema: str, table: str, column: str) -> PartitionKeyDTO:
        """
        Resolve qualquer coluna da tabela, particionada ou não.
        """
        column_type = self.catalog_repository.get_column_type(schema, table, column)
        family = family_of(column_type)
        if family is None:
            raise UnsupportedColumnTypeError(
                f"Coluna {schema}.{table}.{column} inexistente ou com tipo não suportado: {column_type}."
            )
        return PartitionKeyDTO(column_name=column, column_type=column_type, family=family)

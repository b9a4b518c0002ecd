from logging import Logger
from injector import inject

from pgpartitioner.config.constants import LOCK_TIMEOUT_MS
from pgpartitioner.exceptions.lock_timeout_exhausted_error import LockTimeoutExhaustedError
from pgpartitioner.exceptions.not_a_partition_error import NotAPartitionError
from pgpartitioner.exceptions.not_oldest_partition_error import NotOldestPartitionError
from pgpartitioner.exceptions.partition_still_attached_error import PartitionStillAttachedError
from pgpartitioner.exceptions.unregistered_partition_error import UnregisteredPartitionError
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.repositories.ddl_repository import DdlRepository
from pgpartitioner.repositories.detached_partition_repository import DetachedPartitionRepository
from pgpartitioner.service.lock_retry import LockRetry
from pgpartitioner.service.range_group_service import RangeGroupService
from pgpartitioner.service.type_resolver_service import TypeResolverService


class DetachService:
    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository, ddl_repository: DdlRepository,
                 detached_partition_repository: DetachedPartitionRepository,
                 type_resolver_service: TypeResolverService, range_group_service: RangeGroupService,
                 lock_retry: LockRetry):
        self.logger = logger
        self.catalog_repository = catalog_repository
        self.ddl_repository = ddl_repository
        self.detached_partition_repository = detached_partition_repository
        self.type_resolver_service = type_resolver_service
        self.range_group_service = range_group_service
        self.lock_retry = lock_retry

    def detach_partition(self, schema: str, table: str, partition_name: str, detach_oldest_only: bool = True) -> bool:
        """
        Desanexa a partição e registra seus limites em ``detached_partitions``.
        No modo padrão só a partição mais antiga do grupo pode ser desanexada.

        :return: False quando o lock não foi obtido; nada é alterado nesse caso.
        """
        key = self.type_resolver_service.resolve(schema, table)
        partitioned = self.range_group_service.load(schema, table, key)
        partition = partitioned.find(partition_name)

        if detach_oldest_only:
            group = partitioned.group(partition.range_key) if partition else None
            oldest = group.oldest() if group else None
            if partition is None or oldest is None or oldest.name != partition_name:
                raise NotOldestPartitionError(
                    f"{schema}.{partition_name} não é a partição mais antiga de {schema}.{table}"
                    + (f" (mais antiga: {oldest.name})." if oldest else ".")
                )
        elif partition is None:
            raise NotAPartitionError(f"{schema}.{partition_name} não é partição de {schema}.{table}.")

        self.ddl_repository.set_lock_timeout(LOCK_TIMEOUT_MS)
        try:
            self.lock_retry.run(
                lambda: self.ddl_repository.detach_partition(schema, table, partition_name),
                f"detach of {schema}.{partition_name}",
            )
        except LockTimeoutExhaustedError as e:
            self.logger.error(f"[{self.__class__.__name__}] {e.message}")
            return False

        self.detached_partition_repository.register(
            schema, table, partition_name,
            [str(partition.lower), str(partition.upper)],
            self.catalog_repository.current_date(),
        )
        self.logger.info(f"[{self.__class__.__name__}] Partition [{schema}.{partition_name}] detached from [{schema}.{table}]")
        return True

    def drop_detached_partition(self, schema: str, table: str, partition_name: str) -> bool:
        """
        Remove uma partição desanexada anteriormente e apaga o registro correspondente.

        :raises UnregisteredPartitionError: não há registro de detach ou a tabela não existe.
        :raises PartitionStillAttachedError: a tabela voltou a ser filha de alguma tabela.
        """
        record = self.detached_partition_repository.get(schema, table, partition_name)
        if record is None or not self.catalog_repository.relation_exists(schema, partition_name):
            raise UnregisteredPartitionError(
                f"{schema}.{partition_name} não foi desanexada de {schema}.{table} ou não existe."
            )
        if self.catalog_repository.is_attached(schema, partition_name):
            raise PartitionStillAttachedError(
                f"{schema}.{partition_name} está anexada a {self.catalog_repository.get_parent(schema, partition_name)}."
            )

        self.ddl_repository.set_lock_timeout(LOCK_TIMEOUT_MS)
        try:
            self.lock_retry.run(
                lambda: self.ddl_repository.drop_table(schema, partition_name),
                f"drop of {schema}.{partition_name}",
            )
        except LockTimeoutExhaustedError as e:
            self.logger.error(f"[{self.__class__.__name__}] {e.message}")
            return False

        self.detached_partition_repository.remove(schema, table, partition_name)
        self.logger.info(f"[{self.__class__.__name__}] Detached partition [{schema}.{partition_name}] dropped")
        return True

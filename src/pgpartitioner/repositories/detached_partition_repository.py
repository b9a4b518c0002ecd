from datetime import date
from logging import Logger
from typing import List, Optional, Sequence
from injector import inject
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.repositories.generic_repository import GenericRepository
from pgpartitioner.models.detached_partition import DetachedPartition

class DetachedPartitionRepository(GenericRepository[DetachedPartition]):
    @inject
    def __init__(self, session_provider: SessionProvider, logger: Logger):
        super().__init__(session_provider.get_session(), DetachedPartition, logger)
        self.session = session_provider.get_session()

    def get(self, schema_name: str, parent_relname: str, partition_relname: str) -> Optional[DetachedPartition]:
        return self.get_by_id((schema_name, parent_relname, partition_relname))

    def register(self, schema_name: str, parent_relname: str, partition_relname: str,
                 partition_range: Sequence[str], detached_date: date) -> DetachedPartition:
        self.logger.info(f"[{self.__class__.__name__}] Registering detached partition [{schema_name}.{partition_relname}] of [{parent_relname}]")
        return self.save(DetachedPartition(
            schema_name=schema_name,
            parent_relname=parent_relname,
            partition_relname=partition_relname,
            partition_range=list(partition_range),
            detached_date=detached_date,
        ))

    def remove(self, schema_name: str, parent_relname: str, partition_relname: str) -> bool:
        return self.hard_delete((schema_name, parent_relname, partition_relname))

    def get_eligible_for_drop(self, schema_name: str, parent_relname: str, cutoff: date) -> List[DetachedPartition]:
        self.logger.debug(f"[{self.__class__.__name__}] Getting partitions of [{schema_name}.{parent_relname}] detached until [{cutoff}]")
        return (
            self.session.query(DetachedPartition)
            .filter(
                DetachedPartition.schema_name == schema_name,
                DetachedPartition.parent_relname == parent_relname,
                DetachedPartition.detached_date <= cutoff,
            )
            .order_by(DetachedPartition.detached_date, DetachedPartition.partition_relname)
            .all()
        )

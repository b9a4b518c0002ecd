from logging import Logger
from typing import Optional
from injector import inject
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.repositories.generic_repository import GenericRepository
from pgpartitioner.models.partition_configuration import PartitionConfiguration

class PartitionConfigurationRepository(GenericRepository[PartitionConfiguration]):
    @inject
    def __init__(self, session_provider: SessionProvider, logger: Logger):
        super().__init__(session_provider.get_session(), PartitionConfiguration, logger)
        self.session = session_provider.get_session()

    def get_by_table(self, schema_name: str, table_name: str) -> Optional[PartitionConfiguration]:
        return self.get_by_id((schema_name, table_name))

    def get_ordered(self):
        self.logger.debug(f"[{self.__class__.__name__}] Getting partition configurations")
        return (
            self.session.query(PartitionConfiguration)
            .order_by(PartitionConfiguration.schema_name, PartitionConfiguration.table_name)
            .all()
        )

import logging
from injector import Binder, Module, singleton
from pgpartitioner.config.logger import logger
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.repositories.ddl_repository import DdlRepository
from pgpartitioner.repositories.detached_partition_repository import DetachedPartitionRepository
from pgpartitioner.repositories.partition_configuration_repository import PartitionConfigurationRepository
from pgpartitioner.service.constraint_advisor_service import ConstraintAdvisorService
from pgpartitioner.service.detach_service import DetachService
from pgpartitioner.service.free_partition_service import FreePartitionService
from pgpartitioner.service.lock_retry import LockRetry
from pgpartitioner.service.maintenance_service import MaintenanceService
from pgpartitioner.service.partition_creator_service import PartitionCreatorService
from pgpartitioner.service.propagation_service import PropagationService
from pgpartitioner.service.range_group_service import RangeGroupService
from pgpartitioner.service.statement_builder import StatementBuilder
from pgpartitioner.service.structure_copy_service import StructureCopyService
from pgpartitioner.service.table_converter_service import TableConverterService
from pgpartitioner.service.type_resolver_service import TypeResolverService


class AppModule(Module):
    """Configuração das dependências para o Injector."""
    def configure(self, binder: Binder) -> None:
        binder.bind(SessionProvider, to=SessionProvider, scope=singleton)
        binder.bind(StatementBuilder, to=StatementBuilder, scope=singleton)
        binder.bind(CatalogRepository, to=CatalogRepository, scope=singleton)
        binder.bind(DdlRepository, to=DdlRepository, scope=singleton)
        binder.bind(PartitionConfigurationRepository, to=PartitionConfigurationRepository, scope=singleton)
        binder.bind(DetachedPartitionRepository, to=DetachedPartitionRepository, scope=singleton)
        binder.bind(LockRetry, to=LockRetry, scope=singleton)
        binder.bind(TypeResolverService, to=TypeResolverService, scope=singleton)
        binder.bind(RangeGroupService, to=RangeGroupService, scope=singleton)
        binder.bind(FreePartitionService, to=FreePartitionService, scope=singleton)
        binder.bind(PartitionCreatorService, to=PartitionCreatorService, scope=singleton)
        binder.bind(StructureCopyService, to=StructureCopyService, scope=singleton)
        binder.bind(TableConverterService, to=TableConverterService, scope=singleton)
        binder.bind(PropagationService, to=PropagationService, scope=singleton)
        binder.bind(ConstraintAdvisorService, to=ConstraintAdvisorService, scope=singleton)
        binder.bind(DetachService, to=DetachService, scope=singleton)
        binder.bind(MaintenanceService, to=MaintenanceService, scope=singleton)
        binder.bind(logging.Logger, to=logger)

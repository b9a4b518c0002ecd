from logging import Logger
from typing import Callable, List, Optional
from injector import inject
from pydantic import ValidationError

from pgpartitioner.config.constants import FREE_PARTITION_MARGIN, MIN_DROP_COOLDOWN, MIN_FREE_PARTITIONS
from pgpartitioner.models.dto.maintenance_configuration_dto import MaintenanceConfigurationDTO
from pgpartitioner.models.dto.maintenance_report_dto import MaintenanceReportDTO
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.repositories.detached_partition_repository import DetachedPartitionRepository
from pgpartitioner.repositories.partition_configuration_repository import PartitionConfigurationRepository
from pgpartitioner.service.boundaries import parse_interval, to_date
from pgpartitioner.service.constraint_advisor_service import ConstraintAdvisorService
from pgpartitioner.service.detach_service import DetachService
from pgpartitioner.service.partition_creator_service import PartitionCreatorService
from pgpartitioner.service.range_group_service import RangeGroupService
from pgpartitioner.service.type_resolver_service import TypeResolverService


class MaintenanceService:
    """
    Executa a manutenção declarada em ``partition_configuration`` para todas as
    tabelas com ``auto-maintenance``, em quatro passagens fixas:
    crescimento, constraints de pruning, detach e drop.

    Cada tabela/passo roda na própria transação. Uma falha é desfeita, registrada
    no relatório e a manutenção segue para as demais tabelas.
    """

    @inject
    def __init__(self, logger: Logger, session_provider: SessionProvider,
                 partition_configuration_repository: PartitionConfigurationRepository,
                 detached_partition_repository: DetachedPartitionRepository,
                 catalog_repository: CatalogRepository, type_resolver_service: TypeResolverService,
                 range_group_service: RangeGroupService, partition_creator_service: PartitionCreatorService,
                 constraint_advisor_service: ConstraintAdvisorService, detach_service: DetachService):
        self.logger = logger
        self.session_provider = session_provider
        self.partition_configuration_repository = partition_configuration_repository
        self.detached_partition_repository = detached_partition_repository
        self.catalog_repository = catalog_repository
        self.type_resolver_service = type_resolver_service
        self.range_group_service = range_group_service
        self.partition_creator_service = partition_creator_service
        self.constraint_advisor_service = constraint_advisor_service
        self.detach_service = detach_service

    @staticmethod
    def growth_target(nr: Optional[int]) -> int:
        if nr is None:
            return MIN_FREE_PARTITIONS
        return max(nr + FREE_PARTITION_MARGIN, MIN_FREE_PARTITIONS)

    def load_configurations(self, report: MaintenanceReportDTO, schema_name: Optional[str] = None,
                            table_name: Optional[str] = None) -> List[MaintenanceConfigurationDTO]:
        """
        Configurações a manter. Sem tabela informada, todas as linhas com ``auto-maintenance``;
        com ``schema_name`` e ``table_name``, só a linha da tabela, mesmo sem ``auto-maintenance``.
        """
        if table_name is not None:
            row = self.partition_configuration_repository.get_by_table(schema_name, table_name)
            if row is None:
                report.add_failure(schema_name, table_name, "configuration",
                                   LookupError(f"Tabela {schema_name}.{table_name} não tem configuração de manutenção."))
                return []
            rows = [row]
        else:
            rows = self.partition_configuration_repository.get_ordered()

        configurations = []
        for row in rows:
            try:
                configurations.append(MaintenanceConfigurationDTO.from_model(row))
            except ValidationError as e:
                self.logger.error(f"[{self.__class__.__name__}] Invalid configuration for [{row.schema_name}.{row.table_name}]: {e}")
                report.add_failure(row.schema_name, row.table_name, "configuration", e)
        if table_name is not None:
            return configurations
        return [c for c in configurations if c.auto_maintenance]

    def run_maintenance(self, schema_name: Optional[str] = None, table_name: Optional[str] = None) -> MaintenanceReportDTO:
        report = MaintenanceReportDTO()
        configurations = self.load_configurations(report, schema_name, table_name)
        self.session_provider.commit()
        self.logger.info(f"[{self.__class__.__name__}] Running maintenance for {len(configurations)} tables")

        for configuration in configurations:
            self._run_step(report, configuration, "grow", lambda: self._grow(configuration, report))
        for configuration in configurations:
            if configuration.date_constraint:
                self._run_step(report, configuration, "constrain", lambda: self._constrain(configuration, report))
        for configuration in configurations:
            if configuration.detach:
                self._run_step(report, configuration, "detach", lambda: self._detach(configuration, report))
        for configuration in configurations:
            if configuration.drop_detached:
                self._run_step(report, configuration, "drop", lambda: self._drop(configuration, report))

        self.logger.info(
            f"[{self.__class__.__name__}] Maintenance finished: grown={report.grown} constrained={report.constrained} "
            f"detached={report.detached} dropped={report.dropped} failures={len(report.failures)}"
        )
        return report

    def _run_step(self, report: MaintenanceReportDTO, configuration: MaintenanceConfigurationDTO, step: str,
                  action: Callable[[], bool]):
        name = f"{configuration.schema_name}.{configuration.table_name}"
        try:
            completed = action()
            self.session_provider.commit()
            if completed is False:
                report.add_failure(configuration.schema_name, configuration.table_name, step,
                                   RuntimeError("lock not acquired, step incomplete"))
        except Exception as e:
            self.session_provider.rollback()
            self.logger.exception(f"[{self.__class__.__name__}] Step [{step}] failed for [{name}]: {e}")
            report.add_failure(configuration.schema_name, configuration.table_name, step, e)

    def _grow(self, configuration: MaintenanceConfigurationDTO, report: MaintenanceReportDTO) -> bool:
        schema, table = configuration.schema_name, configuration.table_name
        if not self.catalog_repository.is_range_partitioned(schema, table):
            self.logger.info(f"[{self.__class__.__name__}] [{schema}.{table}] is not range partitioned, skipping growth")
            return True
        target = self.growth_target(configuration.nr)
        completed = self.partition_creator_service.ensure_free_partitions(schema, table, target)
        if completed:
            report.grown.append(f"{schema}.{table}")
        return completed

    def _constrain(self, configuration: MaintenanceConfigurationDTO, report: MaintenanceReportDTO) -> bool:
        added = self.constraint_advisor_service.add_pruning_constraints(
            configuration.schema_name, configuration.table_name,
            configuration.date_constraint.marker, configuration.date_constraint.constraint_column,
        )
        report.constrained.extend(added)
        return True

    def _detach(self, configuration: MaintenanceConfigurationDTO, report: MaintenanceReportDTO) -> bool:
        schema, table = configuration.schema_name, configuration.table_name
        key = self.type_resolver_service.resolve(schema, table)
        if not key.family.is_temporal:
            self.logger.info(f"[{self.__class__.__name__}] [{schema}.{table}] is not date partitioned, skipping detach")
            return True

        cutoff = self.catalog_repository.current_date() - parse_interval(configuration.detach)
        partitioned = self.range_group_service.load(schema, table, key)
        eligible = sorted(
            (p for p in partitioned.partitions() if p.is_selectable and to_date(p.upper) < cutoff),
            key=lambda p: p.upper,
        )
        self.logger.debug(f"[{self.__class__.__name__}] Partitions of [{schema}.{table}] older than [{cutoff}]: {[p.name for p in eligible]}")

        for partition in eligible:
            if not self.detach_service.detach_partition(schema, table, partition.name):
                return False
            self.session_provider.commit()
            report.detached.append(f"{schema}.{partition.name}")
        return True

    def _drop(self, configuration: MaintenanceConfigurationDTO, report: MaintenanceReportDTO) -> bool:
        schema, table = configuration.schema_name, configuration.table_name
        today = self.catalog_repository.current_date()
        cutoff = min(today - parse_interval(configuration.drop_detached), today - parse_interval(MIN_DROP_COOLDOWN))

        for record in self.detached_partition_repository.get_eligible_for_drop(schema, table, cutoff):
            if not self.detach_service.drop_detached_partition(schema, table, record.partition_relname):
                return False
            self.session_provider.commit()
            report.dropped.append(f"{schema}.{record.partition_relname}")
        return True

from logging import Logger
from typing import Callable, List
from injector import inject

from pgpartitioner.config.constants import (
    LOCK_TIMEOUT_MS,
    ORIGINAL_DATA_SUFFIX,
    OVERFLOW_SUFFIX,
    TEMPLATE_SUFFIX,
)
from pgpartitioner.exceptions.lock_timeout_exhausted_error import LockTimeoutExhaustedError
from pgpartitioner.exceptions.referenced_table_conflict_error import ReferencedTableConflictError
from pgpartitioner.models.column_type import PartitionStrategy
from pgpartitioner.models.dto.catalog_dto import ForeignKeyDTO, TriggerDTO
from pgpartitioner.models.dto.convert_table_dto import ConvertTableDTO
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.repositories.ddl_repository import DdlRepository
from pgpartitioner.service.boundaries import (
    inheritance_conversion_bounds,
    native_conversion_bounds,
    partition_suffix,
)
from pgpartitioner.service.lock_retry import LockRetry
from pgpartitioner.service.statement_builder import StatementBuilder
from pgpartitioner.service.structure_copy_service import StructureCopyService
from pgpartitioner.service.type_resolver_service import TypeResolverService


class TableConverterService:
    """
    Converte uma tabela comum em tabela particionada por range.

    A tabela original vira a partição ``<tabela>_mammoth`` com todos os dados,
    uma tabela pai vazia assume o nome original e uma primeira partição nova
    é criada a partir de ``end_key``. Cada passo é comitado separadamente para
    manter os locks curtos; uma falha no meio deixa a conversão parcial e o
    passo que falhou fica registrado no log para a recuperação manual.
    """

    @inject
    def __init__(self, logger: Logger, session_provider: SessionProvider, catalog_repository: CatalogRepository,
                 ddl_repository: DdlRepository, statement_builder: StatementBuilder,
                 type_resolver_service: TypeResolverService, structure_copy_service: StructureCopyService,
                 lock_retry: LockRetry):
        self.logger = logger
        self.session_provider = session_provider
        self.catalog_repository = catalog_repository
        self.ddl_repository = ddl_repository
        self.statement_builder = statement_builder
        self.type_resolver_service = type_resolver_service
        self.structure_copy_service = structure_copy_service
        self.lock_retry = lock_retry

    def convert(self, dto: ConvertTableDTO) -> bool:
        self.logger.info(
            f"[{self.__class__.__name__}] Converting [{dto.schema_name}.{dto.table_name}] "
            f"on [{dto.column_name}] using [{dto.strategy.value}] partitioning"
        )
        try:
            if dto.strategy == PartitionStrategy.INHERITANCE:
                self._convert_inheritance(dto)
            else:
                self._convert_native(dto)
        except LockTimeoutExhaustedError as e:
            self.logger.error(f"[{self.__class__.__name__}] Conversion of [{dto.schema_name}.{dto.table_name}] stopped: {e.message}")
            return False
        self.logger.info(f"[{self.__class__.__name__}] Table [{dto.schema_name}.{dto.table_name}] converted")
        return True

    def _step(self, description: str, action: Callable[[], None]):
        self.logger.debug(f"[{self.__class__.__name__}] Step: {description}")
        try:
            action()
            self.session_provider.commit()
        except Exception:
            self.session_provider.rollback()
            self.logger.exception(f"[{self.__class__.__name__}] Step failed, manual recovery needed: {description}")
            raise

    def _with_lock(self, description: str, action: Callable[[], None]):
        def run():
            self.ddl_repository.set_lock_timeout(LOCK_TIMEOUT_MS)
            self.lock_retry.run(action, description)
        self._step(description, run)

    def _validated_check(self, schema: str, table: str, name: str, expression: str):
        self.ddl_repository.add_check_constraint(schema, table, name, expression, not_valid=True)
        self.ddl_repository.mark_constraint_valid(schema, table, name)

    def _convert_native(self, dto: ConvertTableDTO):
        schema, table = dto.schema_name, dto.table_name
        key = self.type_resolver_service.resolve_column(schema, table, dto.column_name)
        bounds = native_conversion_bounds(key.family, dto.start_key, dto.end_key, dto.interval)
        original = f"{table}_{ORIGINAL_DATA_SUFFIX}"
        template = f"{table}_{TEMPLATE_SUFFIX}"
        new_partition = f"{table}_{partition_suffix(bounds.new_lower, bounds.new_upper)}"
        source = template if dto.no_primary_key else table
        self.logger.debug(
            f"[{self.__class__.__name__}] Original data [{bounds.original_lower}, {bounds.original_upper}), "
            f"new partition [{new_partition}] [{bounds.new_lower}, {bounds.new_upper})"
        )

        triggers: List[TriggerDTO] = []
        if dto.move_triggers:
            triggers = self.catalog_repository.list_triggers(schema, table)
            self._step("drop triggers of the original table", lambda: [
                self.ddl_repository.drop_trigger(schema, table, trigger.name) for trigger in triggers
            ])

        self._with_lock(f"rename {schema}.{table} to {original}",
                        lambda: self.ddl_repository.rename_table(schema, table, original))
        self._step(f"rename indexes of {original}",
                   lambda: self.structure_copy_service.rename_indexes(schema, original, table, original))

        if dto.no_primary_key:
            self._step(f"create template {template}",
                       lambda: self.ddl_repository.create_table_like(schema, template, original))
            self._step(f"create partitioned table {table}", lambda: self.ddl_repository.create_table_like(
                schema, table, template, "INCLUDING ALL EXCLUDING INDEXES", partition_column=key.column_name
            ))
            self._step(f"copy indexes of {template} to {table}",
                       lambda: self.structure_copy_service.copy_indexes(schema, template, table, include_primary=False))
        else:
            self._step(f"create partitioned table {table}", lambda: self.ddl_repository.create_table_like(
                schema, table, original, partition_column=key.column_name
            ))

        if triggers:
            self._step(f"recreate triggers on {table}", lambda: [
                self.ddl_repository.execute(trigger.definition) for trigger in triggers
            ])

        self._step(f"copy foreign keys of {original} to {table}",
                   lambda: self.structure_copy_service.copy_foreign_keys(schema, original, table, only=False))

        referencing = self.catalog_repository.list_referencing_foreign_keys(schema, original)
        self._step(f"move referencing foreign keys to {table}",
                   lambda: self._retarget_referencing_keys(referencing, original, table))

        options = self.catalog_repository.get_storage_options(schema, original)
        if options:
            self.logger.warning(
                f"[{self.__class__.__name__}] Storage options were not applied. Run after the conversion: "
                f"ALTER TABLE {self.statement_builder.qualify(schema, new_partition)} SET ({', '.join(options)});"
            )

        check_name = f"{original}_check"
        self._step(f"add check {check_name}", lambda: self._validated_check(
            schema, original, check_name,
            self.statement_builder.range_check(key.column_name, bounds.original_lower, bounds.original_upper, key.cast_type),
        ))
        self._with_lock(f"attach {original}", lambda: self.ddl_repository.attach_partition(
            schema, table, original, bounds.original_lower, bounds.original_upper
        ))

        self._step(f"create {new_partition}",
                   lambda: self.ddl_repository.create_table_like(schema, new_partition, source))
        self._with_lock(f"attach {new_partition}", lambda: self.ddl_repository.attach_partition(
            schema, table, new_partition, bounds.new_lower, bounds.new_upper
        ))

        self._step("validate referencing foreign keys", lambda: [
            self.ddl_repository.mark_constraint_valid(fk.table_schema, fk.table_name, fk.name) for fk in referencing
        ])

    def _retarget_referencing_keys(self, referencing: List[ForeignKeyDTO], old_table: str, new_table: str):
        for foreign_key in referencing:
            definition = self.structure_copy_service.retarget_foreign_key(foreign_key, old_table, new_table)
            self.logger.debug(
                f"[{self.__class__.__name__}] Moving [{foreign_key.name}] of [{foreign_key.table_schema}.{foreign_key.table_name}] to [{new_table}]"
            )
            self.ddl_repository.drop_constraint(foreign_key.table_schema, foreign_key.table_name, foreign_key.name)
            self.ddl_repository.add_foreign_key(
                foreign_key.table_schema, foreign_key.table_name, foreign_key.name, definition, not_valid=True
            )

    def _convert_inheritance(self, dto: ConvertTableDTO):
        schema, table = dto.schema_name, dto.table_name
        key = self.type_resolver_service.resolve_column(schema, table, dto.column_name)
        bounds = inheritance_conversion_bounds(key.family, dto.start_key, dto.end_key, dto.interval)

        referencing = self.catalog_repository.list_referencing_foreign_keys(schema, table)
        if referencing:
            raise ReferencedTableConflictError(
                f"Tabela {schema}.{table} é referenciada por {', '.join(fk.table_name for fk in referencing)}; "
                "particionamento por herança não é possível."
            )

        original = f"{table}_{ORIGINAL_DATA_SUFFIX}"
        suffix = partition_suffix(bounds.new_lower, bounds.new_upper)
        new_partition = f"{table}_{suffix}"
        overflow = f"{table}_{OVERFLOW_SUFFIX}"
        self.logger.debug(
            f"[{self.__class__.__name__}] Original data [{bounds.original_lower}, {bounds.original_upper}], "
            f"new child [{new_partition}] [{bounds.new_lower}, {bounds.new_upper}]"
        )

        self._with_lock(f"rename {schema}.{table} to {original}",
                        lambda: self.ddl_repository.rename_table(schema, table, original))
        self._step(f"create parent {table}", lambda: self.ddl_repository.create_table_like(schema, table, original))
        self._step(f"copy foreign keys of {original} to {table}",
                   lambda: self.structure_copy_service.copy_foreign_keys(schema, original, table))
        self._step(f"copy storage options to {table}", lambda: self.ddl_repository.set_storage_options(
            schema, table, self.catalog_repository.get_storage_options(schema, original)
        ))

        self._with_lock(f"inherit {original} from {table}",
                        lambda: self.ddl_repository.inherit(schema, original, table))
        check_name = f"{original}_check"
        self._step(f"add check {check_name}", lambda: self._validated_check(
            schema, original, check_name,
            self.statement_builder.between_check(key.column_name, bounds.original_lower, bounds.original_upper, key.cast_type),
        ))

        def create_child():
            self.structure_copy_service.create_table_inherits_from_template(schema, table, suffix)
            self.structure_copy_service.copy_indexes(schema, table, new_partition)
            self.structure_copy_service.copy_foreign_keys(schema, table, new_partition)
            self.ddl_repository.add_check_constraint(
                schema, new_partition, f"{new_partition}_check",
                self.statement_builder.between_check(key.column_name, bounds.new_lower, bounds.new_upper, key.cast_type),
            )
        self._step(f"create child {new_partition}", create_child)

        self._step(f"create overflow {overflow}", lambda: self.ddl_repository.create_table_like(schema, overflow, table))
        self._with_lock(f"inherit {overflow} from {table}",
                        lambda: self.ddl_repository.inherit(schema, overflow, table))
        self._step(f"copy foreign keys of {table} to {overflow}",
                   lambda: self.structure_copy_service.copy_foreign_keys(schema, table, overflow))

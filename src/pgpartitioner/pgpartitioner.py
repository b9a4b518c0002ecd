import json
import threading
import time
import traceback
from functools import wraps
from inspect import signature
from logging import Logger
from typing import Callable, Dict, Optional, Tuple, Type

from injector import Injector
from pydantic import BaseModel, ValidationError

from pgpartitioner.exceptions.partition_maintenance_error import PartitionMaintenanceError
from pgpartitioner.models.dto.convert_table_dto import ConvertTableDTO
from pgpartitioner.models.dto.event_dto import (
    CountFreePartitionsModel,
    DetachPartitionModel,
    DropDetachedPartitionModel,
    EnsureFreePartitionsModel,
    EventModel,
    ForeignKeyStatementsModel,
    IndexStatementsModel,
    PruningConstraintsModel,
    RunMaintenanceModel,
)
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.service.constraint_advisor_service import ConstraintAdvisorService
from pgpartitioner.service.detach_service import DetachService
from pgpartitioner.service.free_partition_service import FreePartitionService
from pgpartitioner.service.lock_retry import LockRetry
from pgpartitioner.service.maintenance_service import MaintenanceService
from pgpartitioner.service.partition_creator_service import PartitionCreatorService
from pgpartitioner.service.propagation_service import PropagationService
from pgpartitioner.service.table_converter_service import TableConverterService


class PgPartitioner:
    """
    Classe responsável por:
      1. Conter os decorators (inject_dependencies, transactional).
      2. Registrar as ações disponíveis e o modelo de payload de cada uma.
      3. Expor as operações como métodos e um process_event para payloads JSON.
    """

    def __init__(self, injector: Injector, cancel_event: Optional[threading.Event] = None,
                 deadline_seconds: Optional[float] = None):
        """
        :param injector: Instância do Injector para injeção de dependências.
        :param cancel_event: sinal para interromper as esperas por lock.
        :param deadline_seconds: tempo máximo de espera por lock em cada alteração.
        """
        self.injector = injector
        self.logger = self.injector.get(Logger)
        self.routes: Dict[str, Tuple[Type[BaseModel], Callable]] = {}

        if cancel_event is not None or deadline_seconds is not None:
            lock_retry = self.injector.get(LockRetry)
            lock_retry.cancel_event = cancel_event
            lock_retry.deadline_seconds = deadline_seconds

        self.define_routes()

    def process_event(self, event: dict) -> dict:
        """
        Valida o evento ``{"action": ..., "data": {...}}``, executa a ação e
        devolve ``statusCode`` e ``body`` (JSON).
        """
        start_time = time.time()
        action = event.get("action", "unknown") if isinstance(event, dict) else "unknown"

        try:
            self.logger.info(f"[{self.__class__.__name__}] Processing event for action: {action}")
            event_data = EventModel(**event)
            if event_data.action not in self.routes:
                return self._response(400, {"error": f"Unknown action: {event_data.action}"})

            result = self.execute(event_data.action, event_data.data)
            return self._response(200, {"action": event_data.action, "result": result})

        except ValidationError as e:
            self.logger.error(f"[{self.__class__.__name__}] Validation error for action {action}", exc_info=True)
            return self._response(422, {"error": "Validation error", "details": e.errors(include_url=False)})
        except PartitionMaintenanceError as e:
            self.logger.error(f"[{self.__class__.__name__}] {e}")
            return self._response(409, {"error": e.__class__.__name__, "message": e.message})
        except Exception as e:
            self.logger.error(f"[{self.__class__.__name__}] Error processing event", exc_info=True)
            return self._response(500, {
                "message": "Error processing event",
                "error": str(e),
                "stacktrace": traceback.format_exc(),
            })
        finally:
            self.logger.debug(f"[{self.__class__.__name__}] Action {action} took {time.time() - start_time:.3f}s")

    @staticmethod
    def _response(status_code: int, body: dict) -> dict:
        return {"statusCode": status_code, "body": json.dumps(body, default=str)}

    def execute(self, action: str, data: Optional[dict] = None):
        model, handler = self.routes[action]
        return handler(data=model.model_validate(data or {}))

    def route(self, action: str, model: Type[BaseModel]):
        def register(func: Callable):
            self.routes[action] = (model, func)
            return func
        return register

    def inject_dependencies(self, func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            func_signature = signature(func)
            dependencies = {
                param_name: self.injector.get(param.annotation)
                for param_name, param in func_signature.parameters.items()
                if param.annotation is not param.empty and param_name not in kwargs
            }
            self.logger.debug(f"[{self.__class__.__name__}] Dependencies injected for {func.__name__}: {list(dependencies)}")
            return func(*args, **dependencies, **kwargs)
        return wrapper

    def transactional(self, func: Callable):
        """
        Decorator para gerenciar o ciclo de vida da sessão:
        - Commit no sucesso
        - Rollback e log em caso de erro
        - Fechamento de sessão em todos os casos
        """
        @wraps(func)
        def wrapper(*args, **kwargs):
            session_provider: SessionProvider = kwargs.get("session_provider")
            if not session_provider:
                raise ValueError(
                    "`session_provider` é obrigatório para usar o decorator `@transactional`."
                )
            try:
                result = func(*args, **kwargs)
                session_provider.commit()
                return result
            except Exception as e:
                session_provider.rollback()
                logger = kwargs.get("logger")
                if logger:
                    logger.exception(f"[{self.__class__.__name__}] Erro na execução de {func.__name__}: {str(e)}")
                raise
            finally:
                session_provider.close()
        return wrapper

    def define_routes(self):
        """
        Registra as ações organizadas por área.
        """
        self.define_conversion_routes()
        self.define_growth_routes()
        self.define_propagation_routes()
        self.define_retirement_routes()
        self.define_maintenance_routes()

    def define_conversion_routes(self):
        @self.route("convert_table", ConvertTableDTO)
        @self.inject_dependencies
        @self.transactional
        def convert_table(
            data: ConvertTableDTO,
            table_converter_service: TableConverterService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            converted = table_converter_service.convert(data)
            logger.info(f"[{self.__class__.__name__}] Conversion of {data.schema_name}.{data.table_name} finished: {converted}")
            return {"converted": converted}

    def define_growth_routes(self):
        @self.route("ensure_free_partitions", EnsureFreePartitionsModel)
        @self.inject_dependencies
        @self.transactional
        def ensure_free_partitions(
            data: EnsureFreePartitionsModel,
            partition_creator_service: PartitionCreatorService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            completed = partition_creator_service.ensure_free_partitions(data.schema_name, data.table_name, data.min_free)
            return {"completed": completed}

        @self.route("count_free_partitions", CountFreePartitionsModel)
        @self.inject_dependencies
        @self.transactional
        def count_free_partitions(
            data: CountFreePartitionsModel,
            free_partition_service: FreePartitionService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            free = free_partition_service.count_free_partitions(
                data.schema_name, data.table_name, data.column_name, data.column_type, data.range_key
            )
            return {"free_partitions": free}

    def define_propagation_routes(self):
        @self.route("generate_partitioned_index_statements", IndexStatementsModel)
        @self.inject_dependencies
        @self.transactional
        def generate_partitioned_index_statements(
            data: IndexStatementsModel,
            propagation_service: PropagationService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            return {"statements": propagation_service.generate_index_statements(
                data.schema_name, data.table_name, data.columns, data.method, data.unique
            )}

        @self.route("generate_partitioned_foreign_key_statements", ForeignKeyStatementsModel)
        @self.inject_dependencies
        @self.transactional
        def generate_partitioned_foreign_key_statements(
            data: ForeignKeyStatementsModel,
            propagation_service: PropagationService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            return {"statements": propagation_service.generate_foreign_key_statements(
                data.schema_name, data.table_name, data.constraint_name, data.parent_table,
                data.child_columns, data.parent_columns
            )}

        @self.route("add_pruning_constraints", PruningConstraintsModel)
        @self.inject_dependencies
        @self.transactional
        def add_pruning_constraints(
            data: PruningConstraintsModel,
            constraint_advisor_service: ConstraintAdvisorService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            return {"constraints": constraint_advisor_service.add_pruning_constraints(
                data.schema_name, data.table_name, data.marker, data.column_name
            )}

    def define_retirement_routes(self):
        @self.route("detach_partition", DetachPartitionModel)
        @self.inject_dependencies
        @self.transactional
        def detach_partition(
            data: DetachPartitionModel,
            detach_service: DetachService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            return {"detached": detach_service.detach_partition(
                data.schema_name, data.table_name, data.partition_name, data.detach_oldest_only
            )}

        @self.route("drop_detached_partition", DropDetachedPartitionModel)
        @self.inject_dependencies
        @self.transactional
        def drop_detached_partition(
            data: DropDetachedPartitionModel,
            detach_service: DetachService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            return {"dropped": detach_service.drop_detached_partition(
                data.schema_name, data.table_name, data.partition_name
            )}

    def define_maintenance_routes(self):
        @self.route("run_maintenance", RunMaintenanceModel)
        @self.inject_dependencies
        @self.transactional
        def run_maintenance(
            data: RunMaintenanceModel,
            maintenance_service: MaintenanceService,
            session_provider: SessionProvider,
            logger: Logger
        ):
            report = maintenance_service.run_maintenance(data.schema_name, data.table_name)
            return {**report.model_dump(), "success": report.success}

    def convert_table(self, **data) -> bool:
        return self.execute("convert_table", data)["converted"]

    def ensure_free_partitions(self, schema_name: str, table_name: str, min_free: int) -> bool:
        return self.execute("ensure_free_partitions", {
            "schema_name": schema_name, "table_name": table_name, "min_free": min_free,
        })["completed"]

    def count_free_partitions(self, schema_name: str, table_name: str, column_name: Optional[str] = None,
                              column_type: Optional[str] = None, range_key: Optional[str] = None) -> int:
        return self.execute("count_free_partitions", {
            "schema_name": schema_name, "table_name": table_name, "column_name": column_name,
            "column_type": column_type, "range_key": range_key,
        })["free_partitions"]

    def generate_partitioned_index_statements(self, schema_name: str, table_name: str, columns, method: str = "btree",
                                              unique: bool = False):
        return self.execute("generate_partitioned_index_statements", {
            "schema_name": schema_name, "table_name": table_name, "columns": list(columns),
            "method": method, "unique": unique,
        })["statements"]

    def generate_partitioned_foreign_key_statements(self, schema_name: str, table_name: str, constraint_name: str,
                                                    parent_table: str, child_columns, parent_columns):
        return self.execute("generate_partitioned_foreign_key_statements", {
            "schema_name": schema_name, "table_name": table_name, "constraint_name": constraint_name,
            "parent_table": parent_table, "child_columns": list(child_columns), "parent_columns": list(parent_columns),
        })["statements"]

    def add_pruning_constraints(self, schema_name: str, table_name: str, marker: str, column_name: str):
        return self.execute("add_pruning_constraints", {
            "schema_name": schema_name, "table_name": table_name, "marker": marker, "column_name": column_name,
        })["constraints"]

    def detach_partition(self, schema_name: str, table_name: str, partition_name: str,
                         detach_oldest_only: bool = True) -> bool:
        return self.execute("detach_partition", {
            "schema_name": schema_name, "table_name": table_name, "partition_name": partition_name,
            "detach_oldest_only": detach_oldest_only,
        })["detached"]

    def drop_detached_partition(self, schema_name: str, table_name: str, partition_name: str) -> bool:
        return self.execute("drop_detached_partition", {
            "schema_name": schema_name, "table_name": table_name, "partition_name": partition_name,
        })["dropped"]

    def run_maintenance(self, schema_name: Optional[str] = None, table_name: Optional[str] = None) -> dict:
        return self.execute("run_maintenance", {"schema_name": schema_name, "table_name": table_name})

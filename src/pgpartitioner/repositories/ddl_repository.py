from logging import Logger
from typing import Iterable, Optional
from injector import inject
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from pgpartitioner.config.constants import LOCK_NOT_AVAILABLE
from pgpartitioner.exceptions.lock_not_available_error import LockNotAvailableError
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.service.boundaries import Bound
from pgpartitioner.service.statement_builder import StatementBuilder


class DdlRepository:
    """
    Executa os comandos estruturais (CREATE/ALTER/DROP) na sessão corrente.
    Falhas de lock (SQLSTATE 55P03) são convertidas em LockNotAvailableError;
    qualquer outro erro é logado e propagado.
    """

    @inject
    def __init__(self, session_provider: SessionProvider, logger: Logger, statement_builder: StatementBuilder):
        self.session_provider = session_provider
        self.session = session_provider.get_session()
        self.logger = logger
        self.statement_builder = statement_builder

    def execute(self, statement: str):
        self.logger.debug(f"[{self.__class__.__name__}] Executing: {statement}")
        try:
            self.session.connection().exec_driver_sql(statement)
        except DBAPIError as e:
            if getattr(e.orig, "pgcode", None) == LOCK_NOT_AVAILABLE:
                self.logger.warning(f"[{self.__class__.__name__}] Lock not available for: {statement}")
                raise LockNotAvailableError(str(e.orig).strip()) from e
            self.logger.error(f"[{self.__class__.__name__}] Error executing [{statement}]: {e}")
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"[{self.__class__.__name__}] Error executing [{statement}]: {e}")
            raise

    def savepoint(self):
        return self.session_provider.savepoint()

    def set_lock_timeout(self, milliseconds: int):
        self.execute(f"SET LOCAL lock_timeout = '{int(milliseconds)}ms'")

    def create_table_like(self, schema: str, name: str, source: str, options: str = "INCLUDING ALL",
                          partition_column: Optional[str] = None):
        statement = (
            f"CREATE TABLE {self.statement_builder.qualify(schema, name)} "
            f"(LIKE {self.statement_builder.qualify(schema, source)} {options})"
        )
        if partition_column:
            statement += f" PARTITION BY RANGE ({self.statement_builder.quote(partition_column)})"
        self.execute(statement)

    def create_table_inherits(self, schema: str, name: str, parent: str):
        self.execute(
            f"CREATE TABLE {self.statement_builder.qualify(schema, name)} () "
            f"INHERITS ({self.statement_builder.qualify(schema, parent)})"
        )

    def add_check_constraint(self, schema: str, table: str, name: str, expression: str, not_valid: bool = False):
        self.execute(
            f"ALTER TABLE {self.statement_builder.qualify(schema, table)} "
            f"ADD CONSTRAINT {self.statement_builder.quote(name)} CHECK {expression}"
            + (" NOT VALID" if not_valid else "")
        )

    def add_foreign_key(self, schema: str, table: str, name: str, definition: str, not_valid: bool = False, only: bool = False):
        self.execute(
            f"ALTER TABLE {'ONLY ' if only else ''}{self.statement_builder.qualify(schema, table)} "
            f"ADD CONSTRAINT {self.statement_builder.quote(name)} {definition}"
            + (" NOT VALID" if not_valid else "")
        )

    def mark_constraint_valid(self, schema: str, table: str, name: str):
        """
        Marca a constraint como validada direto no catálogo, sem varrer a tabela.
        Só deve ser usada quando o conteúdo já é conhecido por construção.
        """
        self.logger.debug(f"[{self.__class__.__name__}] Marking constraint [{name}] on [{schema}.{table}] as valid")
        self.session.execute(text(
            """
            UPDATE pg_catalog.pg_constraint SET convalidated = true
            WHERE conname = :name AND conrelid = (
                SELECT c.oid FROM pg_catalog.pg_class c
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE n.nspname = :schema AND c.relname = :table
            )
            """
        ), {"name": name, "schema": schema, "table": table})

    def drop_constraint(self, schema: str, table: str, name: str):
        self.execute(
            f"ALTER TABLE {self.statement_builder.qualify(schema, table)} "
            f"DROP CONSTRAINT {self.statement_builder.quote(name)}"
        )

    def set_storage_options(self, schema: str, table: str, options: Iterable[str]):
        options = self.statement_builder.validate_storage_options(options)
        if options:
            self.execute(f"ALTER TABLE {self.statement_builder.qualify(schema, table)} SET ({', '.join(options)})")

    def attach_partition(self, schema: str, parent: str, child: str, lower: Bound, upper: Bound):
        self.execute(
            f"ALTER TABLE {self.statement_builder.qualify(schema, parent)} "
            f"ATTACH PARTITION {self.statement_builder.qualify(schema, child)} "
            f"FOR VALUES FROM ({self.statement_builder.literal(lower)}) TO ({self.statement_builder.literal(upper)})"
        )

    def detach_partition(self, schema: str, parent: str, child: str):
        self.execute(
            f"ALTER TABLE {self.statement_builder.qualify(schema, parent)} "
            f"DETACH PARTITION {self.statement_builder.qualify(schema, child)}"
        )

    def inherit(self, schema: str, child: str, parent: str):
        self.execute(
            f"ALTER TABLE {self.statement_builder.qualify(schema, child)} "
            f"INHERIT {self.statement_builder.qualify(schema, parent)}"
        )

    def set_owner(self, schema: str, table: str, owner: str):
        self.execute(
            f"ALTER TABLE {self.statement_builder.qualify(schema, table)} "
            f"OWNER TO {self.statement_builder.quote(owner)}"
        )

    def rename_table(self, schema: str, name: str, new_name: str):
        self.execute(
            f"ALTER TABLE {self.statement_builder.qualify(schema, name)} "
            f"RENAME TO {self.statement_builder.quote(new_name)}"
        )

    def rename_index(self, schema: str, name: str, new_name: str):
        self.execute(
            f"ALTER INDEX {self.statement_builder.qualify(schema, name)} "
            f"RENAME TO {self.statement_builder.quote(new_name)}"
        )

    def drop_trigger(self, schema: str, table: str, name: str):
        self.execute(
            f"DROP TRIGGER {self.statement_builder.quote(name)} "
            f"ON {self.statement_builder.qualify(schema, table)}"
        )

    def drop_table(self, schema: str, table: str):
        self.execute(f"DROP TABLE {self.statement_builder.qualify(schema, table)}")

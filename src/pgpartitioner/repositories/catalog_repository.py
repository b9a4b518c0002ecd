from datetime import date
from logging import Logger
from typing import Any, Dict, List, Optional, Tuple
from injector import inject
from sqlalchemy import text

from pgpartitioner.models.dto.catalog_dto import ForeignKeyDTO, IndexDefinitionDTO, TriggerDTO
from pgpartitioner.provider.session_provider import SessionProvider
from pgpartitioner.service.statement_builder import StatementBuilder

# Tipos aceitos nos casts dos limites
_CAST_TYPES = {"bigint", "date", "timestamp", "timestamptz"}


class CatalogRepository:
    """
    Consultas tipadas ao catálogo do PostgreSQL.
    Nomes de schema/tabela vão sempre como parâmetros; quando um identificador precisa
    compor o SQL (agregações em uma partição), passa pelo StatementBuilder.
    """

    @inject
    def __init__(self, session_provider: SessionProvider, logger: Logger, statement_builder: StatementBuilder):
        self.session = session_provider.get_session()
        self.logger = logger
        self.statement_builder = statement_builder

    def _scalar(self, sql: str, **params) -> Any:
        return self.session.execute(text(sql), params).scalar()

    def _rows(self, sql: str, **params) -> List[Dict[str, Any]]:
        return [dict(row) for row in self.session.execute(text(sql), params).mappings().all()]

    def is_range_partitioned(self, schema: str, table: str) -> bool:
        return bool(self._scalar(
            """
            SELECT EXISTS (
                SELECT 1
                FROM pg_catalog.pg_partitioned_table p
                JOIN pg_catalog.pg_class c ON c.oid = p.partrelid
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE n.nspname = :schema AND c.relname = :table AND p.partstrat = 'r'
            )
            """,
            schema=schema, table=table,
        ))

    def get_partition_key(self, schema: str, table: str) -> Optional[Tuple[str, str]]:
        """
        :return: (coluna, tipo) da primeira coluna da chave de particionamento ou None.
        """
        row = self.session.execute(text(
            """
            SELECT a.attname AS column_name, lower(t.typname) AS column_type
            FROM pg_catalog.pg_partitioned_table p
            JOIN pg_catalog.pg_class c ON c.oid = p.partrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum = p.partattrs[0]
            JOIN pg_catalog.pg_type t ON t.oid = a.atttypid
            WHERE n.nspname = :schema AND c.relname = :table
            """
        ), {"schema": schema, "table": table}).first()
        return (row.column_name, row.column_type) if row else None

    def get_column_type(self, schema: str, table: str, column: str) -> Optional[str]:
        return self._scalar(
            """
            SELECT lower(t.typname)
            FROM pg_catalog.pg_attribute a
            JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_catalog.pg_type t ON t.oid = a.atttypid
            WHERE n.nspname = :schema AND c.relname = :table AND a.attname = :column
              AND a.attnum > 0 AND NOT a.attisdropped
            """,
            schema=schema, table=table, column=column,
        )

    def list_partitions(self, schema: str, table: str, cast_type: str) -> List[Dict[str, Any]]:
        """
        Lista as partições com os limites já convertidos para o tipo da coluna.

        :return: dicts com name, is_default, lower e upper.
        """
        if cast_type not in _CAST_TYPES:
            raise ValueError(f"Tipo de cast não suportado: {cast_type}")
        self.logger.debug(f"[{self.__class__.__name__}] Listing partitions of [{schema}.{table}]")
        return self._rows(
            f"""
            WITH bounds AS (
                SELECT child.relname AS name, pg_get_expr(child.relpartbound, child.oid) AS expr
                FROM pg_catalog.pg_inherits i
                JOIN pg_catalog.pg_class parent ON parent.oid = i.inhparent
                JOIN pg_catalog.pg_class child ON child.oid = i.inhrelid
                JOIN pg_catalog.pg_namespace n ON n.oid = parent.relnamespace
                WHERE n.nspname = :schema AND parent.relname = :table
            ), parsed AS (
                SELECT name, expr = 'DEFAULT' AS is_default,
                       (regexp_match(expr, 'FROM \\(''?([^'')]*)''?\\)'))[1] AS lower_text,
                       (regexp_match(expr, 'TO \\(''?([^'')]*)''?\\)'))[1] AS upper_text
                FROM bounds
            )
            SELECT name, is_default,
                   CASE WHEN lower_text IN ('MINVALUE', 'MAXVALUE') THEN NULL ELSE lower_text::{cast_type} END AS lower,
                   CASE WHEN upper_text IN ('MINVALUE', 'MAXVALUE') THEN NULL ELSE upper_text::{cast_type} END AS upper
            FROM parsed
            ORDER BY lower NULLS LAST, name
            """,
            schema=schema, table=table,
        )

    def list_children(self, schema: str, table: str) -> List[str]:
        return list(self.session.execute(text(
            """
            SELECT child.relname
            FROM pg_catalog.pg_inherits i
            JOIN pg_catalog.pg_class parent ON parent.oid = i.inhparent
            JOIN pg_catalog.pg_class child ON child.oid = i.inhrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = parent.relnamespace
            WHERE n.nspname = :schema AND parent.relname = :table
            ORDER BY child.relname
            """
        ), {"schema": schema, "table": table}).scalars().all())

    def relation_exists(self, schema: str, name: str) -> bool:
        return bool(self._scalar(
            """
            SELECT EXISTS (
                SELECT 1 FROM pg_catalog.pg_class c
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE n.nspname = :schema AND c.relname = :name
            )
            """,
            schema=schema, name=name,
        ))

    def index_exists(self, schema: str, name: str) -> bool:
        return bool(self._scalar(
            """
            SELECT EXISTS (
                SELECT 1 FROM pg_catalog.pg_class c
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE n.nspname = :schema AND c.relname = :name AND c.relkind IN ('i', 'I')
            )
            """,
            schema=schema, name=name,
        ))

    def constraint_exists(self, schema: str, table: str, name: str) -> bool:
        return bool(self._scalar(
            """
            SELECT EXISTS (
                SELECT 1 FROM pg_catalog.pg_constraint con
                JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE n.nspname = :schema AND c.relname = :table AND con.conname = :name
            )
            """,
            schema=schema, table=table, name=name,
        ))

    def get_parent(self, schema: str, name: str) -> Optional[str]:
        return self._scalar(
            """
            SELECT parent.relname
            FROM pg_catalog.pg_inherits i
            JOIN pg_catalog.pg_class parent ON parent.oid = i.inhparent
            JOIN pg_catalog.pg_class child ON child.oid = i.inhrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = child.relnamespace
            WHERE n.nspname = :schema AND child.relname = :name
            LIMIT 1
            """,
            schema=schema, name=name,
        )

    def is_attached(self, schema: str, name: str) -> bool:
        return self.get_parent(schema, name) is not None

    def get_storage_options(self, schema: str, name: str) -> List[str]:
        options = self._scalar(
            """
            SELECT c.reloptions FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = :schema AND c.relname = :name
            """,
            schema=schema, name=name,
        )
        return list(options or [])

    def get_table_owner(self, schema: str, name: str) -> Optional[str]:
        return self._scalar(
            "SELECT tableowner FROM pg_catalog.pg_tables WHERE schemaname = :schema AND tablename = :name",
            schema=schema, name=name,
        )

    def current_date(self) -> date:
        return self._scalar("SELECT current_date")

    def max_value_below(self, schema: str, table: str, column: str, limit: int) -> int:
        """
        Maior valor da coluna abaixo de ``limit``; uma tabela vazia retorna 0.
        """
        quoted = self.statement_builder.quote(column)
        return self._scalar(
            f"SELECT coalesce(max({quoted}), 0) FROM {self.statement_builder.qualify(schema, table)} WHERE {quoted} < :limit",
            limit=limit,
        )

    def has_rows(self, schema: str, table: str) -> bool:
        return bool(self._scalar(
            f"SELECT EXISTS (SELECT 1 FROM {self.statement_builder.qualify(schema, table)})"
        ))

    def has_value(self, schema: str, table: str, column: str, value: Any) -> bool:
        quoted = self.statement_builder.quote(column)
        return bool(self._scalar(
            f"SELECT EXISTS (SELECT 1 FROM {self.statement_builder.qualify(schema, table)} WHERE {quoted} = :value)",
            value=value,
        ))

    def min_value(self, schema: str, table: str, column: str) -> Any:
        return self._scalar(
            f"SELECT min({self.statement_builder.quote(column)}) FROM {self.statement_builder.qualify(schema, table)}"
        )

    def max_value(self, schema: str, table: str, column: str) -> Any:
        return self._scalar(
            f"SELECT max({self.statement_builder.quote(column)}) FROM {self.statement_builder.qualify(schema, table)}"
        )

    def list_indexes(self, schema: str, table: str) -> List[IndexDefinitionDTO]:
        rows = self._rows(
            """
            SELECT ic.relname AS name, pg_get_indexdef(x.indexrelid) AS definition,
                   x.indisprimary AS is_primary, x.indisunique AS is_unique
            FROM pg_catalog.pg_index x
            JOIN pg_catalog.pg_class ic ON ic.oid = x.indexrelid
            JOIN pg_catalog.pg_class tc ON tc.oid = x.indrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = tc.relnamespace
            WHERE n.nspname = :schema AND tc.relname = :table
            ORDER BY ic.relname
            """,
            schema=schema, table=table,
        )
        return [IndexDefinitionDTO(**row) for row in rows]

    def has_primary_key(self, schema: str, table: str) -> bool:
        return any(index.is_primary for index in self.list_indexes(schema, table))

    def list_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyDTO]:
        """
        FKs declaradas na própria tabela (sem as herdadas de uma tabela pai).
        """
        rows = self._rows(
            """
            SELECT con.conname AS name, pg_get_constraintdef(con.oid) AS definition,
                   n.nspname AS table_schema, c.relname AS table_name
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = :schema AND c.relname = :table AND con.contype = 'f' AND con.conparentid = 0
            ORDER BY con.conname
            """,
            schema=schema, table=table,
        )
        return [ForeignKeyDTO(**row) for row in rows]

    def list_referencing_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyDTO]:
        """
        FKs de outras tabelas que apontam para ``schema.table``.
        """
        rows = self._rows(
            """
            SELECT con.conname AS name, pg_get_constraintdef(con.oid) AS definition,
                   rn.nspname AS table_schema, rc.relname AS table_name
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class c ON c.oid = con.confrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_catalog.pg_class rc ON rc.oid = con.conrelid
            JOIN pg_catalog.pg_namespace rn ON rn.oid = rc.relnamespace
            WHERE n.nspname = :schema AND c.relname = :table AND con.contype = 'f' AND con.conparentid = 0
            ORDER BY rn.nspname, rc.relname, con.conname
            """,
            schema=schema, table=table,
        )
        return [ForeignKeyDTO(**row) for row in rows]

    def list_triggers(self, schema: str, table: str) -> List[TriggerDTO]:
        rows = self._rows(
            """
            SELECT t.tgname AS name, pg_get_triggerdef(t.oid) AS definition
            FROM pg_catalog.pg_trigger t
            JOIN pg_catalog.pg_class c ON c.oid = t.tgrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = :schema AND c.relname = :table AND NOT t.tgisinternal
            ORDER BY t.tgname
            """,
            schema=schema, table=table,
        )
        return [TriggerDTO(**row) for row in rows]

from logging import Logger
from typing import List, Sequence, Set, Tuple
from injector import inject

from pgpartitioner.config.constants import INDEX_NAME_ATTEMPTS, INDEX_NAME_STEM_LENGTH, SUPPORTED_INDEX_METHODS, TEMPLATE_SUFFIX
from pgpartitioner.exceptions.unsupported_index_method_error import UnsupportedIndexMethodError
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.service.statement_builder import StatementBuilder

CHILD, PARENT, TEMPLATE = 1, 2, 3


class PropagationService:
    """
    Gera (sem executar) os comandos para criar um índice ou uma FK em todas as
    partições de uma tabela, na tabela pai e na template, quando existir.
    """

    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository, statement_builder: StatementBuilder):
        self.logger = logger
        self.catalog_repository = catalog_repository
        self.statement_builder = statement_builder

    def _template_name(self, schema: str, table: str):
        template = f"{table}_{TEMPLATE_SUFFIX}"
        return template if self.catalog_repository.relation_exists(schema, template) else None

    def generate_index_statements(self, schema: str, table: str, columns: Sequence[str], method: str = "btree",
                                  unique: bool = False) -> List[str]:
        method = (method or "btree").lower()
        if method not in SUPPORTED_INDEX_METHODS:
            raise UnsupportedIndexMethodError(f"Método de índice '{method}' não é suportado.")
        if not columns:
            raise ValueError("Ao menos uma coluna é obrigatória.")

        expressions = [self.statement_builder.validate_expression(column) for column in columns]
        column_names = [self.statement_builder.expression_column(expression) for expression in expressions]
        columns_suffix = "_".join(column_names)

        targets: List[Tuple[int, str]] = [(CHILD, child) for child in self.catalog_repository.list_children(schema, table)]

        include_parent = True
        if unique:
            key = self.catalog_repository.get_partition_key(schema, table)
            include_parent = key is not None and key[0].lower() in column_names
            if not include_parent:
                self.logger.info(
                    f"[{self.__class__.__name__}] Unique index on {column_names} does not contain the partition column; "
                    f"skipping [{schema}.{table}]"
                )
        if include_parent:
            targets.append((PARENT, table))

        template = self._template_name(schema, table)
        if template:
            targets.append((TEMPLATE, template))

        taken: Set[str] = set()
        entries = []
        for order, target in targets:
            name = self._index_name(schema, target, columns_suffix, taken)
            taken.add(name)
            entries.append((order, name, target))
        entries.sort(key=lambda entry: (entry[0], entry[1]))

        column_list = ", ".join(expressions).lower()
        total = len(entries)
        statements = [
            f"/* Creating index {position} of {total} */ create {'unique ' if unique else ''}index "
            f"{'concurrently ' if order == CHILD else ''}{self.statement_builder.quote(name)} "
            f"on {self.statement_builder.qualify(schema, target)} using {method} ({column_list});"
            for position, (order, name, target) in enumerate(entries, start=1)
        ]
        self.logger.debug(f"[{self.__class__.__name__}] Generated {total} index statements for [{schema}.{table}]")
        return statements

    def _index_name(self, schema: str, target: str, columns_suffix: str, taken: Set[str]) -> str:
        name = self.statement_builder.index_name(target, columns_suffix, INDEX_NAME_STEM_LENGTH)
        if name not in taken and not self.catalog_repository.index_exists(schema, name):
            return name

        for attempt in range(1, INDEX_NAME_ATTEMPTS + 1):
            name = self.statement_builder.index_name(target, columns_suffix, INDEX_NAME_STEM_LENGTH, attempt)
            if name not in taken and not self.catalog_repository.index_exists(schema, name):
                return name

        # todas as tentativas colidiram; o comando gerado vai falhar na execução
        self.logger.warning(
            f"[{self.__class__.__name__}] Index name collisions exhausted for [{schema}.{target}], emitting [{name}]"
        )
        return name

    def generate_foreign_key_statements(self, schema: str, table: str, constraint_name: str, parent_table: str,
                                        child_columns: Sequence[str], parent_columns: Sequence[str]) -> List[str]:
        if not child_columns or not parent_columns or len(child_columns) != len(parent_columns):
            raise ValueError("As listas de colunas devem ter o mesmo tamanho e não podem ser vazias.")

        quote = self.statement_builder.quote
        name = quote(constraint_name)
        if "." in parent_table:
            parent_schema, parent_name = parent_table.split(".", 1)
            reference = self.statement_builder.qualify(parent_schema, parent_name)
        else:
            reference = quote(parent_table)
        foreign_key = (
            f"foreign key ({','.join(quote(c.lower()) for c in child_columns)}) "
            f"references {reference}({','.join(quote(c.lower()) for c in parent_columns)})"
        )

        children = sorted(self.catalog_repository.list_children(schema, table))
        statements = [
            f"alter table {self.statement_builder.qualify(schema, child)} add constraint {name} {foreign_key} not valid;"
            for child in children
        ]
        statements += [
            f"/* Validating constraint {position} of {len(children)} */ "
            f"alter table {self.statement_builder.qualify(schema, child)} validate constraint {name};"
            for position, child in enumerate(children, start=1)
        ]
        statements.append(f"alter table {self.statement_builder.qualify(schema, table)} add constraint {name} {foreign_key};")

        template = self._template_name(schema, table)
        if template:
            statements.append(f"alter table {self.statement_builder.qualify(schema, template)} add constraint {name} {foreign_key};")
        return statements

import re
from logging import Logger
from typing import List, Optional, Set
from injector import inject

from pgpartitioner.config.constants import INDEX_NAME_ATTEMPTS, MAX_IDENTIFIER_LENGTH, PRIMARY_KEY_STEM_LENGTH
from pgpartitioner.models.dto.catalog_dto import ForeignKeyDTO, IndexDefinitionDTO
from pgpartitioner.repositories.catalog_repository import CatalogRepository
from pgpartitioner.repositories.ddl_repository import DdlRepository
from pgpartitioner.service.statement_builder import StatementBuilder

_INDEX_DEFINITION = re.compile(r"^CREATE (UNIQUE )?INDEX (\S+) ON (?:ONLY )?(\S+) USING (.+)$", re.IGNORECASE)
_INDEX_COLUMNS = re.compile(r"^\w+\s+(\(.*?\))")


class StructureCopyService:
    """
    Copia índices, FKs e opções de storage entre tabelas durante a conversão,
    mantendo os nomes dentro do limite de 63 caracteres do PostgreSQL.
    """

    @inject
    def __init__(self, logger: Logger, catalog_repository: CatalogRepository, ddl_repository: DdlRepository,
                 statement_builder: StatementBuilder):
        self.logger = logger
        self.catalog_repository = catalog_repository
        self.ddl_repository = ddl_repository
        self.statement_builder = statement_builder

    def available_index_name(self, schema: str, candidate: str, taken: Optional[Set[str]] = None) -> str:
        """
        Retorna ``candidate`` se estiver livre; senão tenta ``<stem>1_idx`` .. ``<stem>9_idx``.
        Se todos colidirem devolve o último candidato.
        """
        taken = taken if taken is not None else set()
        candidate = candidate.lower()

        def is_free(name):
            return name not in taken and not self.catalog_repository.index_exists(schema, name)

        if len(candidate) <= MAX_IDENTIFIER_LENGTH and is_free(candidate):
            return candidate

        stem = candidate[:-4] if candidate.endswith("_idx") else candidate
        name = candidate
        for attempt in range(1, INDEX_NAME_ATTEMPTS + 1):
            name = f"{stem[:MAX_IDENTIFIER_LENGTH - 4 - len(str(attempt))]}{attempt}_idx"
            if is_free(name):
                return name
        self.logger.warning(f"[{self.__class__.__name__}] No free index name for [{candidate}], using [{name}]")
        return name

    def rename_indexes(self, schema: str, table: str, old_stem: str, new_stem: str):
        """
        Renomeia os índices de ``table`` trocando ``old_stem`` por ``new_stem`` no nome.
        """
        taken: Set[str] = set()
        for index in self.catalog_repository.list_indexes(schema, table):
            if old_stem in index.name:
                candidate = index.name.replace(old_stem, new_stem, 1)
            else:
                candidate = f"{new_stem[:MAX_IDENTIFIER_LENGTH - 4]}_idx"
            new_name = self.available_index_name(schema, candidate, taken)
            taken.add(new_name)
            self.logger.debug(f"[{self.__class__.__name__}] Renaming index [{index.name}] to [{new_name}]")
            self.ddl_repository.rename_index(schema, index.name, new_name)

    def copy_indexes(self, schema: str, source: str, target: str, include_primary: bool = True) -> List[str]:
        """
        Recria em ``target`` os índices de ``source``.

        :return: nomes dos índices criados.
        """
        created = []
        taken: Set[str] = set()
        for index in self.catalog_repository.list_indexes(schema, source):
            match = _INDEX_DEFINITION.match(index.definition)
            if not match:
                self.logger.warning(f"[{self.__class__.__name__}] Skipping unparseable index definition: {index.definition}")
                continue

            if index.is_primary:
                if include_primary:
                    created.extend(self._copy_primary_key(schema, target, index, match.group(4)))
                continue

            if source in index.name:
                candidate = index.name.replace(source, target, 1)
            else:
                candidate = f"{target[:MAX_IDENTIFIER_LENGTH - 4]}_idx"
            new_name = self.available_index_name(schema, candidate, taken)
            taken.add(new_name)
            self.ddl_repository.execute(
                f"CREATE {'UNIQUE ' if match.group(1) else ''}INDEX {self.statement_builder.quote(new_name)} "
                f"ON {self.statement_builder.qualify(schema, target)} USING {match.group(4)}"
            )
            created.append(new_name)
        return created

    def _copy_primary_key(self, schema: str, target: str, index: IndexDefinitionDTO, using: str) -> List[str]:
        if self.catalog_repository.has_primary_key(schema, target):
            self.logger.info(f"[{self.__class__.__name__}] Primary key already exists on [{schema}.{target}], skipping")
            return []
        columns = _INDEX_COLUMNS.match(using)
        if not columns:
            self.logger.warning(f"[{self.__class__.__name__}] Could not read primary key columns from: {index.definition}")
            return []
        name = f"{target[:PRIMARY_KEY_STEM_LENGTH]}_pkey"
        self.ddl_repository.execute(
            f"ALTER TABLE ONLY {self.statement_builder.qualify(schema, target)} "
            f"ADD CONSTRAINT {self.statement_builder.quote(name)} PRIMARY KEY {columns.group(1)}"
        )
        return [name]

    def copy_foreign_keys(self, schema: str, source: str, target: str, only: bool = True) -> List[str]:
        """
        Copia as FKs declaradas em ``source`` para ``target``, trocando o nome da tabela no nome da constraint.
        """
        copied = []
        for foreign_key in self.catalog_repository.list_foreign_keys(schema, source):
            name = foreign_key.name.replace(source, target)[:MAX_IDENTIFIER_LENGTH]
            self.ddl_repository.add_foreign_key(schema, target, name, foreign_key.definition, only=only)
            copied.append(name)
        return copied

    def retarget_foreign_key(self, foreign_key: ForeignKeyDTO, old_table: str, new_table: str) -> str:
        """
        Reescreve a cláusula REFERENCES da definição para apontar para ``new_table``.
        """
        pattern = re.compile(rf'(REFERENCES\s+(?:\S+\.)?)"?{re.escape(old_table)}"?\(')
        return pattern.sub(lambda m: f"{m.group(1)}{self.statement_builder.quote(new_table)}(", foreign_key.definition)

    def create_table_inherits_from_template(self, schema: str, template: str, suffix: str) -> str:
        """
        Cria ``<template>_<suffix>`` herdando de ``template`` com as mesmas opções de storage.
        """
        name = f"{template}_{suffix}"
        self.ddl_repository.create_table_inherits(schema, name, template)
        self.ddl_repository.set_storage_options(schema, name, self.catalog_repository.get_storage_options(schema, template))
        return name

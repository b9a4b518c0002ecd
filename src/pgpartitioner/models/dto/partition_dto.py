from datetime import date, datetime
from typing import List, Optional, Union
from pydantic import BaseModel, Field

from pgpartitioner.config.constants import ORIGINAL_DATA_SUFFIX
from pgpartitioner.models.column_type import ColumnTypeFamily, cast_type_of

Bound = Union[int, datetime, date]


class PartitionKeyDTO(BaseModel):
    column_name: str = Field(..., description="Coluna de particionamento.")
    column_type: str = Field(..., description="Tipo da coluna no catálogo, ex.: int8, date, timestamptz.")
    family: ColumnTypeFamily

    @property
    def cast_type(self) -> str:
        return cast_type_of(self.column_type)


class PartitionDTO(BaseModel):
    name: str
    lower: Optional[Bound] = Field(None, description="Limite inferior (inclusivo).")
    upper: Optional[Bound] = Field(None, description="Limite superior (exclusivo).")
    is_default: bool = False
    range_key: Optional[str] = Field(None, description="Grupo de range, ex.: r1. None para o grupo padrão.")

    @property
    def is_original_data(self) -> bool:
        return self.name.endswith(f"_{ORIGINAL_DATA_SUFFIX}")

    @property
    def is_selectable(self) -> bool:
        return not self.is_default and not self.is_original_data and self.lower is not None and self.upper is not None


class RangeGroupDTO(BaseModel):
    key: Optional[str] = None
    partitions: List[PartitionDTO] = Field(default_factory=list)

    def bounded(self) -> List[PartitionDTO]:
        """
        Partições com limites definidos (inclui a de dados originais), ordenadas pelo limite inferior.
        """
        return sorted(
            [p for p in self.partitions if not p.is_default and p.lower is not None and p.upper is not None],
            key=lambda p: p.lower,
        )

    def selectable(self) -> List[PartitionDTO]:
        return [p for p in self.bounded() if p.is_selectable]

    def last(self) -> Optional[PartitionDTO]:
        selectable = self.selectable()
        return selectable[-1] if selectable else None

    def oldest(self) -> Optional[PartitionDTO]:
        selectable = self.selectable()
        return selectable[0] if selectable else None

    def is_contiguous(self) -> bool:
        bounded = self.bounded()
        return all(current.upper == following.lower for current, following in zip(bounded, bounded[1:]))


class PartitionedTableDTO(BaseModel):
    schema_name: str
    table_name: str
    key: PartitionKeyDTO
    groups: List[RangeGroupDTO] = Field(default_factory=list)
    default_partition: Optional[PartitionDTO] = None

    @property
    def has_range_groups(self) -> bool:
        return any(group.key is not None for group in self.groups)

    def active_groups(self) -> List[RangeGroupDTO]:
        """
        Grupos que controlam o crescimento: os grupos numerados, quando existem, senão o grupo padrão.
        """
        if self.has_range_groups:
            return [g for g in self.groups if g.key is not None]
        return [self.group(None) or RangeGroupDTO()]

    def group(self, key: Optional[str]) -> Optional[RangeGroupDTO]:
        return next((g for g in self.groups if g.key == key), None)

    def find(self, partition_name: str) -> Optional[PartitionDTO]:
        for group in self.groups:
            for partition in group.partitions:
                if partition.name == partition_name:
                    return partition
        if self.default_partition and self.default_partition.name == partition_name:
            return self.default_partition
        return None

    def partitions(self) -> List[PartitionDTO]:
        return [p for group in self.groups for p in group.partitions]

from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


class TableRefModel(BaseModel):
    schema_name: str
    table_name: str


class EnsureFreePartitionsModel(TableRefModel):
    min_free: int = Field(..., ge=0)


class CountFreePartitionsModel(TableRefModel):
    column_name: Optional[str] = None
    column_type: Optional[str] = None
    range_key: Optional[str] = None


class IndexStatementsModel(TableRefModel):
    columns: List[str] = Field(..., min_length=1)
    method: str = "btree"
    unique: bool = False


class ForeignKeyStatementsModel(TableRefModel):
    constraint_name: str
    parent_table: str
    child_columns: List[str] = Field(..., min_length=1)
    parent_columns: List[str] = Field(..., min_length=1)


class PruningConstraintsModel(TableRefModel):
    marker: str
    column_name: str


class DetachPartitionModel(TableRefModel):
    partition_name: str
    detach_oldest_only: bool = True


class DropDetachedPartitionModel(TableRefModel):
    partition_name: str


class EventModel(BaseModel):
    action: str
    data: dict = Field(default_factory=dict)


class RunMaintenanceModel(BaseModel):
    schema_name: Optional[str] = None
    table_name: Optional[str] = None

    @model_validator(mode="after")
    def check_table_reference(self):
        if (self.schema_name is None) != (self.table_name is None):
            raise ValueError("Informe schema_name e table_name juntos, ou nenhum dos dois.")
        return self

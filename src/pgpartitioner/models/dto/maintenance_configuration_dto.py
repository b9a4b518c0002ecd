from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pgpartitioner.models.partition_configuration import PartitionConfiguration
from pgpartitioner.service.boundaries import parse_interval


class DateConstraintDTO(BaseModel):
    marker: str = Field(..., description="Marcador usado no nome das constraints: <partição>_<marker>_min/max.")
    constraint_column: str = Field(..., description="Coluna date/timestamp usada para o pruning.")


class MaintenanceConfigurationDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_name: str
    table_name: str
    auto_maintenance: bool = Field(False, alias="auto-maintenance")
    nr: Optional[int] = Field(None, ge=0, description="Quantidade mínima de partições livres desejada.")
    date_constraint: Optional[DateConstraintDTO] = None
    detach: Optional[str] = Field(None, description="Idade a partir da qual as partições são desanexadas.")
    drop_detached: Optional[str] = Field(None, description="Carência entre o detach e o drop.")

    @field_validator("detach", "drop_detached")
    @classmethod
    def validate_interval(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_interval(value)
        return value

    @classmethod
    def from_model(cls, configuration: PartitionConfiguration) -> "MaintenanceConfigurationDTO":
        return cls.model_validate({
            **(configuration.configuration or {}),
            "schema_name": configuration.schema_name,
            "table_name": configuration.table_name,
        })

from typing import List
from pydantic import BaseModel, Field


class MaintenanceFailureDTO(BaseModel):
    schema_name: str
    table_name: str
    step: str
    error: str


class MaintenanceReportDTO(BaseModel):
    grown: List[str] = Field(default_factory=list)
    constrained: List[str] = Field(default_factory=list)
    detached: List[str] = Field(default_factory=list)
    dropped: List[str] = Field(default_factory=list)
    failures: List[MaintenanceFailureDTO] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def add_failure(self, schema_name: str, table_name: str, step: str, error: Exception):
        self.failures.append(
            MaintenanceFailureDTO(schema_name=schema_name, table_name=table_name, step=step, error=str(error))
        )

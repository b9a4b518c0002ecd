from pydantic import BaseModel


class IndexDefinitionDTO(BaseModel):
    name: str
    definition: str
    is_primary: bool = False
    is_unique: bool = False


class ForeignKeyDTO(BaseModel):
    name: str
    definition: str
    table_schema: str
    table_name: str


class TriggerDTO(BaseModel):
    name: str
    definition: str

from pydantic import BaseModel, Field

from pgpartitioner.models.column_type import PartitionStrategy


class ConvertTableDTO(BaseModel):
    schema_name: str = Field(..., description="Schema da tabela.")
    table_name: str = Field(..., description="Tabela comum a ser convertida.")
    column_name: str = Field(..., description="Coluna usada como chave do range.")
    start_key: str = Field(..., description="Menor valor existente na tabela original (inteiro ou YYYY-MM-DD).")
    end_key: str = Field(..., description="Limite dos dados originais; a nova partição começa a partir dele.")
    interval: str = Field(..., description="Largura da nova partição, ex.: 1 month, 1 week, 1000000.")
    strategy: PartitionStrategy = PartitionStrategy.NATIVE
    no_primary_key: bool = Field(False, description="Usa uma tabela template quando a coluna não faz parte da PK.")
    move_triggers: bool = Field(False, description="Move os triggers da tabela original para a nova tabela pai.")

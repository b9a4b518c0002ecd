import enum
from typing import Optional


class ColumnTypeFamily(str, enum.Enum):
    INTEGER = "integer"
    DATE = "date"
    TIMESTAMP = "timestamp"

    @property
    def is_temporal(self) -> bool:
        return self in (ColumnTypeFamily.DATE, ColumnTypeFamily.TIMESTAMP)


class PartitionStrategy(str, enum.Enum):
    NATIVE = "native"
    INHERITANCE = "inheritance"


# Nome do tipo no catálogo (ou alias SQL) -> (família, tipo usado nos casts)
_TYPE_FAMILIES = {
    "int2": (ColumnTypeFamily.INTEGER, "bigint"),
    "int4": (ColumnTypeFamily.INTEGER, "bigint"),
    "int8": (ColumnTypeFamily.INTEGER, "bigint"),
    "smallint": (ColumnTypeFamily.INTEGER, "bigint"),
    "integer": (ColumnTypeFamily.INTEGER, "bigint"),
    "bigint": (ColumnTypeFamily.INTEGER, "bigint"),
    "date": (ColumnTypeFamily.DATE, "date"),
    "timestamp": (ColumnTypeFamily.TIMESTAMP, "timestamp"),
    "timestamp without time zone": (ColumnTypeFamily.TIMESTAMP, "timestamp"),
    "timestamptz": (ColumnTypeFamily.TIMESTAMP, "timestamptz"),
    "timestamp with time zone": (ColumnTypeFamily.TIMESTAMP, "timestamptz"),
}


def family_of(type_name: Optional[str]) -> Optional[ColumnTypeFamily]:
    """
    Retorna a família do tipo ou None quando o tipo não é suportado.
    """
    if not type_name:
        return None
    entry = _TYPE_FAMILIES.get(type_name.strip().lower())
    return entry[0] if entry else None


def cast_type_of(type_name: str) -> str:
    return _TYPE_FAMILIES[type_name.strip().lower()][1]

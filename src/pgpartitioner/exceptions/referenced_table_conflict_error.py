from .partition_maintenance_error import PartitionMaintenanceError

class ReferencedTableConflictError(PartitionMaintenanceError):
    """Particionamento por herança não suporta tabelas referenciadas por FKs."""

    def __init__(self, message="Table is referenced by other tables"):
        super().__init__(message)

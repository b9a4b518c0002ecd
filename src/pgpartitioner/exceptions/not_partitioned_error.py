from .partition_maintenance_error import PartitionMaintenanceError

class NotPartitionedError(PartitionMaintenanceError):
    """A tabela não possui chave de particionamento por range registrada."""

    def __init__(self, message="Table is not range partitioned"):
        super().__init__(message)

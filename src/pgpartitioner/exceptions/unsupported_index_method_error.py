from .partition_maintenance_error import PartitionMaintenanceError

class UnsupportedIndexMethodError(PartitionMaintenanceError):
    """Método de índice fora de btree, hash, gist, spgist, gin e brin."""

    def __init__(self, message="Index method is not supported"):
        super().__init__(message)

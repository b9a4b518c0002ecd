from .partition_maintenance_error import PartitionMaintenanceError

class NotOldestPartitionError(PartitionMaintenanceError):
    """O detach padrão só aceita a partição mais antiga do grupo."""

    def __init__(self, message="Partition is not the oldest one"):
        super().__init__(message)

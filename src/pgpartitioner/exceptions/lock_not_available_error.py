from .partition_maintenance_error import PartitionMaintenanceError

class LockNotAvailableError(PartitionMaintenanceError):
    """O lock necessário não foi obtido dentro do lock_timeout."""

    def __init__(self, message="Lock not available"):
        super().__init__(message)

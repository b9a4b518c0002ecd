from .partition_maintenance_error import PartitionMaintenanceError

class PartitionStillAttachedError(PartitionMaintenanceError):
    """A partição ainda está anexada a alguma tabela pai."""

    def __init__(self, message="Partition is still attached"):
        super().__init__(message)

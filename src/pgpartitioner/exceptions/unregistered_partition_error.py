from .partition_maintenance_error import PartitionMaintenanceError

class UnregisteredPartitionError(PartitionMaintenanceError):
    """Não existe registro de detach para a partição."""

    def __init__(self, message="Partition has no detach record"):
        super().__init__(message)

from .partition_maintenance_error import PartitionMaintenanceError

class LockTimeoutExhaustedError(PartitionMaintenanceError):
    """Todas as tentativas de obter o lock falharam."""

    def __init__(self, message="Lock retries exhausted"):
        super().__init__(message)

from .partition_maintenance_error import PartitionMaintenanceError

class UnsupportedColumnTypeError(PartitionMaintenanceError):
    """O tipo da coluna não pertence às famílias inteiro, date ou timestamp."""

    def __init__(self, message="Column type is not supported"):
        super().__init__(message)

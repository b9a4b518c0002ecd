from .partition_maintenance_error import PartitionMaintenanceError

class NotAPartitionError(PartitionMaintenanceError):
    """A relação informada não é partição da tabela."""

    def __init__(self, message="Relation is not a partition of the table"):
        super().__init__(message)

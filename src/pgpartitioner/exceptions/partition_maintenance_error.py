class PartitionMaintenanceError(Exception):
    """Exceção base para falhas na manutenção de tabelas particionadas."""

    def __init__(self, message="Partition maintenance failed"):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return f"{self.__class__.__name__}: {self.message}"

from sqlalchemy import Column, JSON, Text
from pgpartitioner.config.constants import REGISTRY_SCHEMA
from .base import AbstractBase

class PartitionConfiguration(AbstractBase):
    __tablename__ = 'partition_configuration'
    __table_args__ = {"schema": REGISTRY_SCHEMA}

    schema_name = Column(Text, primary_key=True)
    table_name = Column(Text, primary_key=True)
    configuration = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<PartitionConfiguration(schema_name='{self.schema_name}', table_name='{self.table_name}')>"

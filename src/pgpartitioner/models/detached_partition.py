from sqlalchemy import Column, Date, Text
from sqlalchemy.dialects.postgresql import ARRAY
from pgpartitioner.config.constants import REGISTRY_SCHEMA
from .base import AbstractBase

class DetachedPartition(AbstractBase):
    __tablename__ = 'detached_partitions'
    __table_args__ = {"schema": REGISTRY_SCHEMA}

    schema_name = Column("schema", Text, primary_key=True)
    parent_relname = Column(Text, primary_key=True)
    partition_relname = Column(Text, primary_key=True)
    partition_range = Column("range", ARRAY(Text), nullable=True)
    detached_date = Column(Date, nullable=False)

    def __repr__(self):
        return f"<DetachedPartition({self.schema_name}.{self.partition_relname} of {self.parent_relname}, detached {self.detached_date})>"

from .partition_configuration import PartitionConfiguration
from .detached_partition import DetachedPartition

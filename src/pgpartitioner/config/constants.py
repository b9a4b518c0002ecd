import os

# Sufixos reservados para as tabelas criadas na conversão
ORIGINAL_DATA_SUFFIX = "mammoth"
TEMPLATE_SUFFIX = "template"
OVERFLOW_SUFFIX = "overflow"

TEMPORARY_CONSTRAINT_NAME = "partition_constraint"

LOCK_TIMEOUT_MS = int(os.getenv("PARTITION_LOCK_TIMEOUT_MS", "1000"))
ATTACH_RETRIES = int(os.getenv("PARTITION_ATTACH_RETRIES", "3"))
ATTACH_RETRY_SLEEP_SECONDS = float(os.getenv("PARTITION_ATTACH_RETRY_SLEEP", "10"))

MIN_FREE_PARTITIONS = 3
FREE_PARTITION_MARGIN = 2
MIN_DROP_COOLDOWN = "4 days"

MAX_IDENTIFIER_LENGTH = 63
INDEX_NAME_STEM_LENGTH = 59
INDEX_NAME_ATTEMPTS = 9
PRIMARY_KEY_STEM_LENGTH = 58
SUPPORTED_INDEX_METHODS = ("btree", "hash", "gist", "spgist", "gin", "brin")

REGISTRY_SCHEMA = os.getenv("PARTITION_REGISTRY_SCHEMA", "dba")

# SQLSTATE lock_not_available
LOCK_NOT_AVAILABLE = "55P03"

import logging
import os

logger = logging.getLogger("pgpartitioner")

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.addHandler(handler)

logger.setLevel(os.getenv("LOG_LEVEL", "DEBUG" if os.getenv("DEBUG") else "INFO").upper())

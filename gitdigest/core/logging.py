from loguru import logger
import sys

from gitdigest.core.config import settings

def setup_logging(sink=sys.stdout, level: str | None = None):
    logger.remove()
    logger.add(sink, level=level or settings.LOG_LEVEL)
    return logger

import logging, sys

from pricewatch.config import settings

def setup_logging():
    logger = logging.getLogger("pricewatch")
    if logger.handlers:
        return logger
    if settings.LOG_LEVEL:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.INFO if settings.ENV != "dev" else logging.DEBUG
    handler = logging.StreamHandler(sys.stdout)
    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger

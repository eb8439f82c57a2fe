import logging
import sys


def resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str = logging.INFO, *, debug_sync: bool = False):
    """Configures the root logger for gacha_node entrypoints."""
    logger = logging.getLogger()
    logger.setLevel(resolve_level(level))

    while logger.hasHandlers():
        logger.removeHandler(logger.handlers[0])

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname).1s | %(name)-30.30s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Request-level chatter from the sync adapter is only useful when chasing transport issues
    if debug_sync:
        logging.getLogger("gacha_node.infrastructure.http").setLevel(logging.DEBUG)

    return logger

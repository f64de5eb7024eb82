import logging
import sys

from creditledger.config import settings


def get_logger(name: str, tag: str = None) -> logging.Logger:
    """
    Named logger writing "[TAG] message" lines to stdout.
    The handler is attached once per logger, so repeated calls are cheap.
    """
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(f"[{(tag or name).upper()}] %(message)s"))
        log.addHandler(h)
    return log

import logging
import sys
from typing import Optional, TextIO

FORMAT = "[%(tag)s] %(message)s"


class TagFilter(logging.Filter):
    # oddshell.executor -> [executor]
    def filter(self, record: logging.LogRecord) -> bool:
        record.tag = record.name.rsplit(".", 1)[-1]
        return True


def setup_logging(level: str = "WARNING", stream: Optional[TextIO] = None) -> logging.Logger:
    """Send oddshell diagnostics to stderr; stdout only ever carries pipeline output."""
    logger = logging.getLogger("oddshell")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(TagFilter())
    handler.setFormatter(logging.Formatter(FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger

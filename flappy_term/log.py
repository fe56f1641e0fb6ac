"""Logging setup. curses owns the screen while playing, so logs go to a file."""

import logging
from datetime import datetime


class CompactFormatter(logging.Formatter):
    """`12:01:33 [I] flappy_term.audio: message`"""

    def format(self, record):
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(log_file=None, level=logging.DEBUG):
    """Route the `flappy_term` logger to `log_file`, or nowhere."""
    root = logging.getLogger("flappy_term")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(CompactFormatter())
    else:
        handler = logging.NullHandler()
    root.addHandler(handler)
    return root

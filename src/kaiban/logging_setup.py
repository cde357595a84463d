"""Console logging for the kaiban command line."""

import logging
import sys


class _ConsoleNoiseFilter(logging.Filter):
    """Pass kaiban logs; let third-party loggers through only at ERROR+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "kaiban" or record.name.startswith("kaiban."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger with one stderr handler.

    Call once, early. Safe to call again: existing handlers are replaced.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.addFilter(_ConsoleNoiseFilter())
    root.addHandler(handler)

    logging.captureWarnings(True)

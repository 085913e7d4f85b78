import logging

from rich.console import Console
from rich.logging import RichHandler


def init_logger(debug=False):
    """Route dcprov log records to stderr through rich."""
    logger = logging.getLogger("dcprov")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=debug,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.propagate = False
    return logger

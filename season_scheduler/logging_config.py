import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level=logging.WARNING):
    # Create root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Log to stderr so JSON written to stdout stays clean
    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        log_time_format=DATE_FORMAT,
    )
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger.addHandler(console_handler)

    return root_logger

#!/usr/bin/env python3
"""Console logger shared by the controller modules"""

import copy
import logging

COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",
}

FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)s] [%(name)s] %(message)s"
DATEFMT = "%H:%M:%S"


class ConsoleFormatter(logging.Formatter):
    """Formatter printing lower-case, optionally coloured, level names"""

    def __init__(self, *args, use_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = use_color

    def format(self, record):
        record_copy = copy.copy(record)
        original_levelname = record_copy.levelname
        record_copy.levelname = record_copy.levelname.lower()
        if self.use_color:
            color = COLORS.get(original_levelname, COLORS["RESET"])
            record_copy.levelname = f"{color}{record_copy.levelname}{COLORS['RESET']}"
        return super().format(record_copy)


def get_logger(
    name: str,
    stdout_level: str = "info",
    use_color: bool = True
) -> logging.Logger:
    """
    Get a logger with a single console handler

    Calling this twice with the same name reconfigures the handler
    instead of stacking a second one.

    Args:
        name: Logger name
        stdout_level: Minimum level printed on the console
        use_color: Colour the level name

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        ConsoleFormatter(FORMAT, datefmt=DATEFMT, use_color=use_color)
    )
    console_handler.setLevel(getattr(logging, stdout_level.upper(), logging.INFO))
    logger.addHandler(console_handler)

    return logger

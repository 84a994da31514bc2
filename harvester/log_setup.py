"""
Logging configuration.

error.log receives errors only, combined.log everything at INFO and
above. Outside production the same records also go to the console.
"""

import logging
from pathlib import Path
from typing import Union

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def configure_logging(
    log_dir: Union[str, Path] = "logs",
    production: bool = False,
    level: int = logging.INFO
):
    """
    Attach file and console handlers to the ``harvester`` logger.

    Args:
        log_dir: Directory for error.log and combined.log
        production: Skip the console handler when True
        level: Minimum level for combined.log and the console
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger("harvester")
    root.setLevel(min(level, logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    file_formatter = logging.Formatter(FILE_FORMAT)

    error_handler = logging.FileHandler(log_dir / "error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_formatter)
    root.addHandler(error_handler)

    combined_handler = logging.FileHandler(log_dir / "combined.log", encoding="utf-8")
    combined_handler.setLevel(level)
    combined_handler.setFormatter(file_formatter)
    root.addHandler(combined_handler)

    if not production:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        root.addHandler(console)

"""
Logging setup for Aloe.

Every module logs through a child of the ``aloe`` logger
(``aloe.chain``, ``aloe.eligibility``, ``aloe.storage.secrets``, ...).
The first ``get_logger`` call installs a colored stderr handler at INFO;
an explicit ``setup_logging`` call replaces it, so the CLI can raise or
lower verbosity after modules have already been imported.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import colorlog

ROOT_NAME = "aloe"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


class AloeLogger:
    """Owns the handlers attached to the ``aloe`` logger."""

    _configured = False
    _log_file: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[Union[str, Path]] = None,
        log_to_file: bool = False,
    ):
        """
        (Re)configure the ``aloe`` logger.

        Handlers installed by a previous call are removed first. With
        ``log_to_file`` the full DEBUG stream also goes to
        ``<log_dir>/aloe.log`` regardless of the console level.
        """
        root = logging.getLogger(ROOT_NAME)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

        console = colorlog.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(colorlog.ColoredFormatter(
            "%(log_color)s%(levelname)-8s%(reset)s %(name)s: %(message)s",
            datefmt=DATE_FORMAT,
            log_colors=LOG_COLORS,
        ))
        root.addHandler(console)

        cls._log_file = None
        if log_to_file:
            directory = Path(log_dir) if log_dir else Path("logs")
            directory.mkdir(parents=True, exist_ok=True)
            cls._log_file = directory / "aloe.log"
            file_handler = logging.FileHandler(cls._log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt=DATE_FORMAT,
            ))
            root.addHandler(file_handler)

        root.setLevel(logging.DEBUG if log_to_file else level)
        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.setup()
        return logging.getLogger(f"{ROOT_NAME}.{name}")

    @classmethod
    def log_file(cls) -> Optional[Path]:
        """Path of the active log file, if file logging is on."""
        return cls._log_file


def get_logger(name: str) -> logging.Logger:
    """Child logger for a subsystem, e.g. ``get_logger("chain")``."""
    return AloeLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    log_to_file: bool = False,
):
    AloeLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)

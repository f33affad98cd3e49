"""Logging for the CLI: Rich output on stderr so rendered views on stdout stay clean."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console

LEVELS = ("debug", "info", "warning", "error")

stderr_console = Console(stderr=True)


def parse_level(level: str) -> int:
    name = level.lower()
    if name not in LEVELS:
        raise ValueError(f"Unknown log level '{level}'. Valid: {', '.join(LEVELS)}")
    return getattr(logging, name.upper())


def setup_logging(level: str = "info", log_file: Path | None = None, client: str = "cli") -> logging.Logger:
    """Configure the weekplan logger.

    Console output goes through Rich at the requested level. A log file, when
    given, always receives debug output tagged with the client name so logs
    from a shared store can be told apart (e.g. "cli" vs "display").
    """
    from rich.logging import RichHandler

    numeric_level = parse_level(level)
    logger = logging.getLogger("weekplan")
    logger.setLevel(logging.DEBUG if log_file is not None else numeric_level)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = RichHandler(
        console=stderr_console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(numeric_level)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(f"%(asctime)s [{client}] %(name)s %(levelname)s %(message)s")
        )
        logger.addHandler(file_handler)

    return logger

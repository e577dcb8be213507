from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", *, log_file: Path | None = None) -> None:
    """Configure the root logger: stdout always, plus an optional log file.

    Safe to call again (e.g. on NiceGUI reloads); previous handlers are replaced.
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        print(f"Invalid log level: {level}, defaulting to INFO")
        numeric_level = logging.INFO

    # e.g. "2026-10-18 10:00:00 [INFO] fabplan.data.repository: Config updated: workload_seed=7"
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # Web stack chatter
    for noisy in ("uvicorn.access", "watchfiles", "nicegui"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

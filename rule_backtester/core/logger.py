"""
Logging setup. Console plus optional file; the file may log at a finer level.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "rule_backtester"


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
    file_level: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the package logger: console at `level`, optional file at `file_level`
    (defaults to `level`).
    """
    console_level = getattr(logging, level.upper(), logging.INFO)
    fh_level = getattr(logging, (file_level or level).upper(), console_level)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(min(console_level, fh_level))
    root.handlers.clear()

    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_fmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt=date_fmt)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir and log_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / log_file
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(fh_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    return root

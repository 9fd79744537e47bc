"""Loguru configuration with timing for aggregation passes.

This module provides centralized loguru configuration with:
- Colored console output
- Structured JSON logging, one file per component
- A context manager for timing refresh and rebuild passes
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "COMPONENTS",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("updater", "refresher", "queries", "storage", "engine")


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "100 MB",
    retention: str = "10 days",
    compression: str = "zip",
    enable_console: bool = True,
    enable_timing_logs: bool = True,
) -> None:
    """Configure loguru with structured logging and timing support.

    Parameters
    ----------
    log_dir
        Directory for JSON log files; ``None`` logs to the console only
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "100 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days", "1 week")
    compression
        Compression for rotated logs (zip, gz, bz2, xz)
    enable_console
        Enable console output
    enable_timing_logs
        Enable separate timing logs file

    Example
    -------
    >>> configure_loguru(log_dir=Path("logs"), level="INFO")
    """
    logger.remove()
    logger.configure(extra={"component": "engine"})

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_dir / "bettotals.jsonl",
        format="{message}",
        level=level,
        rotation=rotation,
        retention=retention,
        compression=compression,
        serialize=True,
        backtrace=True,
        diagnose=False,
        enqueue=True,
    )

    if enable_timing_logs:
        logger.add(
            log_dir / "timing.jsonl",
            format="{message}",
            level="DEBUG",
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=True,
            enqueue=True,
            filter=lambda record: record["extra"].get("timing", False),
        )

    for component in COMPONENTS:
        logger.add(
            log_dir / f"{component}.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=True,
            enqueue=True,
            filter=lambda record, comp=component: record["extra"].get("component") == comp,
        )

    logger.bind(component="engine").info("Loguru configured", log_dir=str(log_dir), level=level)


def get_logger(component: str = "engine") -> Any:
    """Get logger instance bound to a component.

    Parameters
    ----------
    component
        Component name (updater, refresher, queries, storage, engine)

    Returns
    -------
    Logger
        Loguru logger bound to component
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "engine",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Context manager for timing an operation.

    Yields
    ------
    dict
        Context dictionary; keys added to it are logged with the END record

    Example
    -------
    >>> with timing_context("refresh_all", component="refresher") as ctx:
    ...     ctx["reset"] = 3
    """
    start_ns = time.perf_counter_ns()
    context: dict[str, Any] = dict(metadata)

    bound = logger.bind(component=component, timing=True, operation=operation)
    bound.debug(f"START: {operation}", phase="start", **metadata)

    try:
        yield context
    finally:
        duration_ns = time.perf_counter_ns() - start_ns
        bound.info(
            f"END: {operation}",
            phase="end",
            duration_ms=duration_ns / 1_000_000,
            **context,
        )

"""
Structured logging module using structlog

Features
--------
• Structured key/value events for the reasoning loop, tools and approvals
• Console output, pretty (with optional colour) or JSON
• Optional file logging with rotation
• Per-library log levels (LiteLLM and its HTTP stack are noisy)
• Automatic method entry/exit tracing
"""
from __future__ import annotations
import json
import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict
from functools import wraps

import structlog


_DEFAULT_LIBRARY_LEVELS = {"LiteLLM": "WARNING", "httpx": "WARNING", "httpcore": "WARNING"}


def _supports_colour() -> bool:
    """True if stdout seems to handle ANSI colour codes."""
    if os.getenv("NO_COLOR"):
        return False
    if sys.platform == "win32" and os.getenv("TERM") != "xterm":
        return False
    return sys.stdout.isatty()


def _read_cfg(path: str | Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Logging config file not found: {p}")
    try:
        return json.loads(p.read_text()).get("logging", {})
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in logging config: {e}") from e


_RENDERERS = ("json", "pretty")


def _console_renderer(cfg: Dict[str, Any]):
    renderer = (os.getenv("LOG_CONSOLE_RENDERER") or cfg.get("console", {}).get("renderer", "pretty")).lower()
    if renderer not in _RENDERERS:
        raise ValueError(f"Invalid console logging renderer option: '{renderer}'. Allowed: {', '.join(_RENDERERS)}")
    if renderer == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=_supports_colour())


def init_logger(config_path: str | Path | None = None) -> None:
    """Configure structlog with console and optional file output."""
    cfg = _read_cfg(config_path)
    level = getattr(logging, cfg.get("level", "INFO").upper(), logging.INFO)

    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],  # type: ignore[list-item]
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)

    if cfg.get("console", {}).get("enabled", True):
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _console_renderer(cfg)],
                foreign_pre_chain=shared_processors,  # type: ignore[arg-type]
            )
        )
        root.addHandler(console)

    # Setup file logging if enabled
    file_cfg = cfg.get("file", {})
    if file_cfg.get("enabled", False):
        path = Path(file_cfg.get("path", "logs/cogent.log"))
        path.parent.mkdir(parents=True, exist_ok=True)

        if file_cfg.get("rotation", {}).get("enabled", True):
            handler = RotatingFileHandler(
                path,
                maxBytes=file_cfg.get("rotation", {}).get("max_bytes", 10_000_000),
                backupCount=file_cfg.get("rotation", {}).get("backup_count", 5),
            )
        else:
            handler = logging.FileHandler(path)  # type: ignore[assignment]

        handler.setLevel(getattr(logging, file_cfg.get("level", "DEBUG").upper(), logging.DEBUG))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, structlog.processors.JSONRenderer()],
                foreign_pre_chain=shared_processors,  # type: ignore[arg-type]
            )
        )
        root.addHandler(handler)

    libraries = {**_DEFAULT_LIBRARY_LEVELS, **cfg.get("libraries", {})}
    for name, lib_level in libraries.items():
        logging.getLogger(name).setLevel(getattr(logging, str(lib_level).upper(), logging.WARNING))


def get_logger(name: str):
    """Get a structlog logger instance."""
    return structlog.get_logger(name)


def trace_method(func):
    """Decorator to automatically trace method entry/exit at debug level."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        logger = get_logger(func.__module__)
        method_name = f"{self.__class__.__name__}.{func.__name__}"

        logger.debug("method_entry", method=method_name)
        try:
            result = func(self, *args, **kwargs)
            logger.debug("method_exit", method=method_name, success=True)
            return result
        except Exception as e:
            logger.debug("method_exit", method=method_name, success=False, error=str(e))
            raise
    return wrapper

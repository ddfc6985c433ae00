"""
Centralized logging factory for the patch parser.

Modules obtain loggers through get_logger/get_class_logger so that every
component logs under a predictable dotted name.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from ..settings import ParserSettings, get_settings


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Create or get a logger with the specified name.

    Args:
        name: Logger name, typically __name__ from the calling module
        level: Optional logging level override

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    return logger


def get_class_logger(class_instance: Any) -> logging.Logger:
    """
    Create a logger for a class instance with a descriptive name.

    Args:
        class_instance: Instance of the class that needs a logger

    Returns:
        Logger with name format: module.ClassName
    """
    module_name = class_instance.__class__.__module__
    class_name = class_instance.__class__.__name__
    logger_name = f"{module_name}.{class_name}"

    return get_logger(logger_name)


def resolve_log_level(level: int | str) -> int:
    """Translate a level name such as "debug" into its logging constant."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(
    level: int | str | None = None,
    format_string: str | None = None,
    use_rich: bool = True,
    settings: ParserSettings | None = None,
) -> None:
    """
    Configure global logging settings.

    Args:
        level: Logging level, as a logging constant or level name; defaults
            to DEBUG when settings.debug is set and settings.log_level otherwise
        format_string: Optional custom format string for the plain handler
        use_rich: Render records through rich instead of a plain stream
        settings: Settings to read the default level from (global settings
            when omitted)
    """
    if level is None:
        settings = settings or get_settings()
        level = logging.DEBUG if settings.debug else settings.log_level
    numeric_level = resolve_log_level(level)

    if use_rich:
        console = Console(stderr=True, width=120)
        rich_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
            log_time_format="[%H:%M:%S]",
        )
        logging.basicConfig(
            level=numeric_level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[rich_handler],
            force=True,
        )
        return

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=numeric_level,
        format=format_string,
        handlers=[logging.StreamHandler()],
        force=True,
    )

"""
Logging for minimal42.

Example:
    from minimal42.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Planning shorewall")
    logger.warning("Several content sources configured")
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

RUN_THEME = Theme({
    "log.time": "dim cyan",
    "log.level.debug": "dim blue",
    "log.level.info": "green",
    "log.level.warning": "yellow",
    "log.level.error": "bold red",
    "log.level.critical": "bold white on red",
    "run.action.create": "green",
    "run.action.update": "yellow",
    "run.action.delete": "red",
    "run.noop": "cyan",
})

console = Console(theme=RUN_THEME, stderr=True)

_initialized = False


def setup_logging(
    level: str = "INFO",
    show_time: bool = True,
    show_path: bool = False,
    rich_tracebacks: bool = True,
) -> None:
    """
    Initialize logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        show_time: Show timestamps in log output
        show_path: Show file path in log output
        rich_tracebacks: Use rich formatting for tracebacks

    Note:
        Only the first call installs the handler; later calls just
        adjust the level.
    """
    global _initialized

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if _initialized:
        logging.getLogger().setLevel(numeric_level)
        return

    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(
        level=numeric_level,
        handlers=[handler],
        force=True,
    )

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if not _initialized:
        setup_logging()

    return logging.getLogger(name)


class RunLogger:
    """
    Logger for convergence runs.

    Wraps a standard logger and adds console helpers for reporting
    resource actions.
    """

    SYMBOLS = {
        "create": "+",
        "update": "~",
        "delete": "-",
    }

    def __init__(self, name: str):
        self.logger = get_logger(name)
        self.console = console

    def debug(self, message: str, *args, **kwargs) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self.logger.error(message, *args, **kwargs)

    def action(self, action: str, resource_id: str, details: Optional[str] = None) -> None:
        """
        Print a resource action (create/update/delete).

        Args:
            action: Action type (create, update, delete)
            resource_id: Resource identifier
            details: Optional details about the action
        """
        symbol = self.SYMBOLS.get(action.lower(), "•")
        style = f"run.action.{action.lower()}"

        msg = f"[{style}]{symbol}[/{style}] {escape(resource_id)}"
        if details:
            msg += f" [dim]({escape(details)})[/dim]"

        self.console.print(msg)

    def noop(self, message: str) -> None:
        """Print a change that was computed but not applied."""
        self.console.print(f"[run.noop]\\[NOOP][/run.noop] {escape(message)}")


def get_run_logger(name: str) -> RunLogger:
    """
    Get a RunLogger instance for the given module.

    Example:
        logger = get_run_logger(__name__)
        logger.action("create", "file:shorewall.conf")
    """
    return RunLogger(name)

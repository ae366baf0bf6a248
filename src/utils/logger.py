# src/utils/logger.py
# Logging setup for BlogScout
# ===========================

"""
Central loguru configuration.

Every pipeline component asks for a module logger through
``get_logger().create_module_logger("pipeline.classifier")`` and emits
structured payloads (dicts with an ``event`` key) rather than free text, so
file logs can be grepped by event name.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from config.settings import DEBUG, LOGGING_CONFIG


class BlogScoutLogger:
    """Configures loguru sinks once and hands out module-bound loggers."""

    def __init__(self):
        self.is_configured = False
        self.log_file_path: Optional[Path] = None

    def configure_logging(self, config: Optional[Dict[str, Any]] = None):
        """
        Install console and (optionally) file handlers.

        Args:
            config: Logging configuration. Defaults to ``LOGGING_CONFIG``.
        """
        if self.is_configured:
            logger.debug("Logger already configured, skipping")
            return

        config = config or LOGGING_CONFIG

        logger.remove()
        self._configure_console_handler(config)
        if config.get("file_path"):
            self._configure_file_handler(config)

        self.is_configured = True
        logger.debug(f"Logging configured: {config}")

    def _configure_console_handler(self, config: Dict[str, Any]):
        if DEBUG:
            console_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[module]}</cyan> | "
                "<level>{message}</level>"
            )
            console_level = "DEBUG"
        else:
            console_format = (
                "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]} | {message}"
            )
            console_level = config.get("level", "INFO")

        logger.configure(extra={"module": "blogscout"})
        logger.add(
            sys.stderr,
            format=console_format,
            level=console_level,
            colorize=True,
            backtrace=DEBUG,
            diagnose=DEBUG,
        )

    def _configure_file_handler(self, config: Dict[str, Any]):
        self.log_file_path = Path(config["file_path"])
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{process.id: <6} | "
            "{extra[module]} | "
            "{message}"
        )

        logger.add(
            str(self.log_file_path),
            format=file_format,
            level=config.get("level", "INFO"),
            rotation=config.get("max_file_size", "10 MB"),
            retention=config.get("retention", "14 days"),
            compression="gz",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    def create_module_logger(self, module_name: str) -> Any:
        """Return a loguru logger bound to ``module_name``."""
        if not self.is_configured:
            self.configure_logging()
        return logger.bind(module=module_name)


_logger_instance = None


def get_logger() -> BlogScoutLogger:
    """Return the process-wide logger configurator."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = BlogScoutLogger()
        _logger_instance.configure_logging()
    return _logger_instance


def setup_logging(config: Optional[Dict[str, Any]] = None) -> BlogScoutLogger:
    """
    Configure logging at process start-up.

    Passing ``config`` forces a reconfiguration with the given settings.
    """
    logger_instance = get_logger()
    if config:
        logger_instance.is_configured = False
        logger_instance.configure_logging(config)
    return logger_instance

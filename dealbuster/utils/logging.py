"""
Structured logging utilities for the Dealbuster system.

Component loggers emit one JSON document per record so that promotion,
consensus and alert latencies can be grepped out of the log files when
comparing the centralized and decentralized models.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

ROOT_LOGGER = "dealbuster"

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_COMPONENT_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
_MB = 1024 * 1024


class ComponentLogger:
    """
    Structured logger for one component.

    Every record is a JSON object carrying the component name, the message,
    the bound context and any per-call ``extra`` fields.
    """

    def __init__(self, component_name: str, extra_context: Optional[Dict[str, Any]] = None):
        """
        Args:
            component_name: Name of the component (e.g. 'evaluator', 'notifier')
            extra_context: Fields included in every record from this logger
        """
        self.component_name = component_name
        self.extra_context = extra_context or {}
        self.logger = logging.getLogger(f"{ROOT_LOGGER}.{component_name}")

    def bind(self, **context: Any) -> "ComponentLogger":
        """Return a logger for the same component with additional context."""
        return ComponentLogger(self.component_name, {**self.extra_context, **context})

    def _format_message(self, message: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "component": self.component_name,
            "message": message,
            **self.extra_context,
        }

        if extra:
            log_data.update(extra)

        return log_data

    def _log(
        self,
        level: int,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        log_data = self._format_message(message, extra)
        if exc_info:
            log_data["exception"] = True
        self.logger.log(level, json.dumps(log_data, default=str), exc_info=exc_info)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.WARNING, message, extra)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self._log(logging.ERROR, message, extra, exc_info=exc_info)


class LoggingManager:
    """
    Owns the handlers behind every Dealbuster logger.

    Records go to the console and to ``dealbuster.log``; errors are also
    copied to ``errors.log``; each listed component additionally writes its
    own file so a single stage can be followed in isolation.
    """

    COMPONENTS = [
        "deal_registry",
        "alert_registry",
        "evaluator",
        "alert_matcher",
        "notifier",
        "promotion_scheduler",
        "websocket_broadcaster",
        "web_api",
    ]

    def __init__(self, log_dir: str = "logs", log_level: str = "INFO"):
        """
        Args:
            log_dir: Directory for log files, created if missing
            log_level: Level name for the console and main log file
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, log_level.upper())
        self.component_loggers: Dict[str, ComponentLogger] = {}
        self._handlers: List[logging.Handler] = []

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()

    def _rotating_handler(
        self, filename: str, max_mb: int, backups: int, level: int, fmt: str
    ) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / filename, maxBytes=max_mb * _MB, backupCount=backups
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt))
        return handler

    def _attach(self, logger: logging.Logger, handler: logging.Handler) -> None:
        logger.addHandler(handler)
        self._handlers.append(handler)

    def _setup_logging(self):
        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(self.log_level)
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(logging.Formatter(_FORMAT))
        self._attach(root_logger, console_handler)

        self._attach(
            root_logger,
            self._rotating_handler("dealbuster.log", 10, 5, self.log_level, _FORMAT),
        )
        self._attach(
            root_logger,
            self._rotating_handler("errors.log", 5, 3, logging.ERROR, _FORMAT),
        )

        for component in self.COMPONENTS:
            component_logger = logging.getLogger(f"{ROOT_LOGGER}.{component}")
            component_logger.handlers.clear()
            self._attach(
                component_logger,
                self._rotating_handler(
                    f"{component}.log", 5, 2, self.log_level, _COMPONENT_FORMAT
                ),
            )

    def get_component_logger(
        self, component_name: str, extra_context: Optional[Dict[str, Any]] = None
    ) -> ComponentLogger:
        """Get or create a cached component logger."""
        cache_key = f"{component_name}_{hash(str(extra_context))}"

        if cache_key not in self.component_loggers:
            self.component_loggers[cache_key] = ComponentLogger(component_name, extra_context)

        return self.component_loggers[cache_key]

    def set_log_level(self, level: str):
        """Set the level of the root logger and every handler except errors.log."""
        log_level = getattr(logging, level.upper())
        logging.getLogger(ROOT_LOGGER).setLevel(log_level)

        for handler in self._handlers:
            if str(getattr(handler, "baseFilename", "")).endswith("errors.log"):
                continue
            handler.setLevel(log_level)

        self.log_level = log_level

    def close(self) -> None:
        """Detach and close every handler this manager installed."""
        for name in [ROOT_LOGGER] + [f"{ROOT_LOGGER}.{c}" for c in self.COMPONENTS]:
            logger = logging.getLogger(name)
            for handler in list(logger.handlers):
                if handler in self._handlers:
                    logger.removeHandler(handler)
                    handler.close()
        self._handlers.clear()


_logging_manager: Optional[LoggingManager] = None


def setup_logging(log_dir: str = "logs", log_level: str = "INFO") -> LoggingManager:
    """
    Configure Dealbuster logging, replacing any earlier configuration.

    Returns:
        The active LoggingManager
    """
    global _logging_manager
    if _logging_manager is not None:
        _logging_manager.close()
    _logging_manager = LoggingManager(log_dir, log_level)
    return _logging_manager


def shutdown_logging() -> None:
    """Close all handlers installed by ``setup_logging``."""
    global _logging_manager
    if _logging_manager is not None:
        _logging_manager.close()
        _logging_manager = None


def get_logger(component_name: str, extra_context: Optional[Dict[str, Any]] = None) -> ComponentLogger:
    """
    Get a component logger.

    Loggers obtained before ``setup_logging`` runs propagate to whatever
    handlers the host application configured.
    """
    if _logging_manager is None:
        return ComponentLogger(component_name, extra_context)

    return _logging_manager.get_component_logger(component_name, extra_context)

"""
Main application orchestrator for the Dealbuster system.

This module wires configuration, the deal service and the aiohttp
transport together and manages their lifecycle, including graceful
shutdown on SIGINT/SIGTERM.
"""

import asyncio
import signal
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from aiohttp import web

from .components.web_api import create_app
from .components.websocket_broadcaster import WebSocketBroadcaster
from .models.config import Configuration
from .services.config_manager import ConfigurationManager
from .services.deal_service import DealService
from .utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    get_error_tracker,
    with_error_handling,
)
from .utils.logging import get_logger, setup_logging


class ApplicationOrchestrator:
    """
    Main application orchestrator that coordinates all system components.
    """

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        """
        Initialize the application orchestrator.

        Args:
            config_path: Path to configuration file. If None, uses default paths.
            log_level: Overrides the configured log level when given.
        """
        self.config_path = config_path
        self.log_level = log_level
        self.logger = get_logger("orchestrator")
        self.error_tracker = get_error_tracker()

        self._running = False
        self._shutdown_event: Optional[asyncio.Event] = None

        self._config_manager: Optional[ConfigurationManager] = None
        self._config: Optional[Configuration] = None
        self._service: Optional[DealService] = None
        self._broadcaster: Optional[WebSocketBroadcaster] = None
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._startup_time: Optional[datetime] = None

    @property
    def service(self) -> Optional[DealService]:
        return self._service

    @with_error_handling(
        component="orchestrator",
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.CRITICAL,
        fallback_value=False,
        suppress_exceptions=True,
    )
    async def initialize(self) -> bool:
        """
        Load configuration and build every component.

        Returns:
            True if initialization successful, False otherwise.
        """
        self._config_manager = ConfigurationManager(self.config_path)
        self._config = self._config_manager.load_config()

        setup_logging(
            log_dir=self._config.logging.directory,
            log_level=self.log_level or self._config.logging.level,
        )
        self.logger = get_logger("orchestrator")
        self.logger.info(
            "Configuration loaded",
            extra={
                "config_path": self._config_manager.config_path,
                "engine": self._config.engine.to_dict(),
            },
        )

        self._service = DealService(mode_config=self._config.engine)
        self._broadcaster = WebSocketBroadcaster(self._service.notifier)
        self._app = create_app(self._service, self._broadcaster)

        self.logger.info("System initialization completed successfully")
        return True

    async def start(self) -> None:
        """Start serving HTTP and WebSocket clients."""
        if self._running:
            self.logger.warning("System is already running")
            return

        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(
            self._runner, self._config.server.host, self._config.server.port
        )
        await site.start()

        self._running = True
        self._startup_time = datetime.now()
        self.logger.info(
            "Server running",
            extra={
                "host": self._config.server.host,
                "port": self._config.server.port,
                "mode": self._service.get_config().mode.value,
            },
        )

    async def run(self) -> None:
        """Initialize, serve until a shutdown signal arrives, then clean up."""
        self._shutdown_event = asyncio.Event()

        if not await self.initialize():
            raise RuntimeError("System initialization failed")

        self._setup_signal_handlers()
        await self.start()

        try:
            await self._shutdown_event.wait()
        finally:
            await self.shutdown()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        if sys.platform == "win32":
            # add_signal_handler is unavailable on Windows event loops
            return

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self._signal_handler, signum)

    def _signal_handler(self, signum: int) -> None:
        self.logger.info(
            "Received shutdown signal, initiating graceful shutdown",
            extra={"signal": signum},
        )
        self.request_shutdown()

    async def shutdown(self) -> None:
        """Stop the server, close WebSocket clients and cancel promotion checks."""
        if not self._running:
            return

        self.logger.info("Shutting down")
        self._running = False

        if self._runner is not None:
            # Triggers the app's on_shutdown hooks
            await self._runner.cleanup()
            self._runner = None

        self.logger.info("Server closed")

    def get_system_status(self) -> Dict[str, Any]:
        """Get current system status."""
        uptime = None
        if self._startup_time:
            uptime = (datetime.now() - self._startup_time).total_seconds()

        status: Dict[str, Any] = {
            "running": self._running,
            "startup_time": self._startup_time.isoformat() if self._startup_time else None,
            "uptime_seconds": uptime,
            "errors": self.error_tracker.get_error_stats(),
        }

        if self._service is not None:
            status["engine"] = self._service.get_config().to_dict()
            status["stats"] = self._service.get_stats().to_dict()

        return status

"""Mode controller holding the engine's operating mode and thresholds."""

from typing import Any, Optional

from ..interfaces import IEventNotifier
from ..models.config import ModeConfig, OperatingMode
from ..models.events import Event, EventType
from ..utils.logging import get_logger

logger = get_logger("mode_controller")


class ModeController:
    """
    Owns the current ``ModeConfig``.

    One instance is injected into each evaluator, so independent engines in
    the same process never share mode state. Switching mode only affects
    evaluations that happen afterwards.
    """

    def __init__(self, notifier: IEventNotifier, config: Optional[ModeConfig] = None):
        self.notifier = notifier
        self._config = config or ModeConfig()
        self._config.validate()

    def get_config(self) -> ModeConfig:
        return self._config

    @property
    def mode(self) -> OperatingMode:
        return self._config.mode

    def set_mode(self, mode: Any) -> ModeConfig:
        """
        Replace the operating mode.

        Raises:
            ValidationError: if ``mode`` is not centralized or decentralized.
        """
        new_mode = OperatingMode.parse(mode)
        previous = self._config.mode
        self._config = self._config.with_mode(new_mode)

        logger.info(
            "Operating mode changed",
            extra={"previous_mode": previous.value, "mode": new_mode.value},
        )
        self.notifier.publish(
            Event(type=EventType.CONFIG_UPDATED, payload={"config": self._config.to_dict()})
        )
        return self._config

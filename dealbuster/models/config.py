"""
Configuration models for the system.
"""

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict

from ..utils.error_handling import ValidationError


class OperatingMode(Enum):
    """Aggregation model currently driving status transitions."""

    CENTRALIZED = "centralized"
    DECENTRALIZED = "decentralized"

    @classmethod
    def parse(cls, value: Any) -> "OperatingMode":
        if isinstance(value, OperatingMode):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError('Mode must be "centralized" or "decentralized"')


@dataclass(frozen=True)
class ModeConfig:
    """Mode and thresholds consumed by the evaluator."""

    mode: OperatingMode = OperatingMode.CENTRALIZED
    promotion_threshold: int = 5
    consensus_threshold: int = 3
    promotion_delay_seconds: float = 10.0

    def validate(self) -> bool:
        """Validate engine thresholds."""
        if not isinstance(self.mode, OperatingMode):
            raise ValueError("mode must be an OperatingMode")

        if not isinstance(self.promotion_threshold, int) or self.promotion_threshold <= 0:
            raise ValueError("Promotion threshold must be a positive integer")

        if not isinstance(self.consensus_threshold, int) or self.consensus_threshold <= 0:
            raise ValueError("Consensus threshold must be a positive integer")

        if (
            not isinstance(self.promotion_delay_seconds, (int, float))
            or self.promotion_delay_seconds < 0
        ):
            raise ValueError("Promotion delay must be a non-negative number of seconds")

        return True

    def with_mode(self, mode: OperatingMode) -> "ModeConfig":
        return replace(self, mode=mode)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data


@dataclass
class ServerConfig:
    """HTTP/WebSocket listener settings."""

    host: str = "0.0.0.0"
    port: int = 3000

    def validate(self) -> bool:
        if not self.host or not str(self.host).strip():
            raise ValueError("Server host cannot be empty")

        if not isinstance(self.port, int) or not (0 < self.port < 65536):
            raise ValueError("Server port must be an integer between 1 and 65535")

        return True


@dataclass
class LoggingConfig:
    """Log level and output directory."""

    level: str = "INFO"
    directory: str = "logs"

    def validate(self) -> bool:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(self.level).upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")

        if not self.directory or not str(self.directory).strip():
            raise ValueError("Log directory cannot be empty")

        return True


@dataclass
class Configuration:
    """System configuration."""

    engine: ModeConfig = field(default_factory=ModeConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> bool:
        self.engine.validate()
        self.server.validate()
        self.logging.validate()
        return True

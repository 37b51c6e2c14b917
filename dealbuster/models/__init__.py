"""
Data models for the Dealbuster system.

This module contains all data classes and type definitions used throughout
the application for representing deals, verifications, alerts, users,
configuration and published events.
"""

from .alert import Alert, AlertNotification
from .config import (
    Configuration,
    LoggingConfig,
    ModeConfig,
    OperatingMode,
    ServerConfig,
)
from .deal import Deal, DealDraft, DealStatus, Verdict, Verification
from .events import Event, EventType
from .stats import DealStats
from .user import User

__all__ = [
    "Alert",
    "AlertNotification",
    "Configuration",
    "LoggingConfig",
    "ModeConfig",
    "OperatingMode",
    "ServerConfig",
    "Deal",
    "DealDraft",
    "DealStatus",
    "Verdict",
    "Verification",
    "Event",
    "EventType",
    "DealStats",
    "User",
]

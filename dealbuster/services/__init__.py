"""
Service layer for the Dealbuster system.

This module contains the services that orchestrate the evaluation core
and load its configuration.
"""

from .config_manager import ConfigurationManager
from .deal_service import DealService

__all__ = [
    "ConfigurationManager",
    "DealService",
]

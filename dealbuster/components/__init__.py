"""
Core components for the Dealbuster system.

This module contains the registries, the evaluation rules, the alert
matcher, the mode controller and the event notifier, plus the aiohttp
transport that exposes them.
"""

from .alert_matcher import AlertMatcher
from .alert_registry import AlertRegistry
from .deal_registry import DealRegistry
from .evaluator import DealEvaluator, decide_consensus, decide_promotion
from .mode_controller import ModeController
from .notifier import EventNotifier
from .promotion_scheduler import PromotionScheduler
from .user_registry import UserRegistry

__all__ = [
    "AlertMatcher",
    "AlertRegistry",
    "DealRegistry",
    "DealEvaluator",
    "decide_consensus",
    "decide_promotion",
    "ModeController",
    "EventNotifier",
    "PromotionScheduler",
    "UserRegistry",
]

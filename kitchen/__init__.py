"""
Kitchen simulation package: stations, bundle instances, validation and the tick driver.
"""

from .engine import KitchenEngine
from .events import EventBus, KitchenEvent, KitchenListener, TimerScheduler
from .manager import BundleInstanceManager
from .plating import DecoComposer
from .state import CommandResult, GameState, MenuOrder, SettingItem
from .validation import LenientPolicy, StepValidator, StrictPolicy, policy_for_level

__all__ = [
    "KitchenEngine",
    "EventBus",
    "KitchenEvent",
    "KitchenListener",
    "TimerScheduler",
    "BundleInstanceManager",
    "DecoComposer",
    "CommandResult",
    "GameState",
    "MenuOrder",
    "SettingItem",
    "LenientPolicy",
    "StepValidator",
    "StrictPolicy",
    "policy_for_level",
]

"""
Type definitions for the brigade kitchen simulation
"""
from enum import Enum


class DifficultyLevel(str, Enum):
    """Game difficulty levels"""
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class CookingType(str, Enum):
    """Bundle cooking types"""
    HOT = "HOT"
    COLD = "COLD"


class StepType(str, Enum):
    """Recipe step kinds"""
    INGREDIENT = "INGREDIENT"
    ACTION = "ACTION"


class ActionType(str, Enum):
    """Player actions a recipe step may declare"""
    STIR_FRY = "STIR_FRY"
    FLIP = "FLIP"
    ADD_WATER = "ADD_WATER"
    BOIL = "BOIL"
    SIMMER = "SIMMER"
    DEEP_FRY = "DEEP_FRY"
    BLANCH = "BLANCH"
    DRAIN = "DRAIN"
    TORCH = "TORCH"
    SLICE = "SLICE"
    MIX = "MIX"
    MICROWAVE = "MICROWAVE"
    LIFT_BASKET = "LIFT_BASKET"


class IngredientCategory(str, Enum):
    """Ingredient categories driving wok cooling"""
    VEGETABLE = "VEGETABLE"
    SEAFOOD = "SEAFOOD"
    MEAT = "MEAT"
    EGG = "EGG"
    RICE = "RICE"
    NOODLE = "NOODLE"
    SEASONING = "SEASONING"
    SAUCE = "SAUCE"
    WATER = "WATER"
    BROTH = "BROTH"


class WokState(str, Enum):
    """Wok surface states"""
    CLEAN = "CLEAN"
    WET = "WET"
    DIRTY = "DIRTY"
    BURNED = "BURNED"
    OVERHEATING = "OVERHEATING"


class WokPosition(str, Enum):
    """Wok positions during a wash trip"""
    AT_BURNER = "AT_BURNER"
    MOVING_TO_SINK = "MOVING_TO_SINK"
    AT_SINK = "AT_SINK"
    MOVING_TO_BURNER = "MOVING_TO_BURNER"


class BasketStatus(str, Enum):
    """Fryer basket status"""
    EMPTY = "EMPTY"
    ASSIGNED = "ASSIGNED"
    BURNED = "BURNED"


class PowerLevel(str, Enum):
    """Microwave power levels"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class StationKind(str, Enum):
    """Cooking stations a bundle can be assigned to"""
    WOK = "WOK"
    FRYER = "FRYER"
    MICROWAVE = "MICROWAVE"


class OrderStatus(str, Enum):
    """Menu order status"""
    WAITING = "WAITING"
    COOKING = "COOKING"
    COMPLETED = "COMPLETED"


class DecoSourceType(str, Enum):
    """Where a decoration layer comes from"""
    DECO_ITEM = "DECO_ITEM"
    SETTING_ITEM = "SETTING_ITEM"
    BUNDLE = "BUNDLE"


class PlateShape(str, Enum):
    """Plate shapes"""
    BOWL = "BOWL"
    FLAT = "FLAT"
    DEEP = "DEEP"
    TRAY = "TRAY"


class TimeTier(str, Enum):
    """Serve time tiers"""
    PERFECT = "perfect"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"
    CANCELLED = "cancelled"


class EventKind(str, Enum):
    """Kitchen events emitted to listeners"""
    ORDER_ADDED = "order_added"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_REMOVED = "order_removed"
    BUNDLE_ASSIGNED = "bundle_assigned"
    INGREDIENT_ADDED = "ingredient_added"
    ACTION_PERFORMED = "action_performed"
    STEP_ADVANCED = "step_advanced"
    BUNDLE_COMPLETED = "bundle_completed"
    BUNDLE_PLATED = "bundle_plated"
    DECO_APPLIED = "deco_applied"
    BUNDLE_MERGED = "bundle_merged"
    BUNDLE_SERVED = "bundle_served"
    BUNDLE_DISCARDED = "bundle_discarded"
    WOK_BURNED = "wok_burned"
    WOK_OVERHEATING = "wok_overheating"
    WOK_WASHED = "wok_washed"
    BASKET_BURNED = "basket_burned"
    REJECTED = "rejected"
    TICK = "tick"


class RejectionReason(str, Enum):
    """Why a command was refused"""
    WRONG_INGREDIENT = "wrong_ingredient"
    DUPLICATE_INGREDIENT = "duplicate_ingredient"
    WRONG_AMOUNT = "wrong_amount"
    WRONG_ACTION = "wrong_action"
    NOT_ACTION_STEP = "not_action_step"
    NOT_INGREDIENT_STEP = "not_ingredient_step"
    STEPS_EXHAUSTED = "steps_exhausted"
    AUTOMATIC_ACTION = "automatic_action"
    PRECONDITION_FAILED = "precondition_failed"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    SLOT_OCCUPIED = "slot_occupied"
    STATION_NOT_READY = "station_not_ready"
    STATION_BUSY = "station_busy"
    INVALID_LOCATION = "invalid_location"
    INVALID_CONFIG = "invalid_config"
    ORDER_CLOSED = "order_closed"
    BUNDLE_NOT_IN_RECIPE = "bundle_not_in_recipe"
    DUPLICATE_BUNDLE = "duplicate_bundle"
    STEPS_INCOMPLETE = "steps_incomplete"
    TIMER_RUNNING = "timer_running"
    PLATE_COMPLETE = "plate_complete"
    INVALID_GRID_POSITION = "invalid_grid_position"
    NO_DECO_RULE = "no_deco_rule"
    ORDER_VIOLATION = "order_violation"
    ALREADY_APPLIED = "already_applied"
    EXCEEDS_REMAINING = "exceeds_remaining"
    INSUFFICIENT_STOCK = "insufficient_stock"
    DIFFERENT_ORDER = "different_order"
    NOT_MAIN_DISH = "not_main_dish"
    NOT_SIDE_BUNDLE = "not_side_bundle"


class BrigadeError(Exception):
    """Base class for consistency errors raised by the simulation"""


class CatalogError(BrigadeError):
    """The catalog snapshot is malformed or an id is missing from it"""


class KitchenError(BrigadeError):
    """An instance, order or station id is unknown to the kitchen"""


def parse_choice(enum_cls, value, label: str):
    """Coerce a member or its name to an enum, raising KitchenError for unknown names."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        raise KitchenError(f"Unknown {label}: {value}") from None

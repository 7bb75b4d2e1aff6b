"""
Application state owned by the host and handed to the command layer by reference.
"""

from dataclasses import dataclass, field
from itertools import count
from typing import Any, Dict, Iterator, List, Optional, Set

from kitchen.instances import BundleInstance
from kitchen.stations import FryerBasket, FryerState, MicrowaveState, Wok
from kitchen_types import DifficultyLevel, KitchenError, OrderStatus, RejectionReason


@dataclass
class MenuOrder:
    """A customer order for one menu item."""
    id: str
    menu_name: str
    recipe_id: str
    entered_at: int
    status: OrderStatus = OrderStatus.WAITING
    served_at: Optional[int] = None
    score: Optional[int] = None

    def age(self, now: int) -> int:
        return now - self.entered_at

    def to_dict(self, now: int) -> Dict[str, Any]:
        return {
            "id": self.id,
            "menu_name": self.menu_name,
            "recipe_id": self.recipe_id,
            "entered_at": self.entered_at,
            "age_seconds": self.age(now),
            "status": self.status.value,
            "served_at": self.served_at,
            "score": self.score,
        }


@dataclass
class SettingItem:
    """An ingredient set out on the plating counter."""
    id: str
    ingredient_id: str
    name: str
    amount: float
    unit: str
    remaining_amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "name": self.name,
            "amount": self.amount,
            "unit": self.unit,
            "remaining_amount": round(self.remaining_amount, 2),
        }


@dataclass
class CommandResult:
    """Outcome of a player command. Expected refusals are results, not exceptions."""
    success: bool
    reason: Optional[RejectionReason] = None
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str = "", **data) -> "CommandResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def reject(cls, reason: RejectionReason, message: str = "", **data) -> "CommandResult":
        return cls(success=False, reason=reason, message=message or reason.value, data=data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "data": self.data,
        }


@dataclass
class GameState:
    """Everything that changes during a session."""
    level: DifficultyLevel
    woks: Dict[int, Wok]
    fryer: FryerState
    microwave: MicrowaveState
    target_orders: int = 3
    clock: int = 0
    instances: Dict[str, BundleInstance] = field(default_factory=dict)
    orders: Dict[str, MenuOrder] = field(default_factory=dict)
    setting_items: Dict[str, SettingItem] = field(default_factory=dict)
    completed_orders: int = 0
    cancelled_orders: int = 0
    deco_mistakes: int = 0
    used_menu_names: Set[str] = field(default_factory=set)
    _ids: Dict[str, Iterator[int]] = field(default_factory=dict, repr=False)

    def next_id(self, prefix: str) -> str:
        counter = self._ids.setdefault(prefix, count(1))
        return f"{prefix}-{next(counter)}"

    def get_instance(self, instance_id: str) -> BundleInstance:
        try:
            return self.instances[instance_id]
        except KeyError:
            raise KitchenError(f"Unknown bundle instance: {instance_id}") from None

    def get_order(self, order_id: str) -> MenuOrder:
        try:
            return self.orders[order_id]
        except KeyError:
            raise KitchenError(f"Unknown order: {order_id}") from None

    def get_wok(self, burner_number: int) -> Wok:
        try:
            return self.woks[burner_number]
        except KeyError:
            raise KitchenError(f"Unknown burner: {burner_number}") from None

    def get_basket(self, basket_number: int) -> FryerBasket:
        basket = self.fryer.basket(basket_number)
        if basket is None:
            raise KitchenError(f"Unknown fryer basket: {basket_number}")
        return basket

    def get_setting_item(self, item_id: str) -> SettingItem:
        try:
            return self.setting_items[item_id]
        except KeyError:
            raise KitchenError(f"Unknown setting item: {item_id}") from None

    def setting_item_for(self, ingredient_id: str) -> Optional[SettingItem]:
        for item in self.setting_items.values():
            if item.ingredient_id == ingredient_id or item.id == ingredient_id:
                return item
        return None

    def instances_for_order(self, order_id: str) -> List[BundleInstance]:
        return [i for i in self.instances.values() if i.order_id == order_id]

    def live_instances_for_order(self, order_id: str) -> List[BundleInstance]:
        return [i for i in self.instances_for_order(order_id) if i.is_live]

    @property
    def is_finished(self) -> bool:
        return self.completed_orders >= self.target_orders

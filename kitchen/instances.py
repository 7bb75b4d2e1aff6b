"""
Bundle instances: one in-flight preparation of a bundle for one order.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from kitchen_types import DecoSourceType, PlateShape, PowerLevel


# Location variants. Exactly one applies to an instance at a time.

@dataclass(frozen=True)
class NotAssigned:
    name = "NOT_ASSIGNED"


@dataclass(frozen=True)
class AtWok:
    burner: int
    name = "WOK"


@dataclass(frozen=True)
class InFryer:
    basket: int
    name = "FRYER"


@dataclass(frozen=True)
class InMicrowave:
    name = "MICROWAVE"


@dataclass(frozen=True)
class PlateSelect:
    name = "PLATE_SELECT"


@dataclass(frozen=True)
class DecoMain:
    plate_id: str
    name = "DECO_MAIN"


@dataclass(frozen=True)
class DecoSetting:
    name = "DECO_SETTING"


@dataclass(frozen=True)
class Merged:
    target_id: str
    name = "MERGED"


@dataclass(frozen=True)
class Served:
    name = "SERVED"


Location = Union[
    NotAssigned, AtWok, InFryer, InMicrowave, PlateSelect, DecoMain, DecoSetting, Merged, Served
]

COOKING_LOCATIONS = (AtWok, InFryer, InMicrowave)


def location_to_dict(location: Location) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": location.name}
    if isinstance(location, AtWok):
        data["burner"] = location.burner
    elif isinstance(location, InFryer):
        data["basket"] = location.basket
    elif isinstance(location, DecoMain):
        data["plate_id"] = location.plate_id
    elif isinstance(location, Merged):
        data["target_id"] = location.target_id
    return data


@dataclass
class CookingProgress:
    """Where an instance stands in its bundle's step list."""
    total_steps: int
    started_at: int
    step_started_at: int
    current_step: int = 0
    added_ingredient_ids: List[str] = field(default_factory=list)
    timer_seconds: Optional[int] = None
    elapsed_seconds: int = 0
    power_level: Optional[PowerLevel] = None

    @property
    def steps_done(self) -> bool:
        return self.current_step >= self.total_steps

    @property
    def timer_done(self) -> bool:
        return self.timer_seconds is not None and self.elapsed_seconds >= self.timer_seconds


@dataclass
class IngredientEntry:
    name: str
    amount: float
    unit: str


@dataclass
class DecoLayer:
    deco_rule_id: str
    name: str
    color: str
    amount: float
    applied_at: int


@dataclass
class GridCell:
    position: int
    layers: List[DecoLayer] = field(default_factory=list)


@dataclass
class AppliedDeco:
    deco_rule_id: str
    source_type: DecoSourceType
    grid_position: int
    amount: float
    merged_amount: Optional[float] = None


@dataclass
class PlatingState:
    """The plate an instance was put on and everything layered onto it."""
    plate_type_id: str
    shape: PlateShape
    grid_cells: List[GridCell]
    applied_decos: List[AppliedDeco] = field(default_factory=list)
    merged_bundle_ids: List[str] = field(default_factory=list)
    is_complete: bool = False

    @classmethod
    def empty(cls, plate_type_id: str, shape: PlateShape, grid_size: int = 3) -> "PlatingState":
        cells = [GridCell(position=n) for n in range(1, grid_size * grid_size + 1)]
        return cls(plate_type_id=plate_type_id, shape=shape, grid_cells=cells)

    def cell(self, position: int) -> GridCell:
        return self.grid_cells[position - 1]

    def applied(self, deco_rule_id: str) -> Optional[AppliedDeco]:
        for deco in self.applied_decos:
            if deco.deco_rule_id == deco_rule_id:
                return deco
        return None


@dataclass
class BundleInstance:
    """One concrete execution of a bundle for one order."""
    id: str
    order_id: str
    recipe_id: str
    menu_name: str
    bundle_id: str
    bundle_name: str
    is_main_dish: bool
    cooking: CookingProgress
    location: Location = field(default_factory=NotAssigned)
    plating: Optional[PlatingState] = None
    ingredients: List[IngredientEntry] = field(default_factory=list)
    errors: int = 0
    available_amount: float = 0.0

    @property
    def is_cooking(self) -> bool:
        return isinstance(self.location, COOKING_LOCATIONS)

    @property
    def is_live(self) -> bool:
        return not isinstance(self.location, (Merged, Served))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "recipe_id": self.recipe_id,
            "menu_name": self.menu_name,
            "bundle_id": self.bundle_id,
            "bundle_name": self.bundle_name,
            "is_main_dish": self.is_main_dish,
            "location": location_to_dict(self.location),
            "cooking": {
                "current_step": self.cooking.current_step,
                "total_steps": self.cooking.total_steps,
                "added_ingredient_ids": list(self.cooking.added_ingredient_ids),
                "started_at": self.cooking.started_at,
                "timer_seconds": self.cooking.timer_seconds,
                "elapsed_seconds": self.cooking.elapsed_seconds,
                "power_level": self.cooking.power_level.value if self.cooking.power_level else None,
            },
            "plating": _plating_to_dict(self.plating) if self.plating else None,
            "ingredients": [
                {"name": i.name, "amount": i.amount, "unit": i.unit} for i in self.ingredients
            ],
            "errors": self.errors,
            "available_amount": round(self.available_amount, 2),
        }


def _plating_to_dict(plating: PlatingState) -> Dict[str, Any]:
    return {
        "plate_type_id": plating.plate_type_id,
        "shape": plating.shape.value,
        "is_complete": plating.is_complete,
        "grid_cells": [
            {
                "position": cell.position,
                "layers": [
                    {"deco_rule_id": l.deco_rule_id, "name": l.name, "color": l.color, "amount": l.amount}
                    for l in cell.layers
                ],
            }
            for cell in plating.grid_cells
        ],
        "applied_decos": [
            {
                "deco_rule_id": d.deco_rule_id,
                "source_type": d.source_type.value,
                "grid_position": d.grid_position,
                "amount": d.amount,
                "merged_amount": d.merged_amount,
            }
            for d in plating.applied_decos
        ],
        "merged_bundle_ids": list(plating.merged_bundle_ids),
    }

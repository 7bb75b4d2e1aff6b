"""
Pydantic models for the read-only recipe catalog snapshot.

The snapshot is nested the way it is authored: recipes own bundles and deco
rules, bundles own steps and steps own their ingredient requirements. Parent
ids are filled in from the nesting when a child leaves them out.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from kitchen_types import (
    ActionType, CookingType, DecoSourceType, IngredientCategory, PlateShape, PowerLevel, StepType
)


def _fill_parent(children: Any, key: str, value: Any) -> Any:
    if isinstance(children, list):
        for child in children:
            if isinstance(child, dict):
                child.setdefault(key, value)
    return children


class IngredientRequirement(BaseModel):
    """One ingredient a step asks for."""
    id: str
    step_id: str = ""
    ingredient_id: str
    required_amount: float = Field(..., gt=0)
    required_unit: str = "g"
    display_name: str = ""
    category: Optional[IngredientCategory] = None

    class Config:
        frozen = True


class Step(BaseModel):
    """One ordered unit of work inside a bundle."""
    id: str
    bundle_id: str = ""
    order: int
    type: StepType
    action_type: Optional[ActionType] = None
    action_params: Dict[str, Any] = Field(default_factory=dict)
    time_limit_seconds: Optional[float] = None
    instruction: str = ""
    ingredients: List[IngredientRequirement] = Field(default_factory=list)

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _link_requirements(cls, data: Any) -> Any:
        if isinstance(data, dict) and "id" in data:
            _fill_parent(data.get("ingredients"), "step_id", data["id"])
        return data

    @model_validator(mode="after")
    def _check_kind(self) -> "Step":
        if self.type == StepType.ACTION and self.action_type is None:
            raise ValueError(f"action step {self.id} has no action_type")
        if self.type == StepType.INGREDIENT and not self.ingredients:
            raise ValueError(f"ingredient step {self.id} has no ingredients")
        return self

    @property
    def required_duration(self) -> Optional[int]:
        value = self.action_params.get("required_duration")
        return int(value) if value is not None else None

    @property
    def power(self) -> Optional[PowerLevel]:
        value = self.action_params.get("power")
        if value is None or isinstance(value, PowerLevel):
            return value
        return PowerLevel(str(value).upper())

    @property
    def min_temperature(self) -> Optional[float]:
        value = self.action_params.get("min_temperature")
        return float(value) if value is not None else None


class Bundle(BaseModel):
    """A sub-recipe cooked along one path."""
    id: str
    recipe_id: str = ""
    name: str = ""
    order: int = 0
    cooking_type: CookingType = CookingType.HOT
    is_main_dish: bool = False
    deco_required: bool = False
    plate_type_id: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _link_steps(cls, data: Any) -> Any:
        if isinstance(data, dict) and "id" in data:
            _fill_parent(data.get("steps"), "bundle_id", data["id"])
        return data

    @field_validator("steps")
    @classmethod
    def _unique_orders(cls, steps: List[Step]) -> List[Step]:
        orders = [step.order for step in steps]
        if len(orders) != len(set(orders)):
            raise ValueError(f"duplicate step order in {orders}")
        return steps


class DecoRule(BaseModel):
    """Where, when and how much of a garnish or side bundle goes on the plate."""
    id: str
    recipe_id: str = ""
    order: int
    source_type: DecoSourceType
    source_id: str
    display_name: str = ""
    required_amount: float = Field(default=1.0, gt=0)
    required_unit: Optional[str] = None
    grid_position: Optional[int] = Field(default=None, ge=1, le=9)
    layer_color: str = "#cccccc"

    class Config:
        frozen = True


class Recipe(BaseModel):
    """A menu item."""
    id: str
    menu_name: str
    bundles: List[Bundle] = Field(default_factory=list)
    deco_rules: List[DecoRule] = Field(default_factory=list)

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _link_children(cls, data: Any) -> Any:
        if isinstance(data, dict) and "id" in data:
            _fill_parent(data.get("bundles"), "recipe_id", data["id"])
            _fill_parent(data.get("deco_rules"), "recipe_id", data["id"])
        return data


class PlateType(BaseModel):
    """A plate the player can pick after cooking."""
    id: str
    name: str = ""
    shape: PlateShape = PlateShape.FLAT
    grid_size: int = Field(default=3, ge=3, le=3)

    class Config:
        frozen = True


class CatalogSnapshot(BaseModel):
    """Everything the kitchen reads from the catalog for one session."""
    recipes: List[Recipe] = Field(default_factory=list)
    plate_types: List[PlateType] = Field(default_factory=list)

    class Config:
        frozen = True

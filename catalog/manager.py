"""
Recipe catalog - immutable, indexed view over a catalog snapshot
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd
import yaml
from pydantic import ValidationError

from catalog.models import (
    Bundle, CatalogSnapshot, DecoRule, IngredientRequirement, PlateType, Recipe, Step
)
from kitchen_types import ActionType, CatalogError, DecoSourceType, StepType

logger = logging.getLogger(__name__)


class RecipeCatalog:
    """Read-only recipe graph with per-bundle step lists computed once at load.

    A reload means building a new catalog; nothing here is recomputed per query.
    """

    def __init__(self, snapshot: CatalogSnapshot):
        self.snapshot = snapshot
        self._recipes: Dict[str, Recipe] = {}
        self._recipes_by_menu: Dict[str, Recipe] = {}
        self._bundles: Dict[str, Bundle] = {}
        self._steps: Dict[str, Tuple[Step, ...]] = {}
        self._requirements: Dict[str, IngredientRequirement] = {}
        self._deco_rules: Dict[str, Tuple[DecoRule, ...]] = {}
        self._deco_rule_index: Dict[str, DecoRule] = {}
        self._plate_types: Dict[str, PlateType] = {}

        self._build_indexes()
        logger.info(
            f"Catalog loaded: {len(self._recipes)} recipes, {len(self._bundles)} bundles, "
            f"{sum(len(s) for s in self._steps.values())} steps"
        )

    def _build_indexes(self):
        for recipe in self.snapshot.recipes:
            self._register(self._recipes, recipe.id, recipe, "recipe")
            self._register(self._recipes_by_menu, recipe.menu_name, recipe, "menu name")

            for bundle in recipe.bundles:
                self._register(self._bundles, bundle.id, bundle, "bundle")
                ordered = tuple(sorted(bundle.steps, key=lambda s: s.order))
                self._steps[bundle.id] = ordered
                for step in ordered:
                    for requirement in step.ingredients:
                        self._register(self._requirements, requirement.id, requirement, "requirement")

            rules = tuple(sorted(recipe.deco_rules, key=lambda r: r.order))
            self._deco_rules[recipe.id] = rules
            for rule in rules:
                self._register(self._deco_rule_index, rule.id, rule, "deco rule")
                if rule.source_type == DecoSourceType.BUNDLE and rule.source_id not in {b.id for b in recipe.bundles}:
                    raise CatalogError(f"Deco rule {rule.id} merges unknown bundle {rule.source_id}")

        for plate in self.snapshot.plate_types:
            self._register(self._plate_types, plate.id, plate, "plate type")

    @staticmethod
    def _register(index: Dict[str, Any], key: str, value: Any, label: str):
        if key in index:
            raise CatalogError(f"Duplicate {label} id: {key}")
        index[key] = value

    # Loading

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecipeCatalog":
        """Validate a raw snapshot and index it."""
        try:
            snapshot = CatalogSnapshot.model_validate(data)
        except ValidationError as e:
            raise CatalogError(f"Invalid catalog snapshot: {e}") from e
        return cls(snapshot)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "RecipeCatalog":
        """Load a JSON or YAML snapshot from disk."""
        path = Path(path)
        if not path.exists():
            raise CatalogError(f"Catalog file not found: {path}")

        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        logger.info(f"Loading catalog from {path}")
        return cls.from_dict(data or {})

    # Lookups

    def get_recipe(self, recipe_id: str) -> Recipe:
        try:
            return self._recipes[recipe_id]
        except KeyError:
            raise CatalogError(f"Unknown recipe: {recipe_id}") from None

    def get_recipe_by_menu(self, menu_name: str) -> Recipe:
        try:
            return self._recipes_by_menu[menu_name]
        except KeyError:
            raise CatalogError(f"Unknown menu: {menu_name}") from None

    def get_bundle(self, bundle_id: str) -> Bundle:
        try:
            return self._bundles[bundle_id]
        except KeyError:
            raise CatalogError(f"Unknown bundle: {bundle_id}") from None

    def get_requirement(self, requirement_id: str) -> IngredientRequirement:
        try:
            return self._requirements[requirement_id]
        except KeyError:
            raise CatalogError(f"Unknown ingredient requirement: {requirement_id}") from None

    def get_deco_rule(self, rule_id: str) -> DecoRule:
        try:
            return self._deco_rule_index[rule_id]
        except KeyError:
            raise CatalogError(f"Unknown deco rule: {rule_id}") from None

    def get_plate_type(self, plate_type_id: str) -> PlateType:
        try:
            return self._plate_types[plate_type_id]
        except KeyError:
            raise CatalogError(f"Unknown plate type: {plate_type_id}") from None

    def get_steps(self, bundle_id: str) -> Tuple[Step, ...]:
        """Steps of a bundle in execution order."""
        try:
            return self._steps[bundle_id]
        except KeyError:
            raise CatalogError(f"Unknown bundle: {bundle_id}") from None

    def step_at(self, bundle_id: str, index: int) -> Optional[Step]:
        """The step at a zero-based position, or None past the last step."""
        steps = self.get_steps(bundle_id)
        if 0 <= index < len(steps):
            return steps[index]
        return None

    def total_steps(self, bundle_id: str) -> int:
        return len(self.get_steps(bundle_id))

    def first_action_step(self, bundle_id: str, action: ActionType) -> Optional[Step]:
        for step in self.get_steps(bundle_id):
            if step.type == StepType.ACTION and step.action_type == action:
                return step
        return None

    def bundle_requirements(self, bundle_id: str) -> List[IngredientRequirement]:
        return [req for step in self.get_steps(bundle_id) for req in step.ingredients]

    def deco_rules(self, recipe_id: str) -> Tuple[DecoRule, ...]:
        """Deco rules of a recipe sorted by their ordering index."""
        self.get_recipe(recipe_id)
        return self._deco_rules.get(recipe_id, ())

    def main_bundle(self, recipe_id: str) -> Optional[Bundle]:
        for bundle in self.get_recipe(recipe_id).bundles:
            if bundle.is_main_dish:
                return bundle
        return None

    @property
    def menu_names(self) -> List[str]:
        return list(self._recipes_by_menu.keys())

    @property
    def plate_types(self) -> List[PlateType]:
        return list(self._plate_types.values())

    def summary(self) -> pd.DataFrame:
        """One row per bundle, for inspection from the CLI."""
        rows = []
        for recipe in self._recipes.values():
            for bundle in recipe.bundles:
                steps = self._steps[bundle.id]
                rows.append({
                    "menu": recipe.menu_name,
                    "bundle": bundle.name or bundle.id,
                    "cooking_type": bundle.cooking_type.value,
                    "main_dish": bundle.is_main_dish,
                    "steps": len(steps),
                    "ingredient_steps": sum(1 for s in steps if s.type == StepType.INGREDIENT),
                    "action_steps": sum(1 for s in steps if s.type == StepType.ACTION),
                    "deco_rules": len(self._deco_rules.get(recipe.id, ())),
                })
        return pd.DataFrame(rows)

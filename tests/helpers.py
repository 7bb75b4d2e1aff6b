"""Shared catalog and engine builders for the test suite."""
from __future__ import annotations

from catalog import RecipeCatalog
from config import Settings
from kitchen import KitchenEngine
from kitchen_types import DifficultyLevel


def _ingredient_step(step_id, order, *requirements):
    return {
        "id": step_id,
        "order": order,
        "type": "INGREDIENT",
        "ingredients": [
            {"id": rid, "ingredient_id": ing, "display_name": ing, "required_amount": amount,
             "category": category}
            for rid, ing, amount, category in requirements
        ],
    }


def _action_step(step_id, order, action, **params):
    step = {"id": step_id, "order": order, "type": "ACTION", "action_type": action}
    limit = params.pop("time_limit_seconds", None)
    if limit is not None:
        step["time_limit_seconds"] = limit
    if params:
        step["action_params"] = params
    return step


def catalog_data() -> dict:
    """A fresh raw catalog covering every station and plating path."""
    return {
        "plate_types": [
            {"id": "bowl", "name": "Bowl", "shape": "BOWL"},
            {"id": "flat", "name": "Flat plate", "shape": "FLAT"},
        ],
        "recipes": [
            {
                "id": "fried_rice",
                "menu_name": "Egg Fried Rice",
                "bundles": [{
                    "id": "rice_main",
                    "name": "Fried rice",
                    "is_main_dish": True,
                    "deco_required": True,
                    "steps": [
                        _ingredient_step("rice_s1", 1, ("req_egg", "egg", 50, "EGG")),
                        _action_step("rice_s2", 2, "STIR_FRY"),
                        _ingredient_step("rice_s3", 3, ("req_rice", "rice", 200, "RICE"),
                                         ("req_soy", "soy_sauce", 10, "SAUCE")),
                        _action_step("rice_s4", 4, "FLIP", time_limit_seconds=30),
                    ],
                }],
                "deco_rules": [{
                    "id": "rice_scallion", "order": 1, "source_type": "DECO_ITEM",
                    "source_id": "scallion", "display_name": "Scallion",
                    "required_amount": 5, "grid_position": 5,
                }],
            },
            {
                "id": "garlic_shrimp",
                "menu_name": "Garlic Shrimp",
                "bundles": [{
                    "id": "shrimp_main",
                    "name": "Shrimp",
                    "is_main_dish": True,
                    "steps": [
                        _ingredient_step("shrimp_s1", 1, ("req_shrimp", "shrimp", 100, "SEAFOOD"),
                                         ("req_garlic", "garlic", 10, "VEGETABLE")),
                        _action_step("shrimp_s2", 2, "STIR_FRY"),
                        _ingredient_step("shrimp_s3", 3, ("req_salt", "salt", 2, "SEASONING")),
                    ],
                }],
            },
            {
                "id": "sweet_sour_pork",
                "menu_name": "Sweet and Sour Pork",
                "bundles": [
                    {
                        "id": "pork_main",
                        "name": "Fried pork",
                        "is_main_dish": True,
                        "steps": [
                            _ingredient_step("pork_s1", 1, ("req_pork", "pork", 150, "MEAT")),
                            _action_step("pork_s2", 2, "DEEP_FRY", required_duration=120),
                            _action_step("pork_s3", 3, "LIFT_BASKET"),
                        ],
                    },
                    {
                        "id": "pork_sauce",
                        "name": "Sauce",
                        "steps": [
                            _action_step("sauce_s1", 1, "ADD_WATER"),
                            _ingredient_step("sauce_s2", 2, ("req_sauce", "sauce_base", 80, "SAUCE")),
                            _action_step("sauce_s3", 3, "SIMMER"),
                        ],
                    },
                ],
                "deco_rules": [
                    {"id": "pork_deco_sauce", "order": 1, "source_type": "BUNDLE",
                     "source_id": "pork_sauce", "display_name": "Sauce", "required_amount": 80,
                     "grid_position": 5},
                    {"id": "pork_deco_sesame", "order": 2, "source_type": "DECO_ITEM",
                     "source_id": "sesame", "display_name": "Sesame", "required_amount": 2,
                     "grid_position": 2},
                ],
            },
            {
                "id": "noodle_soup",
                "menu_name": "Noodle Soup",
                "bundles": [{
                    "id": "soup_main",
                    "name": "Soup",
                    "is_main_dish": True,
                    "steps": [
                        _action_step("soup_s1", 1, "ADD_WATER"),
                        _action_step("soup_s2", 2, "BOIL"),
                        _ingredient_step("soup_s3", 3, ("req_noodle", "noodle", 120, "NOODLE")),
                    ],
                }],
            },
            {
                "id": "dumplings",
                "menu_name": "Steamed Dumplings",
                "bundles": [{
                    "id": "dumpling_main",
                    "name": "Dumplings",
                    "is_main_dish": True,
                    "steps": [
                        _ingredient_step("dumpling_s1", 1, ("req_dumpling", "dumpling", 6, None)),
                        _action_step("dumpling_s2", 2, "MICROWAVE", required_duration=90, power="HIGH"),
                    ],
                }],
            },
            {
                "id": "cucumber_salad",
                "menu_name": "Cucumber Salad",
                "bundles": [{
                    "id": "salad_main",
                    "name": "Salad",
                    "cooking_type": "COLD",
                    "is_main_dish": True,
                }],
                "deco_rules": [
                    {"id": "salad_cucumber", "order": 1, "source_type": "SETTING_ITEM",
                     "source_id": "cucumber", "display_name": "Cucumber", "required_amount": 30,
                     "grid_position": 4},
                    {"id": "salad_chili", "order": 2, "source_type": "DECO_ITEM",
                     "source_id": "chili_oil", "display_name": "Chili oil", "required_amount": 5,
                     "grid_position": 6},
                ],
            },
        ],
    }


def make_catalog() -> RecipeCatalog:
    return RecipeCatalog.from_dict(catalog_data())


def make_settings(level: DifficultyLevel = DifficultyLevel.BEGINNER, **overrides) -> Settings:
    return Settings(level=level, **overrides)


def make_engine(level: DifficultyLevel = DifficultyLevel.BEGINNER, **overrides) -> KitchenEngine:
    settings = make_settings(level, **overrides)
    return KitchenEngine(make_catalog(), settings)


def start_on_wok(engine: KitchenEngine, menu_name: str, bundle_id: str, burner: int = 1):
    """Add an order and start one of its bundles on a wok; returns (order, instance_id)."""
    order = engine.add_order(menu_name)
    result = engine.assign_bundle(order.id, bundle_id, "WOK", burner)
    assert result.success, result.message
    return order, result.data["instance_id"]


def heat_until(engine: KitchenEngine, burner: int, temperature: float, limit: int = 200) -> int:
    """Tick until the wok reaches a temperature; returns the ticks taken."""
    wok = engine.state.get_wok(burner)
    for ticks in range(1, limit + 1):
        engine.tick()
        if wok.temperature >= temperature:
            return ticks
    raise AssertionError(f"wok {burner} never reached {temperature}")

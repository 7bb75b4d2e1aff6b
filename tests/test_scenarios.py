"""Tests for scripted scenario replay."""
from __future__ import annotations

import unittest
from pathlib import Path

from catalog import RecipeCatalog
from kitchen import KitchenEngine
from kitchen_types import BrigadeError, DifficultyLevel
from scenarios import ExecutionPhase, ScenarioConfig, ScenarioExecutor
from tests.helpers import make_engine, make_settings

ROOT = Path(__file__).resolve().parent.parent


class TestScenarioConfig(unittest.TestCase):

    def test_commands_sorted_and_aliased(self):
        scenario = ScenarioConfig.from_dict({
            "name": "two",
            "level": "ADVANCED",
            "commands": [
                {"at": 5, "command": "toggle_burner", "args": {"burner_number": 1}},
                {"at": 0, "command": "add_order", "args": {"menu_name": "Noodle Soup"}, "as": "soup"},
            ],
        })
        self.assertEqual(scenario.level, DifficultyLevel.ADVANCED)
        self.assertEqual([c.at for c in scenario.commands], [0, 5])
        self.assertEqual(scenario.commands[0].alias, "soup")

    def test_unknown_command_rejected(self):
        with self.assertRaises(BrigadeError):
            ScenarioConfig.from_dict({"commands": [{"at": 0, "command": "start_game"}]})

    def test_missing_file(self):
        with self.assertRaises(BrigadeError):
            ScenarioConfig.from_file(ROOT / "data" / "missing.yaml")


class TestScenarioExecutor(unittest.TestCase):

    def test_sample_scenario_serves_one_order(self):
        catalog = RecipeCatalog.from_file(ROOT / "data" / "sample_catalog.yaml")
        engine = KitchenEngine(catalog, make_settings())
        scenario = ScenarioConfig.from_file(ROOT / "data" / "sample_scenario.yaml")

        result = ScenarioExecutor(engine).execute(scenario)
        self.assertEqual(result.phase, ExecutionPhase.COMPLETE)
        self.assertTrue(result.succeeded)
        self.assertEqual(result.ticks, 9)
        self.assertEqual(result.commands_run, len(scenario.commands))
        self.assertEqual(result.commands_rejected, 0)
        self.assertEqual(result.summary["completed_orders"], 1)
        self.assertEqual(result.summary["recipe_accuracy"], 100.0)

    def test_unexpected_results_are_counted(self):
        scenario = ScenarioConfig.from_dict({
            "name": "sloppy",
            "commands": [
                {"at": 0, "command": "add_order", "args": {"menu_name": "Garlic Shrimp"}, "as": "order"},
                {"at": 0, "command": "assign_bundle", "as": "shrimp",
                 "args": {"order_id": "$order", "bundle_id": "shrimp_main", "station": "WOK", "slot": 1}},
                {"at": 1, "command": "add_ingredient", "expect": True,
                 "args": {"instance_id": "$shrimp", "ingredient_ref": "shrimp", "amount": 80}},
            ],
        })
        events = []
        executor = ScenarioExecutor(make_engine())
        executor.on("command_executed", events.append)

        result = executor.execute(scenario)
        self.assertEqual(result.phase, ExecutionPhase.COMPLETE)
        self.assertFalse(result.succeeded)
        self.assertEqual(result.commands_rejected, 1)
        self.assertEqual(result.unexpected_results, 1)
        self.assertEqual(len(events), 3)
        self.assertEqual(events[-1]["reason"], "wrong_amount")
        self.assertEqual(result.ticks, 1)

    def test_unknown_alias_fails_the_run(self):
        scenario = ScenarioConfig.from_dict({
            "name": "broken",
            "commands": [{"at": 0, "command": "serve_bundle", "args": {"instance_id": "$nothing"}}],
        })
        result = ScenarioExecutor(make_engine()).execute(scenario)
        self.assertEqual(result.phase, ExecutionPhase.FAILED)
        self.assertEqual(result.error_log[0]["type"], "BrigadeError")

    def test_unknown_action_fails_the_run(self):
        scenario = ScenarioConfig.from_dict({
            "name": "saute",
            "commands": [
                {"at": 0, "command": "add_order", "args": {"menu_name": "Garlic Shrimp"}, "as": "order"},
                {"at": 0, "command": "assign_bundle", "as": "shrimp",
                 "args": {"order_id": "$order", "bundle_id": "shrimp_main", "station": "WOK", "slot": 1}},
                {"at": 1, "command": "execute_action", "args": {"instance_id": "$shrimp", "action": "SAUTE"}},
            ],
        })
        result = ScenarioExecutor(make_engine()).execute(scenario)
        self.assertEqual(result.phase, ExecutionPhase.FAILED)
        self.assertEqual(result.error_log[0]["type"], "KitchenError")
        self.assertIn("SAUTE", result.error_log[0]["error"])

    def test_level_applied_to_engine(self):
        engine = make_engine()
        ScenarioExecutor(engine).execute(ScenarioConfig(name="empty", level=DifficultyLevel.INTERMEDIATE))
        self.assertEqual(engine.policy.name, "lenient")


if __name__ == "__main__":
    unittest.main()

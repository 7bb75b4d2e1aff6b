"""Tests for the fryer and microwave timers."""
from __future__ import annotations

import unittest

from kitchen.instances import InFryer, InMicrowave, PlateSelect
from kitchen_types import BasketStatus, DifficultyLevel, EventKind, KitchenError, PowerLevel, RejectionReason
from tests.helpers import make_engine


class TestFryer(unittest.TestCase):

    def setUp(self):
        self.engine = make_engine()
        self.order = self.engine.add_order("Sweet and Sour Pork")
        result = self.engine.assign_bundle(self.order.id, "pork_main", "FRYER", 1)
        self.assertTrue(result.success)
        self.instance_id = result.data["instance_id"]
        self.instance = self.engine.state.get_instance(self.instance_id)
        self.basket = self.engine.state.get_basket(1)

    def test_assignment_takes_the_recipe_timer(self):
        self.assertEqual(self.instance.location, InFryer(basket=1))
        self.assertEqual(self.instance.cooking.timer_seconds, 120)
        self.assertEqual(self.basket.status, BasketStatus.ASSIGNED)
        self.assertFalse(self.basket.is_submerged)

    def test_timer_only_runs_while_submerged(self):
        self.engine.run(5)
        self.assertEqual(self.instance.cooking.elapsed_seconds, 0)

        self.engine.lower_basket(1)
        self.engine.run(10)
        self.engine.lift_basket(1)
        self.engine.run(5)
        self.assertEqual(self.instance.cooking.elapsed_seconds, 10)

        self.engine.lower_basket(1)
        self.engine.run(2)
        self.assertEqual(self.instance.cooking.elapsed_seconds, 12)

    def test_deep_fry_step_advances_automatically(self):
        self.engine.add_ingredient(self.instance_id, "pork", 150)
        self.engine.lower_basket(1)
        self.engine.run(119)
        self.assertEqual(self.instance.cooking.current_step, 1)
        self.engine.tick()
        self.assertEqual(self.instance.cooking.current_step, 2)

        result = self.engine.execute_action(self.instance_id, "LIFT_BASKET")
        self.assertTrue(result.success)
        self.assertFalse(self.basket.is_submerged)

        self.assertTrue(self.engine.complete_bundle(self.instance_id).success)
        self.assertEqual(self.instance.location, PlateSelect())
        self.assertEqual(self.basket.status, BasketStatus.EMPTY)
        self.assertIsNone(self.basket.instance_id)

    def test_basket_burns_after_grace(self):
        self.engine.add_ingredient(self.instance_id, "pork", 150)
        self.engine.lower_basket(1)
        self.engine.run(129)
        self.assertEqual(self.basket.status, BasketStatus.ASSIGNED)
        self.engine.tick()
        self.assertEqual(self.basket.status, BasketStatus.BURNED)

        self.engine.run(5)
        self.assertEqual(self.instance.cooking.elapsed_seconds, 130)
        result = self.engine.execute_action(self.instance_id, "LIFT_BASKET")
        self.assertEqual(result.reason, RejectionReason.STATION_NOT_READY)
        self.assertEqual(self.instance.cooking.current_step, 2)

        self.assertTrue(self.engine.discard_bundle(self.instance_id).success)
        self.assertEqual(self.basket.status, BasketStatus.EMPTY)

    def test_ingredients_refused_while_submerged(self):
        self.engine.lower_basket(1)
        result = self.engine.add_ingredient(self.instance_id, "pork", 150)
        self.assertEqual(result.reason, RejectionReason.STATION_BUSY)

    def test_basket_commands_check_state(self):
        self.assertEqual(self.engine.lift_basket(1).reason, RejectionReason.STATION_NOT_READY)
        self.engine.lower_basket(1)
        self.assertEqual(self.engine.lower_basket(1).reason, RejectionReason.STATION_BUSY)
        self.assertEqual(self.engine.lower_basket(2).reason, RejectionReason.STATION_NOT_READY)

    def test_occupied_basket_refused(self):
        other = self.engine.add_order("Sweet and Sour Pork")
        result = self.engine.assign_bundle(other.id, "pork_main", "FRYER", 1)
        self.assertEqual(result.reason, RejectionReason.SLOT_OCCUPIED)


class TestFryerTimerConfig(unittest.TestCase):

    def test_strict_mismatch_refused(self):
        engine = make_engine(DifficultyLevel.BEGINNER)
        order = engine.add_order("Sweet and Sour Pork")
        result = engine.assign_bundle(order.id, "pork_main", "FRYER", 1, timer_seconds=100)
        self.assertEqual(result.reason, RejectionReason.INVALID_CONFIG)
        self.assertFalse(engine.state.get_basket(1).is_occupied)
        self.assertEqual(engine.state.instances, {})

    def test_lenient_mismatch_costs_an_error(self):
        engine = make_engine(DifficultyLevel.INTERMEDIATE)
        order = engine.add_order("Sweet and Sour Pork")
        result = engine.assign_bundle(order.id, "pork_main", "FRYER", 1, timer_seconds=100)
        self.assertTrue(result.success)
        self.assertEqual(result.data["errors"], 1)
        instance = engine.state.get_instance(result.data["instance_id"])
        self.assertEqual(instance.cooking.timer_seconds, 100)

    def test_timer_out_of_range(self):
        engine = make_engine()
        order = engine.add_order("Sweet and Sour Pork")
        result = engine.assign_bundle(order.id, "pork_main", "FRYER", 1, timer_seconds=900)
        self.assertEqual(result.reason, RejectionReason.INVALID_CONFIG)


class TestMicrowave(unittest.TestCase):

    def setUp(self):
        self.engine = make_engine()

    def _queue_dumplings(self):
        order = self.engine.add_order("Steamed Dumplings")
        result = self.engine.assign_bundle(order.id, "dumpling_main", "MICROWAVE")
        self.assertTrue(result.success)
        return self.engine.state.get_instance(result.data["instance_id"])

    def test_only_queue_head_runs(self):
        first = self._queue_dumplings()
        second = self._queue_dumplings()
        self.assertEqual(first.location, InMicrowave())
        self.assertEqual(first.cooking.timer_seconds, 90)
        self.assertEqual(first.cooking.power_level.value, "HIGH")

        self.engine.add_ingredient(first.id, "dumpling", 6)
        self.engine.add_ingredient(second.id, "dumpling", 6)
        self.engine.run(90)
        self.assertTrue(first.cooking.timer_done)
        self.assertEqual(second.cooking.elapsed_seconds, 0)

        self.assertTrue(self.engine.execute_action(first.id, "MICROWAVE").success)
        self.assertTrue(self.engine.complete_bundle(first.id).success)
        self.assertEqual(self.engine.state.microwave.queue, [second.id])

        self.engine.tick()
        self.assertEqual(second.cooking.elapsed_seconds, 1)

    def test_running_microwave_blocks_ingredients(self):
        instance = self._queue_dumplings()
        self.engine.tick()
        result = self.engine.add_ingredient(instance.id, "dumpling", 6)
        self.assertEqual(result.reason, RejectionReason.TIMER_RUNNING)

    def test_microwave_action_waits_for_the_timer(self):
        instance = self._queue_dumplings()
        self.engine.add_ingredient(instance.id, "dumpling", 6)
        self.engine.run(30)
        result = self.engine.execute_action(instance.id, "MICROWAVE")
        self.assertEqual(result.reason, RejectionReason.PRECONDITION_FAILED)

    def test_power_mismatch_refused_in_strict_mode(self):
        order = self.engine.add_order("Steamed Dumplings")
        result = self.engine.assign_bundle(order.id, "dumpling_main", "MICROWAVE", power="LOW")
        self.assertEqual(result.reason, RejectionReason.INVALID_CONFIG)
        self.assertEqual(self.engine.state.microwave.queue, [])

    def test_power_accepts_enum_member(self):
        order = self.engine.add_order("Steamed Dumplings")
        result = self.engine.assign_bundle(order.id, "dumpling_main", "MICROWAVE", power=PowerLevel.HIGH)
        self.assertTrue(result.success)
        instance = self.engine.state.get_instance(result.data["instance_id"])
        self.assertEqual(instance.cooking.power_level, PowerLevel.HIGH)

    def test_unknown_power_raises(self):
        order = self.engine.add_order("Steamed Dumplings")
        with self.assertRaises(KitchenError):
            self.engine.assign_bundle(order.id, "dumpling_main", "MICROWAVE", power="TURBO")

    def test_steps_advanced_event_is_automatic_for_fryer_only(self):
        events = []

        class Listener:
            def on_event(self, event):
                events.append(event)

        self.engine.subscribe(Listener())
        order = self.engine.add_order("Sweet and Sour Pork")
        result = self.engine.assign_bundle(order.id, "pork_main", "FRYER", 2)
        instance_id = result.data["instance_id"]
        self.engine.add_ingredient(instance_id, "pork", 150)
        self.engine.lower_basket(2)
        self.engine.run(120)
        automatic = [e for e in events if e.kind == EventKind.STEP_ADVANCED and e.data.get("automatic")]
        self.assertEqual(len(automatic), 1)
        self.assertEqual(automatic[0].station, "basket_2")


if __name__ == "__main__":
    unittest.main()

"""Tests for the tick driver, order flow and kitchen queries."""
from __future__ import annotations

import asyncio
import unittest

from kitchen import KitchenListener
from kitchen_types import CatalogError, DifficultyLevel, EventKind, KitchenError, OrderStatus, WokState
from tests.helpers import heat_until, make_engine, start_on_wok


class Recorder(KitchenListener):
    def __init__(self):
        self.events = []

    def on_event(self, event):
        self.events.append(event)

    def of(self, kind):
        return [e for e in self.events if e.kind == kind]


def cook_fried_rice(engine, burner=1):
    """Egg fried rice from order to a decorated plate; returns (order, instance_id)."""
    order, instance_id = start_on_wok(engine, "Egg Fried Rice", "rice_main", burner)
    engine.add_ingredient(instance_id, "egg", 50)
    heat_until(engine, burner, 180.0)
    assert engine.execute_action(instance_id, "STIR_FRY").success
    engine.tick()
    engine.add_ingredient(instance_id, "rice", 200)
    engine.add_ingredient(instance_id, "soy_sauce", 10)
    engine.tick()
    assert engine.execute_action(instance_id, "FLIP").success
    assert engine.complete_bundle(instance_id).success
    assert engine.route_after_plate(instance_id, "bowl").success
    assert engine.apply_deco(instance_id, "scallion", 5, 5).success
    return order, instance_id


class TestServiceFlow(unittest.TestCase):

    def setUp(self):
        self.engine = make_engine()
        self.recorder = Recorder()
        self.engine.subscribe(self.recorder)

    def test_fried_rice_from_order_to_score(self):
        order, instance_id = cook_fried_rice(self.engine)
        self.assertEqual(self.engine.state.clock, 8)
        self.engine.tick()

        result = self.engine.serve_bundle(instance_id)
        self.assertTrue(result.success)
        self.assertEqual(result.data["time_tier"], "perfect")
        self.assertEqual(result.data["recipe_accuracy"], 100.0)
        self.assertEqual(result.data["score"], 100)
        self.assertEqual(order.status, OrderStatus.COMPLETED)
        self.assertEqual(order.served_at, 9)
        self.assertEqual(self.engine.state.completed_orders, 1)

    def test_served_order_leaves_the_queue_after_grace(self):
        order, instance_id = cook_fried_rice(self.engine)
        self.engine.serve_bundle(instance_id)
        self.engine.run(2)
        self.assertIn(order.id, self.engine.state.orders)
        self.engine.tick()
        self.assertNotIn(order.id, self.engine.state.orders)
        self.assertEqual(len(self.recorder.of(EventKind.ORDER_REMOVED)), 1)

    def test_end_game_summary(self):
        order, instance_id = cook_fried_rice(self.engine)
        self.engine.serve_bundle(instance_id)
        summary = self.engine.end_game()
        self.assertEqual(summary["completed_orders"], 1)
        self.assertEqual(summary["correct_actions"], 5)
        self.assertEqual(summary["total_actions"], 5)
        self.assertEqual(summary["recipe_accuracy"], 100.0)
        self.assertEqual(summary["average_serve_score"], 100.0)
        self.assertEqual(summary["level"], "BEGINNER")

    def test_session_finishes_at_target(self):
        engine = make_engine(target_orders=1)
        order, instance_id = cook_fried_rice(engine)
        self.assertFalse(engine.is_finished)
        engine.serve_bundle(instance_id)
        self.assertTrue(engine.is_finished)


class TestOrderSweep(unittest.TestCase):

    def test_orders_cancelled_after_fifteen_minutes(self):
        engine = make_engine()
        recorder = Recorder()
        engine.subscribe(recorder)
        order = engine.add_order("Garlic Shrimp")
        engine.run(900)
        self.assertIn(order.id, engine.state.orders)

        engine.tick()
        self.assertNotIn(order.id, engine.state.orders)
        self.assertEqual(engine.state.cancelled_orders, 1)
        self.assertEqual(len(recorder.of(EventKind.ORDER_CANCELLED)), 1)

    def test_cancel_releases_the_station(self):
        engine = make_engine()
        order, instance_id = start_on_wok(engine, "Garlic Shrimp", "shrimp_main")
        engine.toggle_burner(1)
        wok = engine.state.get_wok(1)
        engine.run(901)
        self.assertNotIn(instance_id, engine.state.instances)
        self.assertNotIn(order.id, engine.state.orders)
        self.assertIsNone(wok.instance_id)
        self.assertEqual(wok.state, WokState.DIRTY)


class TestAutomaticIntake(unittest.TestCase):

    def test_first_batch_on_first_tick_then_every_interval(self):
        engine = make_engine(auto_orders=True, seed=3)
        engine.tick()
        self.assertEqual(len(engine.state.orders), 1)
        engine.run(29)
        self.assertEqual(len(engine.state.orders), 1)
        engine.tick()
        self.assertEqual(len(engine.state.orders), 2)

    def test_batch_size_follows_level(self):
        engine = make_engine(DifficultyLevel.ADVANCED, auto_orders=True, seed=3)
        engine.tick()
        menus = [o.menu_name for o in engine.state.orders.values()]
        self.assertEqual(len(menus), 3)
        self.assertEqual(len(set(menus)), 3)

    def test_seeded_intake_is_reproducible(self):
        first = make_engine(auto_orders=True, seed=11)
        second = make_engine(auto_orders=True, seed=11)
        first.run(100)
        second.run(100)
        self.assertEqual([o.menu_name for o in first.state.orders.values()],
                         [o.menu_name for o in second.state.orders.values()])

    def test_no_intake_after_target_reached(self):
        engine = make_engine(auto_orders=True, seed=3)
        engine.state.completed_orders = engine.state.target_orders
        engine.run(5)
        self.assertEqual(engine.state.orders, {})


class TestTickEvents(unittest.TestCase):

    def test_overheating_warning(self):
        engine = make_engine()
        recorder = Recorder()
        engine.subscribe(recorder)
        wok = engine.state.get_wok(3)
        wok.is_on = True
        wok.temperature = 359.0
        engine.tick()
        warnings = recorder.of(EventKind.WOK_OVERHEATING)
        self.assertEqual(len(warnings), 1)
        self.assertEqual(warnings[0].station, "burner_3")

    def test_tick_reports_active_burners(self):
        engine = make_engine()
        recorder = Recorder()
        engine.subscribe(recorder)
        engine.toggle_burner(2)
        engine.tick()
        tick = recorder.of(EventKind.TICK)[-1]
        self.assertEqual(tick.data["active_burners"], [2])
        self.assertEqual(tick.data["burner_count"], 3)

    def test_simulation_loop_stops_on_request(self):
        engine = make_engine(tick_rate=0.0)

        class StopAfterThree(KitchenListener):
            def on_event(self, event):
                if event.kind == EventKind.TICK and event.tick >= 3:
                    engine.stop_simulation()

        engine.subscribe(StopAfterThree())
        asyncio.run(engine.start_simulation())
        self.assertEqual(engine.state.clock, 3)
        self.assertFalse(engine.is_running)


class TestQueries(unittest.TestCase):

    def setUp(self):
        self.engine = make_engine()

    def test_station_status(self):
        order, instance_id = start_on_wok(self.engine, "Garlic Shrimp", "shrimp_main", burner=2)
        status = self.engine.get_station_status("burner_2")
        self.assertTrue(status["is_on"])
        self.assertEqual(status["instance_id"], instance_id)
        self.assertEqual(status["state"], "CLEAN")

        basket = self.engine.get_station_status("basket_1")
        self.assertEqual(basket["status"], "EMPTY")
        self.assertEqual(self.engine.get_station_status("microwave")["queue"], [])

    def test_unknown_station_raises(self):
        with self.assertRaises(KitchenError):
            self.engine.get_station_status("oven")
        with self.assertRaises(KitchenError):
            self.engine.get_station_status("burner_9")

    def test_instance_snapshot_shows_current_step(self):
        order, instance_id = start_on_wok(self.engine, "Garlic Shrimp", "shrimp_main")
        self.engine.add_ingredient(instance_id, "shrimp", 100)
        snapshot = self.engine.get_instance_snapshot(instance_id)
        detail = snapshot["current_step_detail"]
        self.assertEqual(detail["type"], "INGREDIENT")
        added = {r["id"]: r["added"] for r in detail["requirements"]}
        self.assertEqual(added, {"req_shrimp": True, "req_garlic": False})

    def test_kitchen_status_and_utilization(self):
        start_on_wok(self.engine, "Garlic Shrimp", "shrimp_main", burner=1)
        self.engine.run(10)
        status = self.engine.get_kitchen_status()
        self.assertEqual(len(status["stations"]), 7)
        self.assertEqual(status["clock"], 10)
        self.assertEqual(status["validation"], "strict")
        utilization = status["utilization"]
        self.assertEqual(utilization["woks_in_use"], 1)
        self.assertEqual(utilization["wok_utilization"], 0.33)
        self.assertEqual(utilization["burner_usage"], 33.3)

    def test_order_queue(self):
        self.engine.add_order("Noodle Soup")
        self.engine.run(4)
        queue = self.engine.get_order_queue()
        self.assertEqual(queue[0]["menu_name"], "Noodle Soup")
        self.assertEqual(queue[0]["age_seconds"], 4)
        self.assertEqual(queue[0]["status"], "WAITING")

    def test_unknown_menu_raises(self):
        with self.assertRaises(CatalogError):
            self.engine.add_order("Beef Wellington")

    def test_reset_and_new_level(self):
        start_on_wok(self.engine, "Garlic Shrimp", "shrimp_main")
        self.engine.run(5)
        self.engine.start_game(DifficultyLevel.INTERMEDIATE)
        self.assertEqual(self.engine.state.clock, 0)
        self.assertEqual(self.engine.state.instances, {})
        self.assertEqual(self.engine.policy.name, "lenient")
        self.assertEqual(self.engine.collector.total_actions, 0)


if __name__ == "__main__":
    unittest.main()

"""
Kitchen simulation engine - the 1 Hz tick driver and the command/query surface.
"""

from typing import Any, Dict, List, Optional
import asyncio
import logging
import random

from catalog import RecipeCatalog
from config import Settings, get_settings
from kitchen import stations
from kitchen.events import EventBus, KitchenEvent, KitchenListener, TimerScheduler
from kitchen.instances import AtWok, BundleInstance, InFryer, InMicrowave
from kitchen.manager import BundleInstanceManager
from kitchen.plating import DecoComposer
from kitchen.state import CommandResult, GameState, MenuOrder
from kitchen.validation import StepValidator, ValidationPolicy, policy_for_level
from kitchen_types import (
    ActionType, BasketStatus, DifficultyLevel, EventKind, KitchenError, OrderStatus, StepType, WokState,
    parse_choice
)

logger = logging.getLogger(__name__)


class KitchenEngine:
    """Owns the game state and advances it one tick per second."""

    def __init__(self, catalog: RecipeCatalog, settings: Optional[Settings] = None,
                 collector=None, level: Optional[DifficultyLevel] = None):
        self.catalog = catalog
        self.settings = settings or get_settings()

        # Simulation control
        self.is_running = False
        self.simulation_speed = 1.0
        self.tick_rate = self.settings.tick_rate

        self.bus = EventBus()
        if collector is None:
            from metrics.collector import MetricsCollector
            collector = MetricsCollector(self.settings)
        self.collector = collector
        self.bus.subscribe(self.collector)

        self.start_game(level or self.settings.level)
        logger.info("Kitchen engine initialized")

    def start_game(self, level: Optional[DifficultyLevel] = None):
        """Reset the kitchen for a new session."""
        level = parse_choice(DifficultyLevel, level, "level") if level is not None else self.state.level
        self.state = GameState(
            level=level,
            woks=stations.create_woks(self.settings.burner_count, self.settings.wok),
            fryer=stations.create_fryer(self.settings.basket_count, self.settings.fryer.oil_temperature),
            microwave=stations.MicrowaveState(),
            target_orders=self.settings.target_orders,
        )
        self.policy: ValidationPolicy = policy_for_level(level)
        self.scheduler = TimerScheduler(clock=lambda: self.state.clock)
        self.validator = StepValidator(self.catalog, self.policy, self.settings.wok, self.settings.fryer)
        self.composer = DecoComposer(self.state, self.catalog, self.policy)
        self.manager = BundleInstanceManager(
            self.state, self.catalog, self.settings, self.validator, self.composer, self.scheduler, self.bus
        )
        self.rng = random.Random(self.settings.seed)
        self._last_intake = 0
        self.collector.reset()
        logger.info(f"New {level.value} session ({self.policy.name} validation)")

    def subscribe(self, listener: KitchenListener):
        self.bus.subscribe(listener)

    def unsubscribe(self, listener: KitchenListener):
        self.bus.unsubscribe(listener)

    # Simulation loop

    async def start_simulation(self):
        """Start the kitchen simulation loop."""
        if self.is_running:
            logger.warning("Simulation is already running")
            return

        self.is_running = True
        logger.info("Kitchen simulation started")

        try:
            while self.is_running:
                self.tick()
                await asyncio.sleep(self.tick_rate / self.simulation_speed)
        finally:
            self.is_running = False
            logger.info("Kitchen simulation stopped")

    def stop_simulation(self):
        """Stop the kitchen simulation."""
        self.is_running = False

    def tick(self) -> int:
        """Advance the kitchen by one second."""
        self.state.clock += 1
        now = self.state.clock

        self._sweep_expired_orders()
        if self.settings.auto_orders:
            self._intake_orders()
        self._update_stations()
        self._advance_timers()
        self.scheduler.run_due(now)

        active = [w.burner_number for w in self.state.woks.values() if w.is_on]
        self.bus.emit(KitchenEvent(
            kind=EventKind.TICK,
            tick=now,
            data={"active_burners": active, "burner_count": len(self.state.woks)},
        ))
        return now

    def run(self, ticks: int) -> int:
        for _ in range(ticks):
            self.tick()
        return self.state.clock

    def _sweep_expired_orders(self):
        limit = self.settings.orders.cancel_seconds
        for order in list(self.state.orders.values()):
            if order.status != OrderStatus.COMPLETED and order.age(self.state.clock) > limit:
                self.manager.cancel_order(order)

    def _intake_orders(self):
        if self.state.is_finished:
            return
        orders = self.settings.orders
        level = self.state.level.value
        interval = orders.intake_interval.get(level, 30)
        if self.state.clock - self._last_intake < interval and self._last_intake:
            return
        self._last_intake = self.state.clock
        for _ in range(orders.intake_batch.get(level, 1)):
            if len(self.state.orders) >= orders.max_queue:
                break
            self.add_order(self._pick_menu())

    def _pick_menu(self) -> str:
        menus = self.catalog.menu_names
        unused = [m for m in menus if m not in self.state.used_menu_names]
        return self.rng.choice(unused or menus)

    def _update_stations(self):
        physics = self.settings.wok
        for wok in self.state.woks.values():
            entered = stations.advance_wok(wok, physics)
            if entered == WokState.BURNED:
                self.manager.handle_wok_burn(wok)
            elif entered == WokState.OVERHEATING:
                message = f"Wok {wok.burner_number} is overheating at {wok.temperature:.0f}°C"
                logger.warning(message)
                self.bus.emit(KitchenEvent(kind=EventKind.WOK_OVERHEATING, tick=self.state.clock,
                                           message=message, station=wok.equipment_key))

    def _advance_timers(self):
        for instance in list(self.state.instances.values()):
            location = instance.location
            if isinstance(location, AtWok):
                instance.cooking.elapsed_seconds += 1
            elif isinstance(location, InFryer):
                self._advance_fryer(instance, self.state.get_basket(location.basket))
            elif isinstance(location, InMicrowave):
                cooking = instance.cooking
                if self.state.microwave.head == instance.id and not cooking.timer_done:
                    cooking.elapsed_seconds += 1

    def _advance_fryer(self, instance: BundleInstance, basket: stations.FryerBasket):
        if basket.status == BasketStatus.BURNED:
            return
        if not basket.is_submerged or basket.started_at is None:
            return

        cooking = instance.cooking
        cooking.elapsed_seconds += 1
        timer = cooking.timer_seconds or self.settings.fryer.default_timer

        if cooking.elapsed_seconds >= timer + self.settings.fryer.burn_grace:
            self.manager.burn_basket(basket, instance)
            return

        if cooking.elapsed_seconds >= timer:
            step = self.validator.current_step(instance)
            if step is not None and step.type == StepType.ACTION and step.action_type == ActionType.DEEP_FRY:
                self.validator.advance(instance, self.state.clock)
                self.bus.emit(KitchenEvent(
                    kind=EventKind.STEP_ADVANCED, tick=self.state.clock, instance_id=instance.id,
                    order_id=instance.order_id, station=f"basket_{basket.basket_number}",
                    message=f"{instance.bundle_name} finished frying", data={"automatic": True},
                ))

    # Orders and session

    def add_order(self, menu_name: str) -> MenuOrder:
        recipe = self.catalog.get_recipe_by_menu(menu_name)
        order = MenuOrder(
            id=self.state.next_id("order"),
            menu_name=recipe.menu_name,
            recipe_id=recipe.id,
            entered_at=self.state.clock,
        )
        self.state.orders[order.id] = order
        self.state.used_menu_names.add(recipe.menu_name)
        logger.info(f"Order {order.id}: {order.menu_name}")
        self.bus.emit(KitchenEvent(kind=EventKind.ORDER_ADDED, tick=self.state.clock,
                                   order_id=order.id, message=f"New order: {order.menu_name}"))
        return order

    @property
    def is_finished(self) -> bool:
        return self.state.is_finished

    def end_game(self) -> Dict[str, Any]:
        """Final session score."""
        summary = self.collector.session_summary(self.state)
        logger.info(f"Session finished with score {summary['total_score']}")
        return summary

    # Commands

    def assign_bundle(self, order_id: str, bundle_id: str, station=None, slot: Optional[int] = None,
                      timer_seconds: Optional[int] = None, power=None) -> CommandResult:
        return self.manager.assign(order_id, bundle_id, station, slot, timer_seconds, power)

    def add_ingredient(self, instance_id: str, ingredient_ref: str, amount: float) -> CommandResult:
        return self.manager.feed(instance_id, ingredient_ref, amount)

    def execute_action(self, instance_id: str, action) -> CommandResult:
        return self.manager.act(instance_id, action)

    def complete_bundle(self, instance_id: str) -> CommandResult:
        return self.manager.complete(instance_id)

    def route_after_plate(self, instance_id: str, plate_type_id: str,
                          amount: Optional[float] = None) -> CommandResult:
        return self.manager.route_after_plate(instance_id, plate_type_id, amount)

    def apply_deco(self, instance_id: str, source_id: str, grid_position: int,
                   amount: float) -> CommandResult:
        return self.manager.apply_deco(instance_id, source_id, grid_position, amount)

    def merge_bundle(self, target_id: str, source_id: str, amount: float,
                     grid_position: Optional[int] = None) -> CommandResult:
        return self.manager.merge(target_id, source_id, amount, grid_position)

    def serve_bundle(self, instance_id: str) -> CommandResult:
        return self.manager.serve(instance_id)

    def discard_bundle(self, instance_id: str) -> CommandResult:
        return self.manager.discard(instance_id)

    def lower_basket(self, basket_number: int) -> CommandResult:
        return self.manager.lower_basket(basket_number)

    def lift_basket(self, basket_number: int) -> CommandResult:
        return self.manager.lift_basket(basket_number)

    def toggle_burner(self, burner_number: int) -> CommandResult:
        return self.manager.toggle_burner(burner_number)

    def set_heat_level(self, burner_number: int, level: int) -> CommandResult:
        return self.manager.set_heat_level(burner_number, level)

    def wash_station(self, burner_number: int) -> CommandResult:
        return self.manager.wash_station(burner_number)

    def empty_wok(self, burner_number: int) -> CommandResult:
        return self.manager.empty_wok(burner_number)

    def add_setting_item(self, ingredient_id: str, name: str, amount: float, unit: str = "g") -> CommandResult:
        return self.manager.add_setting_item(ingredient_id, name, amount, unit)

    def remove_setting_item(self, item_id: str) -> CommandResult:
        return self.manager.remove_setting_item(item_id)

    # Queries

    def get_station_status(self, station: str) -> Dict[str, Any]:
        """Snapshot of one station: burner_<n>, basket_<n> or microwave."""
        if station == "microwave":
            return {
                "name": "microwave",
                "queue": list(self.state.microwave.queue),
                "running": self.state.microwave.head,
            }
        kind, _, number = station.partition("_")
        if kind == "burner" and number.isdigit():
            wok = self.state.get_wok(int(number))
            return {
                "name": wok.equipment_key,
                "burner_number": wok.burner_number,
                "is_on": wok.is_on,
                "state": wok.state.value,
                "position": wok.position.value,
                "temperature": round(wok.temperature, 1),
                "heat_level": wok.heat_level,
                "has_water": wok.has_water,
                "water_temperature": round(wok.water_temperature, 1),
                "is_boiling": wok.is_boiling,
                "instance_id": wok.instance_id,
            }
        if kind == "basket" and number.isdigit():
            basket = self.state.get_basket(int(number))
            instance = self.state.instances.get(basket.instance_id) if basket.instance_id else None
            return {
                "name": station,
                "basket_number": basket.basket_number,
                "status": basket.status.value,
                "is_submerged": basket.is_submerged,
                "started_at": basket.started_at,
                "oil_temperature": self.state.fryer.oil_temperature,
                "elapsed_seconds": instance.cooking.elapsed_seconds if instance else 0,
                "timer_seconds": instance.cooking.timer_seconds if instance else None,
                "instance_id": basket.instance_id,
            }
        raise KitchenError(f"Unknown station: {station}")

    def station_names(self) -> List[str]:
        names = [w.equipment_key for w in self.state.woks.values()]
        names += [f"basket_{b.basket_number}" for b in self.state.fryer.baskets]
        names.append("microwave")
        return names

    def get_instance_snapshot(self, instance_id: str) -> Dict[str, Any]:
        instance = self.state.get_instance(instance_id)
        snapshot = instance.to_dict()
        step = self.validator.current_step(instance)
        snapshot["current_step_detail"] = None if step is None else {
            "order": step.order,
            "type": step.type.value,
            "action_type": step.action_type.value if step.action_type else None,
            "instruction": step.instruction,
            "requirements": [
                {
                    "id": r.id,
                    "ingredient_id": r.ingredient_id,
                    "display_name": r.display_name,
                    "required_amount": r.required_amount,
                    "required_unit": r.required_unit,
                    "added": r.id in instance.cooking.added_ingredient_ids,
                }
                for r in step.ingredients
            ],
        }
        if instance.plating is not None and instance.is_main_dish:
            snapshot["remaining_decos"] = [r.id for r in self.composer.remaining(instance)]
        return snapshot

    def get_order_queue(self) -> List[Dict[str, Any]]:
        return [order.to_dict(self.state.clock) for order in self.state.orders.values()]

    def get_station_utilization(self) -> Dict[str, Any]:
        """Share of stations holding food right now, plus burner usage so far."""
        woks = list(self.state.woks.values())
        baskets = self.state.fryer.baskets
        busy_woks = sum(1 for w in woks if w.is_occupied)
        busy_baskets = sum(1 for b in baskets if b.is_occupied)
        return {
            "woks_in_use": busy_woks,
            "wok_utilization": round(busy_woks / len(woks), 2) if woks else 0.0,
            "burners_on": sum(1 for w in woks if w.is_on),
            "baskets_in_use": busy_baskets,
            "fryer_utilization": round(busy_baskets / len(baskets), 2) if baskets else 0.0,
            "microwave_queue": len(self.state.microwave.queue),
            "burner_usage": self.collector.burner_usage(),
        }

    def get_kitchen_status(self) -> Dict[str, Any]:
        """Get overall kitchen status."""
        return {
            "clock": self.state.clock,
            "level": self.state.level.value,
            "validation": self.policy.name,
            "stations": {name: self.get_station_status(name) for name in self.station_names()},
            "orders": self.get_order_queue(),
            "instances": [i.to_dict() for i in self.state.instances.values()],
            "setting_items": [s.to_dict() for s in self.state.setting_items.values()],
            "completed_orders": self.state.completed_orders,
            "cancelled_orders": self.state.cancelled_orders,
            "target_orders": self.state.target_orders,
            "deco_mistakes": self.state.deco_mistakes,
            "utilization": self.get_station_utilization(),
        }

    def reset_kitchen(self):
        """Reset kitchen to initial state."""
        self.start_game(self.state.level)
        logger.info("Kitchen reset to initial state")

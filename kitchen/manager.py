"""
Bundle instance manager - owns the in-flight preparations and every command that moves them.

Locations run NOT_ASSIGNED -> WOK | FRYER | MICROWAVE -> PLATE_SELECT ->
DECO_MAIN | DECO_SETTING -> MERGED | SERVED. Commands return CommandResult;
only unknown ids raise.
"""

import logging
from typing import Optional, Union

from catalog import RecipeCatalog
from config import Settings
from kitchen import stations
from kitchen.events import EventBus, KitchenEvent, TimerScheduler
from kitchen.instances import (
    AtWok, BundleInstance, CookingProgress, DecoMain, DecoSetting, InFryer, InMicrowave,
    IngredientEntry, Merged, PlateSelect, PlatingState, Served
)
from kitchen.plating import DecoComposer
from kitchen.scoring import calculate_serve_score
from kitchen.state import CommandResult, GameState, MenuOrder, SettingItem
from kitchen.validation import StationReading, StepValidator
from kitchen_types import (
    ActionType, BasketStatus, CookingType, EventKind, OrderStatus, PowerLevel, RejectionReason,
    StationKind, WokState, parse_choice
)

logger = logging.getLogger(__name__)

MAX_DECO_PLATES = 6


class BundleInstanceManager:
    """Commands over bundle instances and the stations they occupy."""

    def __init__(self, state: GameState, catalog: RecipeCatalog, settings: Settings,
                 validator: StepValidator, composer: DecoComposer,
                 scheduler: TimerScheduler, bus: EventBus):
        self.state = state
        self.catalog = catalog
        self.settings = settings
        self.validator = validator
        self.composer = composer
        self.scheduler = scheduler
        self.bus = bus

    @property
    def physics(self):
        return self.settings.wok

    # Events

    def _emit(self, kind: EventKind, message: str = "", instance: Optional[BundleInstance] = None,
              order_id: Optional[str] = None, station: Optional[str] = None, **data):
        self.bus.emit(KitchenEvent(
            kind=kind,
            tick=self.state.clock,
            message=message,
            instance_id=instance.id if instance else None,
            order_id=order_id or (instance.order_id if instance else None),
            station=station,
            data=data,
        ))

    def _refuse(self, command: str, result: CommandResult,
                instance: Optional[BundleInstance] = None, penalized: bool = False) -> CommandResult:
        logger.debug(f"{command} refused: {result.message}")
        station = self._station_name(instance) if instance else None
        self._emit(EventKind.REJECTED, result.message, instance, station=station, command=command,
                   reason=result.reason.value if result.reason else None, penalized=penalized)
        if penalized:
            result.data["penalized"] = True
        return result

    def _station_name(self, instance: BundleInstance) -> Optional[str]:
        location = instance.location
        if isinstance(location, AtWok):
            return f"burner_{location.burner}"
        if isinstance(location, InFryer):
            return f"basket_{location.basket}"
        if isinstance(location, InMicrowave):
            return "microwave"
        return None

    # Assignment

    def assign(self, order_id: str, bundle_id: str, station: Optional[Union[StationKind, str]] = None,
               slot: Optional[int] = None, timer_seconds: Optional[int] = None,
               power: Optional[Union[PowerLevel, str]] = None) -> CommandResult:
        """Start a bundle of an order on a station.

        Cold bundles may be started without a station and go straight to plate selection.
        """
        order = self.state.get_order(order_id)
        bundle = self.catalog.get_bundle(bundle_id)
        station = parse_choice(StationKind, station, "station") if station is not None else None
        power = parse_choice(PowerLevel, power, "power level") if power is not None else None

        if order.status == OrderStatus.COMPLETED:
            return self._refuse("assign", CommandResult.reject(
                RejectionReason.ORDER_CLOSED, f"Order {order.id} is already served"))
        if bundle.recipe_id != order.recipe_id:
            return self._refuse("assign", CommandResult.reject(
                RejectionReason.BUNDLE_NOT_IN_RECIPE, f"{bundle.name or bundle.id} is not part of {order.menu_name}"))
        if any(i.bundle_id == bundle.id for i in self.state.live_instances_for_order(order.id)):
            return self._refuse("assign", CommandResult.reject(
                RejectionReason.DUPLICATE_BUNDLE, f"{bundle.name or bundle.id} is already in progress"))

        now = self.state.clock
        instance = BundleInstance(
            id=self.state.next_id("bundle"),
            order_id=order.id,
            recipe_id=order.recipe_id,
            menu_name=order.menu_name,
            bundle_id=bundle.id,
            bundle_name=bundle.name or bundle.id,
            is_main_dish=bundle.is_main_dish,
            cooking=CookingProgress(
                total_steps=self.catalog.total_steps(bundle.id),
                started_at=now,
                step_started_at=now,
            ),
            ingredients=[
                IngredientEntry(name=r.display_name or r.ingredient_id, amount=r.required_amount,
                                unit=r.required_unit)
                for r in self.catalog.bundle_requirements(bundle.id)
            ],
        )

        if station is None:
            if bundle.cooking_type != CookingType.COLD:
                return self._refuse("assign", CommandResult.reject(
                    RejectionReason.INVALID_LOCATION, f"{instance.bundle_name} must be cooked on a station"))
            instance.cooking.current_step = instance.cooking.total_steps
            instance.location = PlateSelect()
        elif station == StationKind.WOK:
            refused = self._place_on_wok(instance, slot)
            if refused:
                return self._refuse("assign", refused)
        elif station == StationKind.FRYER:
            refused = self._place_in_fryer(instance, slot, timer_seconds)
            if refused:
                return self._refuse("assign", refused)
        else:
            refused = self._place_in_microwave(instance, timer_seconds, power)
            if refused:
                return self._refuse("assign", refused)

        self.state.instances[instance.id] = instance
        if order.status == OrderStatus.WAITING:
            order.status = OrderStatus.COOKING

        message = f"{instance.bundle_name} for {order.menu_name} started"
        logger.info(message)
        self._emit(EventKind.BUNDLE_ASSIGNED, message, instance, station=self._station_name(instance))
        return CommandResult.ok(message, instance_id=instance.id, errors=instance.errors,
                                location=instance.location.name)

    def _place_on_wok(self, instance: BundleInstance, slot: Optional[int]) -> Optional[CommandResult]:
        if slot is None:
            return CommandResult.reject(RejectionReason.INVALID_CONFIG, "Pick a burner")
        wok = self.state.get_wok(slot)
        if wok.is_occupied:
            return CommandResult.reject(RejectionReason.SLOT_OCCUPIED, f"Burner {slot} is in use")
        if not wok.is_ready:
            return CommandResult.reject(RejectionReason.STATION_NOT_READY,
                                        f"Wok {slot} is {wok.state.value} at {wok.position.value}")
        wok.instance_id = instance.id
        wok.is_on = True
        instance.location = AtWok(burner=slot)
        return None

    def _place_in_fryer(self, instance: BundleInstance, slot: Optional[int],
                        timer_seconds: Optional[int]) -> Optional[CommandResult]:
        fryer = self.settings.fryer
        if slot is None:
            return CommandResult.reject(RejectionReason.INVALID_CONFIG, "Pick a basket")
        basket = self.state.get_basket(slot)
        if basket.is_occupied or basket.status != BasketStatus.EMPTY:
            return CommandResult.reject(RejectionReason.SLOT_OCCUPIED, f"Basket {slot} is in use")

        step = self.catalog.first_action_step(instance.bundle_id, ActionType.DEEP_FRY)
        timer = timer_seconds or (step.required_duration if step else None) or fryer.default_timer
        if not fryer.min_timer <= timer <= fryer.max_timer:
            return CommandResult.reject(RejectionReason.INVALID_CONFIG,
                                        f"Fryer timer must be {fryer.min_timer}-{fryer.max_timer}s")
        if timer_seconds is not None:
            outcome = self.validator.check_timer_config(instance, ActionType.DEEP_FRY, timer)
            if not outcome.accepted:
                return CommandResult.reject(outcome.reason, outcome.message)

        basket.instance_id = instance.id
        basket.status = BasketStatus.ASSIGNED
        basket.is_submerged = False
        basket.started_at = None
        instance.cooking.timer_seconds = timer
        instance.location = InFryer(basket=slot)
        return None

    def _place_in_microwave(self, instance: BundleInstance, timer_seconds: Optional[int],
                            power: Optional[PowerLevel]) -> Optional[CommandResult]:
        microwave = self.settings.microwave
        step = self.catalog.first_action_step(instance.bundle_id, ActionType.MICROWAVE)
        timer = timer_seconds or (step.required_duration if step else None) or microwave.default_timer
        if not microwave.min_timer <= timer <= microwave.max_timer:
            return CommandResult.reject(RejectionReason.INVALID_CONFIG,
                                        f"Microwave timer must be {microwave.min_timer}-{microwave.max_timer}s")
        if timer_seconds is not None or power is not None:
            outcome = self.validator.check_timer_config(instance, ActionType.MICROWAVE, timer, power)
            if not outcome.accepted:
                return CommandResult.reject(outcome.reason, outcome.message)

        instance.cooking.timer_seconds = timer
        instance.cooking.power_level = power or (step.power if step else None) or PowerLevel(microwave.default_power)
        self.state.microwave.queue.append(instance.id)
        instance.location = InMicrowave()
        return None

    # Cooking

    def _reading(self, instance: BundleInstance) -> StationReading:
        location = instance.location
        if isinstance(location, AtWok):
            wok = self.state.get_wok(location.burner)
            return StationReading(temperature=wok.temperature, has_water=wok.has_water,
                                  is_boiling=wok.is_boiling)
        if isinstance(location, InFryer):
            return StationReading(oil_temperature=self.state.fryer.oil_temperature,
                                  timer_done=instance.cooking.timer_done)
        return StationReading(timer_done=instance.cooking.timer_done)

    def _station_blocks(self, instance: BundleInstance) -> Optional[CommandResult]:
        location = instance.location
        if isinstance(location, AtWok):
            wok = self.state.get_wok(location.burner)
            if not wok.at_burner:
                return CommandResult.reject(RejectionReason.STATION_BUSY, "The wok is away from its burner")
        elif isinstance(location, InFryer):
            basket = self.state.get_basket(location.basket)
            if basket.status == BasketStatus.BURNED:
                return CommandResult.reject(RejectionReason.STATION_NOT_READY, "The basket is burned")
            if basket.is_submerged:
                return CommandResult.reject(RejectionReason.STATION_BUSY, "Lift the basket first")
        elif isinstance(location, InMicrowave):
            running = (self.state.microwave.head == instance.id
                       and instance.cooking.elapsed_seconds > 0
                       and not instance.cooking.timer_done)
            if running:
                return CommandResult.reject(RejectionReason.TIMER_RUNNING, "The microwave is running")
        return None

    def feed(self, instance_id: str, ingredient_ref: str, amount: float) -> CommandResult:
        """Add an ingredient to a cooking instance."""
        instance = self.state.get_instance(instance_id)
        if not instance.is_cooking:
            return self._refuse("feed", CommandResult.reject(
                RejectionReason.INVALID_LOCATION, f"{instance.bundle_name} is not on a station"), instance)
        blocked = self._station_blocks(instance)
        if blocked:
            return self._refuse("feed", blocked, instance)

        outcome = self.validator.feed(instance, ingredient_ref, amount, self.state.clock)
        if not outcome.accepted:
            return self._refuse("feed", CommandResult.reject(outcome.reason, outcome.message,
                                                            errors=instance.errors),
                                instance, penalized=outcome.penalized)

        requirement = outcome.requirement
        if isinstance(instance.location, AtWok):
            wok = self.state.get_wok(instance.location.burner)
            category = requirement.category.value if requirement.category else None
            drop = stations.ingredient_cooling(category, self.physics)
            if wok.has_water:
                wok.water_temperature = max(wok.water_temperature - drop, self.physics.ambient)
                if wok.water_temperature < self.physics.water_boil:
                    wok.boil_dwell = 0
                    wok.is_boiling = False
            else:
                stations.apply_cooling(wok, drop, self.physics)

        message = f"{requirement.display_name or requirement.ingredient_id} added to {instance.bundle_name}"
        self._emit(EventKind.INGREDIENT_ADDED, message, instance, station=self._station_name(instance),
                   requirement_id=requirement.id, amount=amount, correct=not outcome.penalized)
        if outcome.advanced:
            self._emit(EventKind.STEP_ADVANCED, instance=instance, step=instance.cooking.current_step)
        return CommandResult.ok(
            message,
            requirement_id=requirement.id,
            current_step=instance.cooking.current_step,
            step_advanced=outcome.advanced,
            penalized=outcome.penalized,
            errors=instance.errors,
        )

    def act(self, instance_id: str, action: Union[ActionType, str]) -> CommandResult:
        """Perform an action on a cooking instance."""
        instance = self.state.get_instance(instance_id)
        action = parse_choice(ActionType, action, "action")
        if not instance.is_cooking:
            return self._refuse("act", CommandResult.reject(
                RejectionReason.INVALID_LOCATION, f"{instance.bundle_name} is not on a station"), instance)

        location = instance.location
        wok = self.state.get_wok(location.burner) if isinstance(location, AtWok) else None
        if wok is not None and not wok.at_burner:
            return self._refuse("act", CommandResult.reject(
                RejectionReason.STATION_BUSY, "The wok is away from its burner"), instance)
        if isinstance(location, InFryer):
            if self.state.get_basket(location.basket).status == BasketStatus.BURNED:
                return self._refuse("act", CommandResult.reject(
                    RejectionReason.STATION_NOT_READY, "The basket is burned"), instance)

        step = self.validator.current_step(instance)
        is_current = step is not None and step.action_type == action
        if wok is not None and action == ActionType.STIR_FRY and not is_current:
            return self._stir_for_heat(instance, wok)

        outcome = self.validator.act(instance, action, self._reading(instance), self.state.clock)
        if outcome.burned:
            message = f"Too slow on {action.value}: {instance.bundle_name} burned"
            logger.warning(message)
            if wok is not None:
                self._burn_wok(wok)
            else:
                self._destroy(instance, "burned")
            return self._refuse("act", CommandResult.reject(outcome.reason, message, burned=True), instance)

        if not outcome.accepted:
            if outcome.penalized and wok is not None and action in (ActionType.FLIP, ActionType.ADD_WATER):
                self._apply_wok_action(wok, action)
            return self._refuse("act", CommandResult.reject(outcome.reason, outcome.message,
                                                           errors=instance.errors),
                                instance, penalized=outcome.penalized)

        if wok is not None:
            self._apply_wok_action(wok, action)
        elif isinstance(location, InFryer) and action == ActionType.LIFT_BASKET:
            stations.lift_basket(self.state.get_basket(location.basket))

        message = f"{action.value} on {instance.bundle_name}"
        self._emit(EventKind.ACTION_PERFORMED, message, instance, station=self._station_name(instance),
                   action=action.value, correct=not outcome.penalized)
        if outcome.advanced:
            self._emit(EventKind.STEP_ADVANCED, instance=instance, step=instance.cooking.current_step)
        return CommandResult.ok(
            message,
            current_step=instance.cooking.current_step,
            step_advanced=outcome.advanced,
            penalized=outcome.penalized,
            errors=instance.errors,
        )

    def _stir_for_heat(self, instance: BundleInstance, wok: stations.Wok) -> CommandResult:
        """Stir-frying off-step is temperature control, not a mistake."""
        if wok.has_water or wok.temperature < self.physics.min_stir_fry:
            return self._refuse("act", CommandResult.reject(
                RejectionReason.PRECONDITION_FAILED,
                f"Wok at {wok.temperature:.0f}°C, needs {self.physics.min_stir_fry:.0f}°C"), instance)
        self._apply_wok_action(wok, ActionType.STIR_FRY)
        message = f"Stirred {instance.bundle_name} to control the heat"
        self._emit(EventKind.ACTION_PERFORMED, message, instance, station=self._station_name(instance),
                   action=ActionType.STIR_FRY.value, correct=True, temperature_control=True)
        return CommandResult.ok(message, current_step=instance.cooking.current_step,
                                step_advanced=False, temperature_control=True)

    def _apply_wok_action(self, wok: stations.Wok, action: ActionType):
        if action == ActionType.STIR_FRY:
            def cool():
                if wok.at_burner and not wok.has_water:
                    stations.apply_cooling(wok, self.physics.stir_fry_cooling, self.physics)
            self.scheduler.schedule(self.physics.stir_fry_cooling_delay, cool,
                                    label="stir_fry_cooling", owner=wok.equipment_key)
        elif action == ActionType.FLIP:
            stations.apply_cooling(wok, self.physics.flip_cooling, self.physics)
        elif action == ActionType.ADD_WATER:
            stations.fill_water(wok, self.physics)

    def complete(self, instance_id: str) -> CommandResult:
        """Take a finished instance off its station."""
        instance = self.state.get_instance(instance_id)
        if not instance.is_cooking:
            return self._refuse("complete", CommandResult.reject(
                RejectionReason.INVALID_LOCATION, f"{instance.bundle_name} is not on a station"), instance)
        cooking = instance.cooking
        if not cooking.steps_done:
            return self._refuse("complete", CommandResult.reject(
                RejectionReason.STEPS_INCOMPLETE,
                f"{instance.bundle_name} is at step {cooking.current_step}/{cooking.total_steps}"), instance)
        if isinstance(instance.location, InMicrowave) and not cooking.timer_done:
            return self._refuse("complete", CommandResult.reject(
                RejectionReason.TIMER_RUNNING, "The microwave timer has not finished"), instance)
        if isinstance(instance.location, InFryer):
            if self.state.get_basket(instance.location.basket).status == BasketStatus.BURNED:
                return self._refuse("complete", CommandResult.reject(
                    RejectionReason.STATION_NOT_READY, "The basket burned; discard it"), instance)

        station = self._station_name(instance)
        self.release_station(instance, "complete")
        instance.location = PlateSelect()
        message = f"{instance.bundle_name} is ready for a plate"
        self._emit(EventKind.BUNDLE_COMPLETED, message, instance, station=station)
        return CommandResult.ok(message, location=instance.location.name)

    # Plating

    def route_after_plate(self, instance_id: str, plate_type_id: str,
                          amount: Optional[float] = None) -> CommandResult:
        """Put a completed instance on a plate and send it to the deco counter."""
        instance = self.state.get_instance(instance_id)
        if not isinstance(instance.location, PlateSelect):
            return self._refuse("plate", CommandResult.reject(
                RejectionReason.INVALID_LOCATION, f"{instance.bundle_name} is not waiting for a plate"), instance)
        plate = self.catalog.get_plate_type(plate_type_id)

        if instance.is_main_dish:
            plates = sum(1 for i in self.state.instances.values() if isinstance(i.location, DecoMain))
            if plates >= MAX_DECO_PLATES:
                return self._refuse("plate", CommandResult.reject(
                    RejectionReason.STATION_BUSY, "The deco counter is full"), instance)
            instance.plating = PlatingState.empty(plate.id, plate.shape, plate.grid_size)
            instance.location = DecoMain(plate_id=self.state.next_id("plate"))
            instance.plating.is_complete = self.composer.is_complete(instance)
        else:
            instance.plating = PlatingState.empty(plate.id, plate.shape, plate.grid_size)
            total = sum(entry.amount for entry in instance.ingredients)
            instance.available_amount = float(amount or total or 1)
            instance.location = DecoSetting()

        message = f"{instance.bundle_name} plated on {plate.name or plate.id}"
        self._emit(EventKind.BUNDLE_PLATED, message, instance, location=instance.location.name)
        return CommandResult.ok(message, location=instance.location.name,
                                available_amount=instance.available_amount)

    def apply_deco(self, instance_id: str, source_id: str, grid_position: int,
                   amount: float) -> CommandResult:
        target = self.state.get_instance(instance_id)
        result = self.composer.apply_item(target, source_id, grid_position, amount)
        if not result.success:
            return self._refuse("deco", result, target)
        self._emit(EventKind.DECO_APPLIED, result.message, target, **result.data)
        return result

    def merge(self, target_id: str, source_id: str, amount: float,
              grid_position: Optional[int] = None) -> CommandResult:
        target = self.state.get_instance(target_id)
        source = self.state.get_instance(source_id)
        result = self.composer.merge(target, source, amount, grid_position)
        if not result.success:
            return self._refuse("merge", result, target)
        self._emit(EventKind.BUNDLE_MERGED, result.message, target, source_id=source.id, **result.data)
        return result

    def serve(self, instance_id: str) -> CommandResult:
        """Serve a main dish. Missing decoration costs points but does not block."""
        instance = self.state.get_instance(instance_id)
        if not isinstance(instance.location, DecoMain):
            return self._refuse("serve", CommandResult.reject(
                RejectionReason.INVALID_LOCATION, f"{instance.bundle_name} is not a plated main dish"), instance)

        order = self.state.get_order(instance.order_id)
        deco_complete = self.composer.is_complete(instance)
        if not deco_complete:
            self.state.deco_mistakes += 1

        now = self.state.clock
        related = self.state.instances_for_order(order.id)
        total_steps = sum(i.cooking.total_steps for i in related)
        errors = sum(i.errors for i in related)
        score = calculate_serve_score(order.age(now), total_steps, errors, self.settings.orders)

        order.status = OrderStatus.COMPLETED
        order.served_at = now
        order.score = score.final_score
        self.state.completed_orders += 1
        instance.location = Served()

        for other in related:
            self.release_station(other, "serve")
            self.scheduler.cancel_owner(other.id)
            self.state.instances.pop(other.id, None)

        order_id = order.id
        self.scheduler.schedule(self.settings.orders.display_grace, lambda: self.remove_order(order_id),
                                label="order_display", owner=order_id)

        message = (f"{order.menu_name} served ({score.time.tier.value}, "
                   f"recipe {score.recipe_accuracy:g}%, score {score.final_score})")
        logger.info(message)
        self._emit(EventKind.BUNDLE_SERVED, message, instance, score=score.final_score,
                   time_tier=score.time.tier.value, deco_complete=deco_complete)
        return CommandResult.ok(
            message,
            score=score.final_score,
            time_score=score.time.score,
            time_tier=score.time.tier.value,
            recipe_score=score.recipe_score,
            recipe_accuracy=score.recipe_accuracy,
            deco_complete=deco_complete,
            completed_orders=self.state.completed_orders,
        )

    # Removal

    def discard(self, instance_id: str) -> CommandResult:
        """Throw an instance away wherever it is."""
        instance = self.state.get_instance(instance_id)
        self._destroy(instance, "discard")
        message = f"{instance.bundle_name} discarded"
        return CommandResult.ok(message)

    def _destroy(self, instance: BundleInstance, reason: str, reset_order: bool = True):
        station = self._station_name(instance)
        self.release_station(instance, reason)
        self.scheduler.cancel_owner(instance.id)
        self.state.instances.pop(instance.id, None)

        for other in list(self.state.instances.values()):
            if isinstance(other.location, Merged) and other.location.target_id == instance.id:
                self.state.instances.pop(other.id, None)

        order = self.state.orders.get(instance.order_id)
        if reset_order and order is not None and order.status == OrderStatus.COOKING:
            if not self.state.live_instances_for_order(order.id):
                order.status = OrderStatus.WAITING

        self._emit(EventKind.BUNDLE_DISCARDED, f"{instance.bundle_name} removed ({reason})", instance,
                   station=station, reason=reason)

    def release_station(self, instance: BundleInstance, reason: str):
        """Free whatever station the instance holds.

        This is the one cleanup path for complete, discard, burns and order
        cancellation. A wok is left DIRTY with its burner off unless it is
        already BURNED.
        """
        location = instance.location
        if isinstance(location, AtWok):
            wok = self.state.woks.get(location.burner)
            if wok is not None and wok.instance_id == instance.id:
                wok.instance_id = None
                wok.is_on = False
                stations.clear_water(wok, self.physics)
                if wok.state != WokState.BURNED:
                    wok.state = WokState.DIRTY
                    wok.resting_state = WokState.DIRTY
        elif isinstance(location, InFryer):
            basket = self.state.fryer.basket(location.basket)
            if basket is not None and basket.instance_id == instance.id:
                stations.empty_basket(basket)
        elif isinstance(location, InMicrowave):
            self.state.microwave.remove(instance.id)
        logger.debug(f"Released station of {instance.id} ({reason})")

    def remove_order(self, order_id: str):
        order = self.state.orders.pop(order_id, None)
        if order is not None:
            self._emit(EventKind.ORDER_REMOVED, f"{order.menu_name} left the queue", order_id=order_id)

    def cancel_order(self, order: MenuOrder):
        """Force-cancel an order that waited too long."""
        for instance in self.state.instances_for_order(order.id):
            self._destroy(instance, "cancelled", reset_order=False)
        self.scheduler.cancel_owner(order.id)
        self.state.orders.pop(order.id, None)
        self.state.cancelled_orders += 1
        message = f"{order.menu_name} cancelled after {order.age(self.state.clock)}s"
        logger.warning(message)
        self._emit(EventKind.ORDER_CANCELLED, message, order_id=order.id)

    # Station operations

    def handle_wok_burn(self, wok: stations.Wok):
        """Called by the tick driver after a wok crossed the burn threshold."""
        self._burn_wok(wok, already_burned=True)

    def _burn_wok(self, wok: stations.Wok, already_burned: bool = False):
        if not already_burned:
            stations.burn_wok(wok, self.physics)
        instance = self.state.instances.get(wok.instance_id) if wok.instance_id else None
        message = f"Wok {wok.burner_number} burned"
        logger.warning(message)
        self._emit(EventKind.WOK_BURNED, message, instance, station=wok.equipment_key)
        if instance is not None:
            self._destroy(instance, "burned")
        wok.instance_id = None

    def burn_basket(self, basket: stations.FryerBasket, instance: BundleInstance):
        basket.status = BasketStatus.BURNED
        message = f"Basket {basket.basket_number} burned {instance.bundle_name}"
        logger.warning(message)
        self._emit(EventKind.BASKET_BURNED, message, instance, station=f"basket_{basket.basket_number}",
                   elapsed=instance.cooking.elapsed_seconds)

    def lower_basket(self, basket_number: int) -> CommandResult:
        basket = self.state.get_basket(basket_number)
        if not basket.is_occupied:
            return self._refuse("lower_basket", CommandResult.reject(
                RejectionReason.STATION_NOT_READY, f"Basket {basket_number} is empty"))
        if basket.status == BasketStatus.BURNED:
            return self._refuse("lower_basket", CommandResult.reject(
                RejectionReason.STATION_NOT_READY, f"Basket {basket_number} is burned"))
        if basket.is_submerged:
            return self._refuse("lower_basket", CommandResult.reject(
                RejectionReason.STATION_BUSY, f"Basket {basket_number} is already in the oil"))
        stations.lower_basket(basket, self.state.clock)
        return CommandResult.ok(f"Basket {basket_number} lowered")

    def lift_basket(self, basket_number: int) -> CommandResult:
        basket = self.state.get_basket(basket_number)
        if not basket.is_submerged:
            return self._refuse("lift_basket", CommandResult.reject(
                RejectionReason.STATION_NOT_READY, f"Basket {basket_number} is not in the oil"))
        stations.lift_basket(basket)
        instance = self.state.instances.get(basket.instance_id)
        elapsed = instance.cooking.elapsed_seconds if instance else 0
        return CommandResult.ok(f"Basket {basket_number} lifted", elapsed_seconds=elapsed)

    def toggle_burner(self, burner_number: int) -> CommandResult:
        wok = self.state.get_wok(burner_number)
        if not wok.at_burner:
            return self._refuse("toggle_burner", CommandResult.reject(
                RejectionReason.STATION_BUSY, f"Wok {burner_number} is at the sink"))
        wok.is_on = not wok.is_on
        return CommandResult.ok(f"Burner {burner_number} {'on' if wok.is_on else 'off'}", is_on=wok.is_on)

    def set_heat_level(self, burner_number: int, level: int) -> CommandResult:
        wok = self.state.get_wok(burner_number)
        if level not in self.physics.heat_multiplier:
            return self._refuse("set_heat_level", CommandResult.reject(
                RejectionReason.INVALID_CONFIG, f"Heat level must be one of {sorted(self.physics.heat_multiplier)}"))
        wok.heat_level = level
        return CommandResult.ok(f"Burner {burner_number} heat level {level}", heat_level=level)

    def wash_station(self, burner_number: int) -> CommandResult:
        """Send a dirty or burned wok to the sink and back."""
        wok = self.state.get_wok(burner_number)
        if wok.state not in (WokState.DIRTY, WokState.BURNED):
            return self._refuse("wash", CommandResult.reject(
                RejectionReason.STATION_NOT_READY, f"Wok {burner_number} is {wok.state.value}"))
        if wok.is_on:
            return self._refuse("wash", CommandResult.reject(
                RejectionReason.STATION_BUSY, f"Turn burner {burner_number} off first"))
        if not wok.at_burner:
            return self._refuse("wash", CommandResult.reject(
                RejectionReason.STATION_BUSY, f"Wok {burner_number} is already being washed"))
        if wok.is_occupied:
            return self._refuse("wash", CommandResult.reject(
                RejectionReason.SLOT_OCCUPIED, f"Wok {burner_number} still holds food"))

        move = self.physics.wash_move_ticks
        sink = self.physics.wash_sink_ticks
        key = wok.equipment_key

        def returned():
            stations.return_to_burner(wok)
            self._emit(EventKind.WOK_WASHED, f"Wok {burner_number} is back and drying", station=key)

        stations.send_to_sink(wok)
        self.scheduler.schedule(move, lambda: stations.arrive_at_sink(wok, self.physics),
                                label="wash_arrive", owner=key)
        self.scheduler.schedule(move + sink, lambda: stations.leave_sink(wok), label="wash_leave", owner=key)
        self.scheduler.schedule(move + sink + move, returned, label="wash_return", owner=key)
        return CommandResult.ok(f"Wok {burner_number} sent to the sink", ready_in=move + sink + move)

    def empty_wok(self, burner_number: int) -> CommandResult:
        """Tip out whatever is in a wok; the order goes back to waiting."""
        wok = self.state.get_wok(burner_number)
        if wok.instance_id and wok.instance_id in self.state.instances:
            self._destroy(self.state.instances[wok.instance_id], "emptied")
        wok.instance_id = None
        wok.is_on = False
        stations.clear_water(wok, self.physics)
        wok.temperature = self.physics.ambient
        if wok.state != WokState.BURNED:
            wok.state = WokState.DIRTY
            wok.resting_state = WokState.DIRTY
        return CommandResult.ok(f"Wok {burner_number} emptied")

    # Setting items

    def add_setting_item(self, ingredient_id: str, name: str, amount: float, unit: str = "g") -> CommandResult:
        if amount <= 0:
            return self._refuse("add_setting_item", CommandResult.reject(
                RejectionReason.WRONG_AMOUNT, "Amount must be positive"))
        existing = self.state.setting_item_for(ingredient_id)
        if existing is not None:
            existing.amount += amount
            existing.remaining_amount += amount
            return CommandResult.ok(f"{name} topped up", item=existing.to_dict())
        item = SettingItem(
            id=self.state.next_id("setting"),
            ingredient_id=ingredient_id,
            name=name,
            amount=amount,
            unit=unit,
            remaining_amount=amount,
        )
        self.state.setting_items[item.id] = item
        return CommandResult.ok(f"{name} set out", item=item.to_dict())

    def remove_setting_item(self, item_id: str) -> CommandResult:
        item = self.state.get_setting_item(item_id)
        del self.state.setting_items[item.id]
        return CommandResult.ok(f"{item.name} cleared", item_id=item.id)

"""
Cooking stations and their per-tick physics.

Temperatures are in °C and every rate is per one-second tick. Nothing here
knows about bundle instances beyond the id a slot is holding; freeing the
instance after a burn is the manager's job.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import WokPhysicsConfig
from kitchen_types import BasketStatus, WokPosition, WokState


@dataclass
class Wok:
    """A wok sitting on one burner."""
    burner_number: int
    equipment_key: str = ""
    is_on: bool = False
    state: WokState = WokState.CLEAN
    position: WokPosition = WokPosition.AT_BURNER
    temperature: float = 25.0
    heat_level: int = 3
    has_water: bool = False
    water_temperature: float = 25.0
    boil_dwell: int = 0
    is_boiling: bool = False
    instance_id: Optional[str] = None
    resting_state: WokState = WokState.CLEAN  # state to return to once overheating passes

    def __post_init__(self):
        if not self.equipment_key:
            self.equipment_key = f"burner_{self.burner_number}"

    @property
    def at_burner(self) -> bool:
        return self.position == WokPosition.AT_BURNER

    @property
    def is_occupied(self) -> bool:
        return self.instance_id is not None

    @property
    def is_ready(self) -> bool:
        return self.state == WokState.CLEAN and self.at_burner and not self.is_occupied


@dataclass
class FryerBasket:
    """One fryer basket."""
    basket_number: int
    status: BasketStatus = BasketStatus.EMPTY
    is_submerged: bool = False
    started_at: Optional[int] = None
    instance_id: Optional[str] = None

    @property
    def is_occupied(self) -> bool:
        return self.instance_id is not None


@dataclass
class FryerState:
    """The fryer: one oil bath shared by its baskets."""
    oil_temperature: float = 180.0
    baskets: List[FryerBasket] = field(default_factory=list)

    def basket(self, number: int) -> Optional[FryerBasket]:
        for basket in self.baskets:
            if basket.basket_number == number:
                return basket
        return None


@dataclass
class MicrowaveState:
    """Single-cavity microwave; only the head of the queue runs."""
    queue: List[str] = field(default_factory=list)

    @property
    def head(self) -> Optional[str]:
        return self.queue[0] if self.queue else None

    def remove(self, instance_id: str):
        if instance_id in self.queue:
            self.queue.remove(instance_id)


def create_woks(count: int, physics: WokPhysicsConfig) -> Dict[int, Wok]:
    return {
        n: Wok(burner_number=n, temperature=physics.ambient, water_temperature=physics.ambient)
        for n in range(1, count + 1)
    }


def create_fryer(count: int, oil_temperature: float) -> FryerState:
    return FryerState(
        oil_temperature=oil_temperature,
        baskets=[FryerBasket(basket_number=n) for n in range(1, count + 1)]
    )


# Wok thermal model

def heat_increment(temperature: float, heat_level: int, physics: WokPhysicsConfig) -> float:
    """Heat gained in one tick, damped by the squared headroom to the ceiling."""
    multiplier = physics.heat_multiplier.get(heat_level, 1.0)
    headroom = (physics.max_safe - temperature) / (physics.max_safe - physics.ambient)
    return physics.base_heat_rate * multiplier * max(headroom, 0.0) ** 2


def advance_wok(wok: Wok, physics: WokPhysicsConfig) -> Optional[WokState]:
    """Advance one wok by one tick.

    Returns the state the wok just entered (CLEAN after drying, OVERHEATING,
    BURNED or the state it cooled back to), or None when nothing changed.
    A wok away from its burner is left alone.
    """
    if not wok.at_burner:
        return None

    if wok.has_water:
        _advance_water(wok, physics)
        return None

    if wok.is_on:
        gain = heat_increment(wok.temperature, wok.heat_level, physics)
        wok.temperature = min(wok.temperature + gain, physics.max_safe)
    else:
        wok.temperature = max(wok.temperature - physics.cool_rate, physics.ambient)

    return _derive_state(wok, physics)


def _advance_water(wok: Wok, physics: WokPhysicsConfig):
    if wok.is_on:
        was_at_boil = wok.water_temperature >= physics.water_boil
        wok.water_temperature = min(wok.water_temperature + physics.water_heat_rate, physics.water_boil)
        if wok.water_temperature >= physics.water_boil:
            # the tick the water reaches the boil point starts the dwell at zero
            wok.boil_dwell = wok.boil_dwell + 1 if was_at_boil else 0
            if wok.boil_dwell >= physics.water_boil_duration:
                wok.is_boiling = True
    else:
        wok.water_temperature = max(wok.water_temperature - physics.cool_rate, physics.ambient)
        wok.boil_dwell = 0
        wok.is_boiling = False


def _derive_state(wok: Wok, physics: WokPhysicsConfig) -> Optional[WokState]:
    temperature = wok.temperature

    if wok.state == WokState.WET and temperature >= physics.drying_threshold:
        wok.state = WokState.CLEAN

    if temperature >= physics.burned:
        if wok.state == WokState.BURNED:
            return None
        burn_wok(wok, physics)
        return WokState.BURNED

    if wok.state == WokState.BURNED:
        return None

    if temperature >= physics.overheating:
        if wok.state != WokState.OVERHEATING:
            wok.resting_state = wok.state
            wok.state = WokState.OVERHEATING
            return WokState.OVERHEATING
        return None

    if wok.state == WokState.OVERHEATING:
        wok.state = wok.resting_state
        return wok.state

    return None


def burn_wok(wok: Wok, physics: WokPhysicsConfig):
    """Burn the wok: burner off, water gone. The slot is freed by the caller."""
    wok.state = WokState.BURNED
    wok.is_on = False
    clear_water(wok, physics)


def clear_water(wok: Wok, physics: WokPhysicsConfig):
    wok.has_water = False
    wok.water_temperature = physics.ambient
    wok.boil_dwell = 0
    wok.is_boiling = False


def fill_water(wok: Wok, physics: WokPhysicsConfig):
    """Pour ambient water into the wok; the metal drops to ambient with it."""
    wok.has_water = True
    wok.water_temperature = physics.ambient
    wok.boil_dwell = 0
    wok.is_boiling = False
    wok.temperature = physics.ambient


def apply_cooling(wok: Wok, drop: float, physics: WokPhysicsConfig):
    wok.temperature = max(wok.temperature - drop, physics.ambient)


def ingredient_cooling(category: Optional[str], physics: WokPhysicsConfig) -> float:
    if category is None:
        return physics.default_cooling
    return physics.ingredient_cooling.get(category, physics.default_cooling)


# Wash trip

def send_to_sink(wok: Wok):
    wok.position = WokPosition.MOVING_TO_SINK


def arrive_at_sink(wok: Wok, physics: WokPhysicsConfig):
    wok.position = WokPosition.AT_SINK
    wok.state = WokState.WET
    wok.resting_state = WokState.WET
    wok.temperature = physics.ambient
    clear_water(wok, physics)


def leave_sink(wok: Wok):
    wok.position = WokPosition.MOVING_TO_BURNER


def return_to_burner(wok: Wok):
    wok.position = WokPosition.AT_BURNER


# Fryer

def lower_basket(basket: FryerBasket, tick: int):
    basket.is_submerged = True
    if basket.started_at is None:
        basket.started_at = tick


def lift_basket(basket: FryerBasket):
    basket.is_submerged = False


def empty_basket(basket: FryerBasket):
    basket.status = BasketStatus.EMPTY
    basket.is_submerged = False
    basket.started_at = None
    basket.instance_id = None

"""
FastAPI Server - REST API over the kitchen simulation
"""
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Any, Callable, Dict, List, Optional
import asyncio
import logging
from datetime import datetime

from catalog import RecipeCatalog
from config import Settings, get_settings
from kitchen.engine import KitchenEngine
from kitchen.state import CommandResult
from kitchen_types import ActionType, BrigadeError, DifficultyLevel, PowerLevel, StationKind

logger = logging.getLogger(__name__)


# Pydantic models for API
class OrderCreateRequest(BaseModel):
    menu_name: str = Field(..., description="Menu name from the catalog")


class AssignRequest(BaseModel):
    order_id: str = Field(..., description="Order the bundle belongs to")
    bundle_id: str = Field(..., description="Catalog bundle to start")
    station: Optional[StationKind] = Field(default=None, description="WOK, FRYER or MICROWAVE; omit for cold bundles")
    slot: Optional[int] = Field(default=None, description="Burner or basket number")
    timer_seconds: Optional[int] = Field(default=None, description="Fryer or microwave timer")
    power: Optional[PowerLevel] = Field(default=None, description="Microwave power level")


class IngredientRequest(BaseModel):
    ingredient: str = Field(..., description="Requirement id or ingredient id")
    amount: float = Field(..., description="Amount in the requirement's unit")


class ActionRequest(BaseModel):
    action: ActionType


class PlateRequest(BaseModel):
    plate_type_id: str
    amount: Optional[float] = Field(default=None, description="Portion available for merging (side bundles)")


class MergeRequest(BaseModel):
    source_id: str = Field(..., description="Side bundle instance to draw from")
    amount: float
    grid_position: Optional[int] = Field(default=None, ge=1, le=9)


class DecoRequest(BaseModel):
    source_id: str = Field(..., description="Deco rule id or the ingredient it places")
    grid_position: int = Field(..., ge=1, le=9)
    amount: float


class HeatLevelRequest(BaseModel):
    level: int = Field(..., ge=1, le=3)


class SettingItemRequest(BaseModel):
    ingredient_id: str
    name: str
    amount: float = Field(..., gt=0)
    unit: str = "g"


class TickRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=3600)


class GameStartRequest(BaseModel):
    level: DifficultyLevel = DifficultyLevel.BEGINNER


class KitchenAPI:
    """FastAPI application for the kitchen simulation"""

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[KitchenEngine] = None):
        self.settings = settings or get_settings()
        self.app = FastAPI(
            title=self.settings.api.title,
            description="Restaurant kitchen simulation: stations, recipes and plating",
            version=self.settings.api.version,
            docs_url="/docs",
            redoc_url="/redoc"
        )

        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        if engine is None:
            catalog = RecipeCatalog.from_file(self.settings.catalog_file)
            engine = KitchenEngine(catalog, self.settings)
        self.engine = engine
        self.simulation_task: Optional[asyncio.Task] = None

        # Add routes
        self._add_routes()

    def _run(self, command: Callable[..., Any], *args) -> Any:
        """Call into the engine, mapping unknown ids to 404"""
        try:
            result = command(*args)
        except BrigadeError as e:
            logger.debug(f"{command.__name__} failed: {e}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        if isinstance(result, CommandResult):
            return result.to_dict()
        return result

    def _add_routes(self):
        """Add all API routes"""
        engine = self.engine

        # Health check
        @self.app.get("/health")
        async def health_check():
            return {"status": "healthy", "timestamp": datetime.utcnow(), "clock": engine.state.clock}

        # Orders
        @self.app.post("/orders", status_code=status.HTTP_201_CREATED)
        async def add_order(request: OrderCreateRequest):
            order = self._run(engine.add_order, request.menu_name)
            return order.to_dict(engine.state.clock)

        @self.app.get("/orders")
        async def list_orders():
            return engine.get_order_queue()

        # Bundle instances
        @self.app.post("/bundles/assign")
        async def assign_bundle(request: AssignRequest):
            return self._run(engine.assign_bundle, request.order_id, request.bundle_id, request.station,
                             request.slot, request.timer_seconds, request.power)

        @self.app.get("/bundles/{instance_id}")
        async def get_bundle(instance_id: str):
            return self._run(engine.get_instance_snapshot, instance_id)

        @self.app.post("/bundles/{instance_id}/ingredients")
        async def add_ingredient(instance_id: str, request: IngredientRequest):
            return self._run(engine.add_ingredient, instance_id, request.ingredient, request.amount)

        @self.app.post("/bundles/{instance_id}/actions")
        async def execute_action(instance_id: str, request: ActionRequest):
            return self._run(engine.execute_action, instance_id, request.action)

        @self.app.post("/bundles/{instance_id}/complete")
        async def complete_bundle(instance_id: str):
            return self._run(engine.complete_bundle, instance_id)

        @self.app.post("/bundles/{instance_id}/plate")
        async def plate_bundle(instance_id: str, request: PlateRequest):
            return self._run(engine.route_after_plate, instance_id, request.plate_type_id, request.amount)

        @self.app.post("/bundles/{instance_id}/merge")
        async def merge_bundle(instance_id: str, request: MergeRequest):
            return self._run(engine.merge_bundle, instance_id, request.source_id, request.amount,
                             request.grid_position)

        @self.app.post("/bundles/{instance_id}/deco")
        async def apply_deco(instance_id: str, request: DecoRequest):
            return self._run(engine.apply_deco, instance_id, request.source_id, request.grid_position,
                             request.amount)

        @self.app.post("/bundles/{instance_id}/serve")
        async def serve_bundle(instance_id: str):
            return self._run(engine.serve_bundle, instance_id)

        @self.app.delete("/bundles/{instance_id}")
        async def discard_bundle(instance_id: str):
            return self._run(engine.discard_bundle, instance_id)

        # Stations
        @self.app.get("/stations/{station}")
        async def get_station(station: str):
            return self._run(engine.get_station_status, station)

        @self.app.post("/stations/burners/{burner_number}/toggle")
        async def toggle_burner(burner_number: int):
            return self._run(engine.toggle_burner, burner_number)

        @self.app.post("/stations/burners/{burner_number}/heat")
        async def set_heat_level(burner_number: int, request: HeatLevelRequest):
            return self._run(engine.set_heat_level, burner_number, request.level)

        @self.app.post("/stations/burners/{burner_number}/wash")
        async def wash_station(burner_number: int):
            return self._run(engine.wash_station, burner_number)

        @self.app.post("/stations/burners/{burner_number}/empty")
        async def empty_wok(burner_number: int):
            return self._run(engine.empty_wok, burner_number)

        @self.app.post("/stations/baskets/{basket_number}/lower")
        async def lower_basket(basket_number: int):
            return self._run(engine.lower_basket, basket_number)

        @self.app.post("/stations/baskets/{basket_number}/lift")
        async def lift_basket(basket_number: int):
            return self._run(engine.lift_basket, basket_number)

        # Setting counter
        @self.app.post("/setting-items")
        async def add_setting_item(request: SettingItemRequest):
            return self._run(engine.add_setting_item, request.ingredient_id, request.name,
                             request.amount, request.unit)

        @self.app.delete("/setting-items/{item_id}")
        async def remove_setting_item(item_id: str):
            return self._run(engine.remove_setting_item, item_id)

        # Kitchen status
        @self.app.get("/kitchen")
        async def kitchen_status():
            return engine.get_kitchen_status()

        @self.app.get("/utilization")
        async def utilization():
            return engine.get_station_utilization()

        # Clock and session
        @self.app.post("/tick")
        async def tick(request: Optional[TickRequest] = None):
            count = request.count if request else 1
            for _ in range(count):
                engine.tick()
            return {"clock": engine.state.clock, "is_finished": engine.is_finished}

        @self.app.post("/simulation/start")
        async def start_simulation():
            if self.simulation_task and not self.simulation_task.done():
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Simulation already running")
            self.simulation_task = asyncio.create_task(engine.start_simulation())
            return {"status": "running"}

        @self.app.post("/simulation/stop")
        async def stop_simulation():
            engine.stop_simulation()
            return {"status": "stopped", "clock": engine.state.clock}

        @self.app.post("/game/start")
        async def start_game(request: GameStartRequest):
            engine.start_game(request.level)
            return {"level": engine.state.level.value, "validation": engine.policy.name}

        @self.app.post("/game/end")
        async def end_game():
            return engine.end_game()

        @self.app.get("/catalog")
        async def catalog_summary() -> List[Dict[str, Any]]:
            return engine.catalog.summary().to_dict(orient="records")


def create_app(settings: Optional[Settings] = None, engine: Optional[KitchenEngine] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    api = KitchenAPI(settings, engine)
    return api.app

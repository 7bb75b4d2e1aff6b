"""
Scenario Execution Engine - replays scripted kitchen sessions tick by tick
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from kitchen.engine import KitchenEngine
from kitchen.state import MenuOrder
from kitchen_types import BrigadeError, DifficultyLevel

logger = logging.getLogger(__name__)

# Engine methods a script may call
COMMANDS = {
    "add_order", "assign_bundle", "add_ingredient", "execute_action", "complete_bundle",
    "route_after_plate", "merge_bundle", "apply_deco", "serve_bundle", "discard_bundle",
    "lower_basket", "lift_basket", "toggle_burner", "set_heat_level", "wash_station",
    "empty_wok", "add_setting_item", "remove_setting_item",
}


class ExecutionPhase(Enum):
    """Scenario execution phases"""
    SETUP = "setup"
    SERVICE = "service"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class ScriptedCommand:
    """One engine call issued at a given tick"""
    at: int
    command: str
    args: Dict[str, Any] = field(default_factory=dict)
    alias: Optional[str] = None
    expect: Optional[bool] = None


@dataclass
class ScenarioConfig:
    """Configuration for a scenario execution"""
    name: str
    level: DifficultyLevel = DifficultyLevel.BEGINNER
    max_ticks: int = 900
    stop_when_finished: bool = True
    commands: List[ScriptedCommand] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioConfig":
        commands = []
        for raw in data.get("commands", []):
            if raw.get("command") not in COMMANDS:
                raise BrigadeError(f"Unknown scenario command: {raw.get('command')}")
            commands.append(ScriptedCommand(
                at=int(raw.get("at", 0)),
                command=raw["command"],
                args=dict(raw.get("args") or {}),
                alias=raw.get("as"),
                expect=raw.get("expect"),
            ))
        commands.sort(key=lambda c: c.at)
        return cls(
            name=data.get("name", "scenario"),
            level=DifficultyLevel(data.get("level", DifficultyLevel.BEGINNER.value)),
            max_ticks=int(data.get("max_ticks", 900)),
            stop_when_finished=bool(data.get("stop_when_finished", True)),
            commands=commands,
            description=data.get("description", ""),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ScenarioConfig":
        path = Path(path)
        if not path.exists():
            raise BrigadeError(f"Scenario file not found: {path}")
        with open(path, 'r') as f:
            return cls.from_dict(yaml.safe_load(f) or {})


@dataclass
class ExecutionResult:
    """Results from scenario execution"""
    scenario_name: str
    phase: ExecutionPhase
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0

    ticks: int = 0
    commands_run: int = 0
    commands_rejected: int = 0
    unexpected_results: int = 0

    command_log: List[Dict] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    error_log: List[Dict] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.phase == ExecutionPhase.COMPLETE and self.unexpected_results == 0

    def to_dict(self) -> Dict:
        """Convert result to dictionary for storage"""
        return {
            'scenario_name': self.scenario_name,
            'phase': self.phase.value,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.duration_seconds,
            'ticks': self.ticks,
            'commands_run': self.commands_run,
            'commands_rejected': self.commands_rejected,
            'unexpected_results': self.unexpected_results,
            'command_log': self.command_log,
            'summary': self.summary,
            'error_log': self.error_log,
        }


class ScenarioExecutor:
    """Drives a kitchen engine through a scripted scenario"""

    def __init__(self, engine: KitchenEngine):
        self.engine = engine
        self.aliases: Dict[str, str] = {}
        self.event_handlers: Dict[str, List[Callable]] = {
            'command_executed': [],
            'scenario_completed': [],
        }

    def on(self, event: str, handler: Callable):
        self.event_handlers.setdefault(event, []).append(handler)

    def _notify(self, event: str, payload: Any):
        for handler in self.event_handlers.get(event, []):
            handler(payload)

    def execute(self, scenario: ScenarioConfig) -> ExecutionResult:
        """Run a scenario to the end of its script or its tick budget"""
        logger.info(f"Starting scenario execution: {scenario.name}")
        result = ExecutionResult(
            scenario_name=scenario.name,
            phase=ExecutionPhase.SETUP,
            start_time=datetime.utcnow(),
        )
        started = time.time()
        self.aliases = {}
        self.engine.start_game(scenario.level)

        pending = list(scenario.commands)
        try:
            result.phase = ExecutionPhase.SERVICE
            while True:
                now = self.engine.state.clock
                while pending and pending[0].at <= now:
                    self._run_command(pending.pop(0), result)

                if scenario.stop_when_finished and self.engine.is_finished:
                    break
                if not pending and scenario.stop_when_finished:
                    break
                if now >= scenario.max_ticks:
                    break
                self.engine.tick()

            result.phase = ExecutionPhase.COMPLETE
        except BrigadeError as e:
            logger.error(f"Scenario {scenario.name} failed: {e}")
            result.phase = ExecutionPhase.FAILED
            result.error_log.append({
                'tick': self.engine.state.clock,
                'error': str(e),
                'type': type(e).__name__,
            })

        result.ticks = self.engine.state.clock
        result.summary = self.engine.end_game()
        result.end_time = datetime.utcnow()
        result.duration_seconds = time.time() - started
        logger.info(
            f"Scenario {scenario.name} {result.phase.value} after {result.ticks} ticks: "
            f"{result.commands_run} commands, {result.commands_rejected} rejected"
        )
        self._notify('scenario_completed', result)
        return result

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, str) and value.startswith("$"):
            name = value[1:]
            if name not in self.aliases:
                raise BrigadeError(f"Unknown scenario alias: {value}")
            return self.aliases[name]
        return value

    def _run_command(self, scripted: ScriptedCommand, result: ExecutionResult):
        args = {key: self._resolve(value) for key, value in scripted.args.items()}
        outcome = getattr(self.engine, scripted.command)(**args)
        result.commands_run += 1

        if isinstance(outcome, MenuOrder):
            success, message, created = True, f"Order {outcome.id}: {outcome.menu_name}", outcome.id
            reason = None
        else:
            success, message = outcome.success, outcome.message
            reason = outcome.reason.value if outcome.reason else None
            created = outcome.data.get("instance_id")
            if created is None and isinstance(outcome.data.get("item"), dict):
                created = outcome.data["item"].get("id")

        if scripted.alias and created:
            self.aliases[scripted.alias] = created
        if not success:
            result.commands_rejected += 1
        if scripted.expect is not None and scripted.expect != success:
            result.unexpected_results += 1
            logger.warning(f"{scripted.command} at tick {scripted.at}: expected "
                           f"{'success' if scripted.expect else 'rejection'}, got {reason or 'success'}")

        entry = {
            'tick': self.engine.state.clock,
            'command': scripted.command,
            'args': args,
            'success': success,
            'reason': reason,
            'message': message,
        }
        result.command_log.append(entry)
        self._notify('command_executed', entry)

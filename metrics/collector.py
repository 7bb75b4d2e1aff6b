"""
Metrics Collector for the kitchen simulation
Listens to kitchen events, keeps the action log and burner usage, and
computes the session score
"""

import json
import pandas as pd
import numpy as np
from typing import Dict, List, Optional, Any
from pathlib import Path
from datetime import datetime
from collections import defaultdict
import logging

from kitchen.events import KitchenEvent, KitchenListener
from kitchen.scoring import session_score
from kitchen_types import EventKind

logger = logging.getLogger(__name__)

# Commands whose rejections count against recipe accuracy
SCORED_COMMANDS = {"feed", "act"}


class MetricsCollector(KitchenListener):
    """Collect and analyze per-session kitchen metrics"""

    def __init__(self, settings=None, output_dir: Optional[str] = None):
        self.settings = settings
        if output_dir is None:
            output_dir = Path(settings.data_dir) / "results" if settings is not None else "results"
        self.output_dir = Path(output_dir)
        self.reset()

    def reset(self):
        """Forget everything recorded so far"""
        self.actions: List[Dict[str, Any]] = []
        self.serves: List[Dict[str, Any]] = []
        self.rejections: Dict[str, int] = defaultdict(int)
        self.burner_samples: List[int] = []
        self.burner_count = 0
        self.last_tick = 0
        self.event_counts: Dict[str, int] = defaultdict(int)

    def on_event(self, event: KitchenEvent):
        self.event_counts[event.kind.value] += 1
        kind = event.kind

        if kind == EventKind.TICK:
            self.last_tick = event.tick
            self.burner_samples.append(len(event.data.get("active_burners", [])))
            self.burner_count = event.data.get("burner_count", self.burner_count)
        elif kind in (EventKind.INGREDIENT_ADDED, EventKind.ACTION_PERFORMED):
            if "correct" in event.data:
                self._record_action(event, "feed" if kind == EventKind.INGREDIENT_ADDED else "act",
                                    bool(event.data["correct"]))
        elif kind == EventKind.REJECTED:
            reason = event.data.get("reason") or "unknown"
            self.rejections[reason] += 1
            if event.data.get("command") in SCORED_COMMANDS:
                self._record_action(event, event.data["command"], False, reason)
        elif kind == EventKind.BUNDLE_SERVED:
            self.serves.append({
                "tick": event.tick,
                "order_id": event.order_id,
                "instance_id": event.instance_id,
                "score": event.data.get("score"),
                "time_tier": event.data.get("time_tier"),
                "deco_complete": event.data.get("deco_complete"),
            })

    def _record_action(self, event: KitchenEvent, command: str, correct: bool,
                       reason: Optional[str] = None):
        self.actions.append({
            "tick": event.tick,
            "command": command,
            "instance_id": event.instance_id,
            "order_id": event.order_id,
            "station": event.station,
            "correct": correct,
            "reason": reason,
        })

    # Scores

    @property
    def correct_actions(self) -> int:
        return sum(1 for a in self.actions if a["correct"])

    @property
    def total_actions(self) -> int:
        return len(self.actions)

    @property
    def active_burner_seconds(self) -> int:
        return int(np.sum(self.burner_samples)) if self.burner_samples else 0

    def burner_usage(self) -> float:
        """Share of burner-seconds with the burner on, 0-100"""
        capacity = len(self.burner_samples) * self.burner_count
        if not capacity:
            return 0.0
        return round(self.active_burner_seconds / capacity * 100, 1)

    def session_summary(self, state) -> Dict[str, Any]:
        """Final score for a finished (or abandoned) session"""
        score = session_score(
            correct_actions=self.correct_actions,
            total_actions=self.total_actions,
            completed_orders=state.completed_orders,
            elapsed_seconds=state.clock,
            active_burner_seconds=self.active_burner_seconds,
            burner_samples=len(self.burner_samples),
            burner_count=self.burner_count or len(state.woks),
        )
        score.update({
            "level": state.level.value,
            "elapsed_seconds": state.clock,
            "completed_orders": state.completed_orders,
            "cancelled_orders": state.cancelled_orders,
            "target_orders": state.target_orders,
            "deco_mistakes": state.deco_mistakes,
            "correct_actions": self.correct_actions,
            "total_actions": self.total_actions,
            "average_serve_score": self._average_serve_score(),
        })
        return score

    def _average_serve_score(self) -> Optional[float]:
        scores = [s["score"] for s in self.serves if s["score"] is not None]
        if not scores:
            return None
        return round(float(np.mean(scores)), 1)

    # Summaries

    def action_frame(self) -> pd.DataFrame:
        columns = ["tick", "command", "instance_id", "order_id", "station", "correct", "reason"]
        return pd.DataFrame(self.actions, columns=columns)

    def serve_frame(self) -> pd.DataFrame:
        columns = ["tick", "order_id", "instance_id", "score", "time_tier", "deco_complete"]
        return pd.DataFrame(self.serves, columns=columns)

    def accuracy_by_station(self) -> pd.DataFrame:
        """Correct/total actions per station"""
        df = self.action_frame()
        if df.empty:
            return pd.DataFrame(columns=["station", "correct", "total", "accuracy"])
        df["station"] = df["station"].fillna("none")
        grouped = df.groupby("station")["correct"].agg(["sum", "count"]).reset_index()
        grouped.columns = ["station", "correct", "total"]
        grouped["correct"] = grouped["correct"].astype(int)
        grouped["accuracy"] = (grouped["correct"] / grouped["total"] * 100).round(1)
        return grouped

    def rejection_summary(self) -> Dict[str, int]:
        return dict(sorted(self.rejections.items(), key=lambda kv: kv[1], reverse=True))

    # Export

    def export_to_json(self, state, name: str = "session") -> Path:
        """Save the session summary and logs to JSON"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.output_dir / f"{name}_{timestamp}.json"

        payload = {
            "timestamp": datetime.now().isoformat(),
            "summary": self.session_summary(state),
            "rejections": self.rejection_summary(),
            "events": dict(self.event_counts),
            "serves": self.serves,
            "actions": self.actions,
        }
        with open(filepath, 'w') as f:
            json.dump(payload, f, indent=2, default=str)

        logger.info(f"Saved session metrics: {filepath}")
        return filepath

    def export_to_csv(self, name: str = "session") -> List[Path]:
        """Export action and serve logs to CSV files"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        exported_files = []

        if self.actions:
            filepath = self.output_dir / f"{name}_actions_{timestamp}.csv"
            self.action_frame().to_csv(filepath, index=False)
            exported_files.append(filepath)

        if self.serves:
            filepath = self.output_dir / f"{name}_serves_{timestamp}.csv"
            self.serve_frame().to_csv(filepath, index=False)
            exported_files.append(filepath)

        logger.info(f"Exported {len(exported_files)} CSV files")
        return exported_files

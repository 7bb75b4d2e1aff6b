"""
Command Line Interface using Fire - catalog inspection, scripted runs and the API server
"""
import fire
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import pandas as pd
import uvicorn

from catalog import RecipeCatalog
from config import Settings, load_settings
from kitchen.engine import KitchenEngine
from kitchen_types import BrigadeError, DifficultyLevel
from scenarios.executor import ScenarioConfig, ScenarioExecutor

logger = logging.getLogger(__name__)


class KitchenCLI:
    """Command-line interface for the kitchen simulation"""

    def __init__(self, config_path: str = "configs/config.yaml"):
        """Initialize CLI with configuration"""
        self.config_path = Path(config_path)
        self.config: Settings = load_settings(self.config_path)

        # Configure logging
        logging.basicConfig(
            level=getattr(logging, self.config.log_level.upper(), logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    def _load_catalog(self, catalog_file: Optional[str] = None) -> RecipeCatalog:
        return RecipeCatalog.from_file(catalog_file or self.config.catalog_file)

    def catalog(self, catalog_file: Optional[str] = None) -> None:
        """Show the recipes, bundles and plates in a catalog

        Args:
            catalog_file: JSON or YAML catalog (defaults to the configured one)
        """
        recipes = self._load_catalog(catalog_file)
        summary = recipes.summary()

        print(f"\n=== Catalog: {len(recipes.menu_names)} menus ===")
        with pd.option_context('display.max_rows', None, 'display.width', 120):
            print(summary.to_string(index=False))

        print("\nPlates:")
        for plate in recipes.plate_types:
            print(f"  {plate.id}: {plate.name or plate.id} ({plate.shape.value})")

    def run_scenario(
        self,
        scenario_file: str,
        level: Optional[str] = None,
        catalog_file: Optional[str] = None,
        export: bool = False,
    ) -> dict:
        """Replay a scripted scenario against a fresh kitchen

        Args:
            scenario_file: YAML scenario with timed commands
            level: Override the scenario's difficulty level
            catalog_file: JSON or YAML catalog (defaults to the configured one)
            export: Write the session metrics to JSON and CSV
        """
        scenario = ScenarioConfig.from_file(scenario_file)
        if level:
            scenario.level = DifficultyLevel(level.upper())

        engine = KitchenEngine(self._load_catalog(catalog_file), self.config)
        executor = ScenarioExecutor(engine)

        print(f"Starting scenario: {scenario.name}")
        print(f"Level: {scenario.level.value}, Commands: {len(scenario.commands)}, Max ticks: {scenario.max_ticks}")

        result = executor.execute(scenario)

        print(f"\n=== Scenario Complete ===")
        print(f"Status: {result.phase.value}")
        print(f"Ticks: {result.ticks}")
        print(f"Commands run: {result.commands_run} ({result.commands_rejected} rejected)")
        if result.unexpected_results:
            print(f"Unexpected results: {result.unexpected_results}")
        for key in ("recipe_accuracy", "speed_score", "burner_usage", "total_score"):
            print(f"{key.replace('_', ' ').capitalize()}: {result.summary[key]}")

        rejections = engine.collector.rejection_summary()
        if rejections:
            print("\nRejections:")
            for reason, count in rejections.items():
                print(f"  {reason}: {count}")

        if export:
            json_file = engine.collector.export_to_json(engine.state, scenario.name)
            csv_files = engine.collector.export_to_csv(scenario.name)
            print(f"\nExported {json_file} and {len(csv_files)} CSV files")

        return result.summary

    def serve(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        reload: bool = False,
        simulate: bool = False,
    ) -> None:
        """Start the FastAPI server

        Args:
            host: Host to bind to
            port: Port to bind to
            reload: Enable auto-reload for development
            simulate: Advance the clock in real time instead of via POST /tick
        """
        from api.server import KitchenAPI

        api = KitchenAPI(self.config)
        host = host or self.config.api.host
        port = port or self.config.api.port

        if simulate:
            @api.app.on_event("startup")
            async def _start_clock():
                import asyncio
                api.simulation_task = asyncio.create_task(api.engine.start_simulation())

        print(f"Starting kitchen API server on {host}:{port}")
        print(f"Documentation will be available at http://{host}:{port}/docs")

        # Run the server
        uvicorn.run(
            api.app,
            host=host,
            port=port,
            reload=reload,
            log_level=self.config.log_level.lower()
        )

    def config_dump(self) -> None:
        """Print the effective configuration"""
        print(json.dumps(self.config.model_dump(mode="json"), indent=2))

    def version(self) -> None:
        """Show version information"""
        print("Brigade Kitchen Simulation")
        print("Version: 0.1.0")


def main():
    """Main CLI entry point"""
    if len(sys.argv) > 1 and sys.argv[1].endswith('.yaml'):
        config_path = sys.argv[1]
        sys.argv = [sys.argv[0]] + sys.argv[2:]  # Remove config from args
    else:
        config_path = "configs/config.yaml"

    cli = KitchenCLI(config_path)

    try:
        fire.Fire(cli)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    except BrigadeError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

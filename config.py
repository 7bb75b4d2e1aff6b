"""
Configuration management using Pydantic Settings for kitchen physics, timers and game rules.
"""

from typing import Dict, Optional
from pydantic import Field
from pydantic_settings import BaseSettings
from pathlib import Path

from kitchen_types import DifficultyLevel


class WokPhysicsConfig(BaseSettings):
    """Wok thermal model constants (°C, per one-second tick)."""

    ambient: float = Field(
        default=25.0,
        description="Ambient temperature and cooling floor"
    )
    min_stir_fry: float = Field(
        default=180.0,
        description="Minimum wok temperature for stir-fry and flip actions"
    )
    drying_threshold: float = Field(
        default=180.0,
        description="Temperature at which a wet wok dries back to clean"
    )
    overheating: float = Field(
        default=360.0,
        description="Overheating threshold"
    )
    burned: float = Field(
        default=400.0,
        description="Burn threshold"
    )
    max_safe: float = Field(
        default=420.0,
        description="Hard temperature ceiling"
    )
    base_heat_rate: float = Field(
        default=25.2,
        description="Heating rate near ambient at multiplier 1.0"
    )
    cool_rate: float = Field(
        default=5.0,
        description="Linear cooling per tick with the burner off"
    )
    heat_multiplier: Dict[int, float] = Field(
        default={1: 0.78, 2: 1.56, 3: 1.82},
        description="Heat level multipliers"
    )
    water_boil: float = Field(
        default=100.0,
        description="Water boiling point"
    )
    water_heat_rate: float = Field(
        default=2.5,
        description="Water heating per tick with the burner on"
    )
    water_boil_duration: int = Field(
        default=5,
        description="Ticks water must hold the boiling point before it counts as boiling"
    )
    ingredient_cooling: Dict[str, float] = Field(
        default={
            "VEGETABLE": 40.0,
            "SEAFOOD": 45.0,
            "MEAT": 35.0,
            "EGG": 20.0,
            "RICE": 15.0,
            "NOODLE": 25.0,
            "SEASONING": 5.0,
            "SAUCE": 10.0,
            "WATER": 60.0,
            "BROTH": 50.0,
        },
        description="Temperature drop when an ingredient of a category hits the wok"
    )
    default_cooling: float = Field(
        default=5.0,
        description="Temperature drop for ingredients without a category"
    )
    stir_fry_cooling: float = Field(
        default=10.0,
        description="Delayed temperature drop after a stir-fry"
    )
    stir_fry_cooling_delay: int = Field(
        default=1,
        description="Ticks before the stir-fry drop is applied"
    )
    flip_cooling: float = Field(
        default=8.0,
        description="Immediate temperature drop after a flip"
    )
    wash_move_ticks: int = Field(
        default=1,
        description="Ticks to carry the wok between burner and sink"
    )
    wash_sink_ticks: int = Field(
        default=2,
        description="Ticks the wok spends at the sink"
    )

    class Config:
        env_prefix = "WOK_"


class FryerConfig(BaseSettings):
    """Fryer configuration."""

    oil_temperature: float = Field(
        default=180.0,
        description="Constant oil temperature"
    )
    min_oil_temperature: float = Field(
        default=180.0,
        description="Oil temperature required for fryer actions"
    )
    burn_grace: int = Field(
        default=10,
        description="Seconds past the timer before a submerged basket burns"
    )
    default_timer: int = Field(
        default=180,
        description="Timer used when neither the command nor the step supplies one"
    )
    min_timer: int = Field(default=1, description="Shortest accepted timer")
    max_timer: int = Field(default=600, description="Longest accepted timer")

    class Config:
        env_prefix = "FRYER_"


class MicrowaveConfig(BaseSettings):
    """Microwave configuration."""

    default_timer: int = Field(
        default=60,
        description="Timer used when neither the command nor the step supplies one"
    )
    min_timer: int = Field(default=1, description="Shortest accepted timer")
    max_timer: int = Field(default=300, description="Longest accepted timer")
    default_power: str = Field(
        default="MEDIUM",
        description="Power level used when none is supplied"
    )

    class Config:
        env_prefix = "MICROWAVE_"


class OrderConfig(BaseSettings):
    """Order timing and intake configuration."""

    cancel_seconds: int = Field(
        default=900,
        description="Age at which an unfinished order is force-cancelled"
    )
    display_grace: int = Field(
        default=3,
        description="Ticks a served order stays visible"
    )
    target_minutes: float = Field(default=7.0, description="Perfect tier upper bound")
    warning_minutes: float = Field(default=10.0, description="Good tier upper bound")
    critical_minutes: float = Field(default=15.0, description="Warning tier upper bound")
    max_queue: int = Field(
        default=10,
        description="Automatic intake pauses while this many orders are queued"
    )
    intake_interval: Dict[str, int] = Field(
        default={"BEGINNER": 30, "INTERMEDIATE": 20, "ADVANCED": 15},
        description="Seconds between automatic order batches per level"
    )
    intake_batch: Dict[str, int] = Field(
        default={"BEGINNER": 1, "INTERMEDIATE": 2, "ADVANCED": 3},
        description="Orders added per automatic batch per level"
    )

    class Config:
        env_prefix = "ORDER_"


class APIConfig(BaseSettings):
    """API server configuration."""

    host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    port: int = Field(
        default=8080,
        description="API server port"
    )
    reload: bool = Field(
        default=False,
        description="Enable auto-reload"
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="CORS allowed origins"
    )
    title: str = Field(
        default="Brigade Kitchen API",
        description="API title"
    )
    version: str = Field(
        default="0.1.0",
        description="API version"
    )

    class Config:
        env_prefix = "API_"


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    # Data paths
    data_dir: Path = Field(
        default=Path("./data"),
        description="Data directory"
    )
    catalog_file: Path = Field(
        default=Path("./data/sample_catalog.yaml"),
        description="Recipe catalog snapshot (JSON or YAML)"
    )

    # Session
    level: DifficultyLevel = Field(
        default=DifficultyLevel.BEGINNER,
        description="Game level; BEGINNER validates strictly"
    )
    burner_count: int = Field(default=3, description="Number of wok burners")
    basket_count: int = Field(default=3, description="Number of fryer baskets")
    target_orders: int = Field(
        default=3,
        description="Completed orders that finish a session"
    )
    auto_orders: bool = Field(
        default=False,
        description="Let the tick driver add orders on its own"
    )
    seed: Optional[int] = Field(
        default=None,
        description="Random seed for automatic order intake"
    )
    tick_rate: float = Field(
        default=1.0,
        description="Wall-clock seconds between ticks of the simulation loop"
    )

    # Component configurations
    wok: WokPhysicsConfig = Field(default_factory=WokPhysicsConfig)
    fryer: FryerConfig = Field(default_factory=FryerConfig)
    microwave: MicrowaveConfig = Field(default_factory=MicrowaveConfig)
    orders: OrderConfig = Field(default_factory=OrderConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev")

    @property
    def strict_mode(self) -> bool:
        """Strict validation applies to beginner sessions only."""
        return self.level == DifficultyLevel.BEGINNER


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """Load settings from a YAML file or the environment."""
    global _settings

    if config_file and Path(config_file).exists():
        import yaml
        with open(config_file) as f:
            config_data = yaml.safe_load(f) or {}

        transformed_data = {}
        for key in ['environment', 'log_level', 'data_dir', 'catalog_file', 'level',
                    'burner_count', 'basket_count', 'target_orders', 'auto_orders',
                    'seed', 'tick_rate']:
            if key in config_data:
                transformed_data[key] = config_data[key]

        # Nested groups are built explicitly so their env prefixes still apply
        # to keys the file leaves out.
        groups = {
            'wok': WokPhysicsConfig,
            'fryer': FryerConfig,
            'microwave': MicrowaveConfig,
            'orders': OrderConfig,
            'api': APIConfig,
        }
        for key, group in groups.items():
            if key in config_data:
                transformed_data[key] = group(**config_data[key])

        _settings = Settings(**transformed_data)
    else:
        _settings = Settings()

    return _settings



"""
Configuration management with environment variable support and validation.

Design principles:
- Calibration constants (risk thresholds, normal range) live here, never at call sites
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (no API keys in code)
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class RiskThresholds(BaseModel):
    """Calibrated pressure thresholds (mmHg) for risk tiers."""

    moderate: float = Field(default=24.0, gt=0.0, description="Lower bound of the Moderate tier")
    high: float = Field(default=27.0, gt=0.0, description="Lower bound of the High tier")

    @model_validator(mode="after")
    def moderate_below_high(self) -> "RiskThresholds":
        if self.moderate >= self.high:
            raise ValueError("moderate threshold must be below high threshold")
        return self


class NormalRange(BaseModel):
    """Clinically normal IOP range (mmHg), inclusive on both ends."""

    minimum: float = Field(default=12.0, ge=0.0)
    maximum: float = Field(default=22.0, gt=0.0)

    @model_validator(mode="after")
    def minimum_below_maximum(self) -> "NormalRange":
        if self.minimum >= self.maximum:
            raise ValueError("normal range minimum must be below maximum")
        return self

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


class TrendConfig(BaseModel):
    """Trend window and summary settings."""

    window_size: int = Field(default=7, gt=0, description="Readings shown in the short-range chart")
    stable_epsilon: float = Field(
        default=0.5, gt=0.0, description="Changes smaller than this (mmHg) count as stable"
    )
    normal_range: NormalRange = Field(default_factory=NormalRange)


class ScanTiming(BaseModel):
    """Timing of the measurement state machine."""

    tick_interval_ms: int = Field(default=30, gt=0, description="Interval between progress ticks")
    progress_step: int = Field(default=1, gt=0, le=100, description="Progress added per tick")
    analysis_delay_ms: int = Field(
        default=2000, ge=0, description="Delay between scan completion and result"
    )


class SensorConfig(BaseModel):
    """Simulated tonometer settings."""

    min_value: float = Field(default=15.0, ge=0.0, description="Lowest simulated reading")
    max_value: float = Field(default=28.0, gt=0.0, description="Highest simulated reading")
    seed: int | None = Field(default=None, description="RNG seed for reproducible runs")

    @model_validator(mode="after")
    def min_below_max(self) -> "SensorConfig":
        if self.min_value >= self.max_value:
            raise ValueError("sensor min_value must be below max_value")
        return self


class InsightConfig(BaseModel):
    """Narrative insight generation settings."""

    model_name: str = Field(default="openai:gpt-4o-mini", description="pydantic-ai model name")
    api_key: str | None = Field(default=None, description="Model provider API key (optional)")
    min_readings: int = Field(default=3, gt=0, description="Readings required for an insight")
    max_readings: int = Field(default=10, gt=0, description="Most recent readings sent to model")
    timeout_seconds: float = Field(default=30.0, gt=0.0)

    @field_validator("api_key")
    def validate_api_key(cls, v):
        if v in (None, ""):
            return None
        if not v.startswith("sk-"):
            raise ValueError("Insight API key must start with 'sk-'")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    risk: RiskThresholds = Field(default_factory=RiskThresholds)
    trend: TrendConfig = Field(default_factory=TrendConfig)
    timing: ScanTiming = Field(default_factory=ScanTiming)
    sensor: SensorConfig = Field(default_factory=SensorConfig)
    insight: InsightConfig = Field(default_factory=InsightConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _optional_int(val: str | None) -> int | None:
        if val is None or not val.strip():
            return None
        return int(val)

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    risk = RiskThresholds(
        moderate=float(os.getenv("IOP_MODERATE_THRESHOLD", "24.0")),
        high=float(os.getenv("IOP_HIGH_THRESHOLD", "27.0")),
    )

    trend = TrendConfig(
        window_size=int(os.getenv("IOP_TREND_WINDOW", "7")),
        stable_epsilon=float(os.getenv("IOP_STABLE_EPSILON", "0.5")),
        normal_range=NormalRange(
            minimum=float(os.getenv("IOP_NORMAL_MIN", "12.0")),
            maximum=float(os.getenv("IOP_NORMAL_MAX", "22.0")),
        ),
    )

    timing = ScanTiming(
        tick_interval_ms=int(os.getenv("SCAN_TICK_INTERVAL_MS", "30")),
        progress_step=int(os.getenv("SCAN_PROGRESS_STEP", "1")),
        analysis_delay_ms=int(os.getenv("SCAN_ANALYSIS_DELAY_MS", "2000")),
    )

    sensor = SensorConfig(
        min_value=float(os.getenv("SENSOR_MIN_VALUE", "15.0")),
        max_value=float(os.getenv("SENSOR_MAX_VALUE", "28.0")),
        seed=_optional_int(os.getenv("SENSOR_SEED")),
    )

    insight = InsightConfig(
        model_name=os.getenv("INSIGHT_MODEL", "openai:gpt-4o-mini"),
        api_key=os.getenv("OPENAI_API_KEY") or None,
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        risk=risk,
        trend=trend,
        timing=timing,
        sensor=sensor,
        insight=insight,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def print_config_summary(config: AppConfig | None = None) -> None:
    """Print configuration summary for debugging."""
    config = config or get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nRISK CALIBRATION")
    print(f"Moderate Threshold: {config.risk.moderate} mmHg")
    print(f"High Threshold: {config.risk.high} mmHg")
    print(
        f"Normal Range: {config.trend.normal_range.minimum}-{config.trend.normal_range.maximum} mmHg"
    )

    print("\nSCAN TIMING")
    print(f"Tick Interval: {config.timing.tick_interval_ms}ms (+{config.timing.progress_step}%)")
    print(f"Analysis Delay: {config.timing.analysis_delay_ms}ms")

    print("\nINSIGHTS")
    print(f"Model: {config.insight.model_name}")
    print(f"API Key Configured: {config.insight.api_key is not None}")


if __name__ == "__main__":
    print_config_summary()

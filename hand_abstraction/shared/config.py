"""
Configuration schema, the single source of truth for defaults.

Defaults are defined as Pydantic field defaults. YAML files provide overrides only.
Validation constraints live here, next to each field.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

PositiveInt = Annotated[int, Field(gt=0)]
PositiveFloat = Annotated[float, Field(gt=0)]
NonNegFloat = Annotated[float, Field(ge=0)]

StreetName = Literal["preflop", "flop", "turn", "river"]


class StrictFrozenModel(BaseModel):
    """Base for all config models: immutable, extra keys forbidden."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class ClusteringConfig(StrictFrozenModel):
    """K-means bucketing configuration."""

    n_clusters: PositiveInt = Field(default=50)
    n_restarts: PositiveInt = Field(default=10)
    epsilon: Annotated[float, Field(ge=0.0, lt=1.0)] = Field(default=0.005)
    max_iterations: PositiveInt = Field(default=300)
    metric: Literal["l2", "squared_l2", "emd"] = Field(default="l2")
    init: Literal["random", "kmeans++"] = Field(default="random")
    n_workers: PositiveInt = Field(default=1)


class EquityConfig(StrictFrozenModel):
    """Equity table and histogram precomputation configuration."""

    streets: list[StreetName] = Field(
        default_factory=lambda: ["preflop", "flop", "turn", "river"]
    )
    preflop_std_error: PositiveFloat = Field(default=0.001)
    postflop_std_error: PositiveFloat = Field(default=0.01)
    max_samples: PositiveInt = Field(default=100_000)
    histogram_bins: PositiveInt = Field(default=10)
    n_workers: PositiveInt = Field(default=8)
    output_file: str = Field(default="data/ehs.dat")

    @model_validator(mode="after")
    def streets_are_ordered(self) -> "EquityConfig":
        order = ["preflop", "flop", "turn", "river"]
        if not self.streets:
            raise ValueError("streets must not be empty")
        if len(set(self.streets)) != len(self.streets):
            raise ValueError(f"streets contains duplicates: {self.streets}")
        if self.streets != sorted(self.streets, key=order.index):
            raise ValueError(f"streets must be in play order, got {self.streets}")
        return self


class SystemConfig(StrictFrozenModel):
    """System-level configuration."""

    seed: int | None = Field(default=None)
    config_name: str = Field(default="default")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


class Config(StrictFrozenModel):
    """
    Complete abstraction-building configuration.

    All defaults are defined here in Python. YAML files provide only overrides.
    """

    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    equity: EquityConfig = Field(default_factory=EquityConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    def to_dict(self) -> dict[str, Any]:
        """Serialize config to a plain dict (for JSON, logging, etc.)."""
        return self.model_dump()

    @classmethod
    def default(cls) -> "Config":
        """Return a Config populated with all defaults."""
        return cls()

    def merge(self, overrides: dict[str, Any]) -> "Config":
        """Return a new Config with the provided overrides merged in."""
        merged = deep_merge_dicts(self.model_dump(), overrides)
        return Config.model_validate(merged)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "Config":
        """Create Config from a dict merged over defaults."""
        merged = deep_merge_dicts(cls().model_dump(), config_dict)
        return cls.model_validate(merged)


def deep_merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with override merged onto base (override wins, recursive)."""
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge_dicts(result[key], value)
        else:
            result[key] = value
    return result

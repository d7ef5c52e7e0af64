"""Pydantic schema for configuration validation."""

import hashlib
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..engine.schedule import DAY, SCALING_FACTOR, EpochRewardSchedule


def to_fixed(value: float) -> int:
    """Convert a human-unit amount to 18-decimal fixed point without float drift."""
    return int(Decimal(str(value)) * SCALING_FACTOR)


class Emission(BaseModel):
    """Native emission schedule."""
    base_rate_per_second: float = Field(gt=0, default=1.0, description="Epoch-0 emission per second")
    tail_rate_per_second: float = Field(gt=0, lt=1, default=0.05, description="Flat rate once decay ends")
    epoch_duration_days: float = Field(gt=0, default=5, description="Length of one decay epoch")
    decay_epochs: int = Field(ge=0, default=10, description="Number of decaying epochs")
    decay_numerator: int = Field(gt=0, default=4, description="Per-epoch decay factor numerator")
    decay_denominator: int = Field(gt=0, default=5, description="Per-epoch decay factor denominator")
    start_timestamp: Optional[int] = Field(
        ge=0, default=None,
        description="Emission start (seconds); unset means the owner sets it later"
    )

    @model_validator(mode='after')
    def validate_decay(self):
        """Decay factor must lie in (0, 1]."""
        if self.decay_numerator > self.decay_denominator:
            raise ValueError(
                f"decay_numerator ({self.decay_numerator}) must not exceed "
                f"decay_denominator ({self.decay_denominator})"
            )
        return self

    @property
    def epoch_duration_seconds(self) -> int:
        return int(self.epoch_duration_days * DAY)

    def build_schedule(self) -> EpochRewardSchedule:
        return EpochRewardSchedule(
            start_timestamp=self.start_timestamp,
            tail_reward_rate=to_fixed(self.tail_rate_per_second),
            base_rate=to_fixed(self.base_rate_per_second),
            epoch_duration=self.epoch_duration_seconds,
            decay_epochs=self.decay_epochs,
            decay_numerator=self.decay_numerator,
            decay_denominator=self.decay_denominator,
        )


class PoolSpec(BaseModel):
    """One pool created at start-up."""
    name: str = Field(description="Label of the pool's deposit asset")
    base_allocation_points: float = Field(ge=0, description="Initial weight (human units)")
    adapter: bool = Field(default=False, description="Route deposits into the external farm")


class Farm(BaseModel):
    """Reference external farm parameters."""
    reward_per_second: float = Field(ge=0, default=0.5, description="Farm reward per second")


class Simulation(BaseModel):
    """Simulation parameters."""
    num_accounts: int = Field(gt=0, default=5, description="Simulated depositors")
    num_steps: int = Field(gt=0, default=200, description="Actions per run")
    max_step_seconds: int = Field(ge=0, default=3600, description="Largest clock advance between actions")
    max_deposit: float = Field(gt=0, default=10_000, description="Largest single deposit (human units)")
    initial_balance: float = Field(gt=0, default=100_000, description="Deposit asset minted per account")
    points_per_account: float = Field(ge=0, default=100, description="Voting points minted per account")
    enable_voting: bool = Field(default=True, description="Enable point voting at start")
    monte_carlo_runs: int = Field(gt=0, default=10, description="Number of seeded runs")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")

    @field_validator("max_step_seconds", mode="before")
    @classmethod
    def coerce_step_seconds(cls, v):
        """Accept float seconds from YAML."""
        if v is None:
            return v
        return int(v)


class Config(BaseModel):
    """Complete configuration for a yieldchef deployment."""
    emission: Emission = Field(default_factory=Emission)
    pools: List[PoolSpec] = Field(default_factory=list)
    farm: Farm = Field(default_factory=Farm)
    simulation: Simulation = Field(default_factory=Simulation)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Validate a parsed YAML or JSON payload (human units)."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()

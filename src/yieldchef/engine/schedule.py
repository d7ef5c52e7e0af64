"""Epoch reward schedule - native emission rate as a function of time.

Key Concepts:
- Emission starts at `base_rate` (fixed point, per second) at start_timestamp
- Each epoch of `epoch_duration` seconds decays the rate geometrically by
  `decay_numerator / decay_denominator` (20% per epoch by default)
- From epoch `decay_epochs` onwards the flat `tail_reward_rate` applies
"""

from dataclasses import dataclass
from typing import Optional

from ..errors import StartTimeNotSet

SCALING_FACTOR = 10 ** 18
DAY = 86_400

BASE_RATE = SCALING_FACTOR
EPOCH_DURATION = 5 * DAY
DECAY_EPOCHS = 10
DEFAULT_TAIL_REWARD_RATE = SCALING_FACTOR * 5 // 100


@dataclass(frozen=True)
class EpochRewardSchedule:
    """Pure emission schedule; replaced (never mutated) when the tail rate changes."""
    start_timestamp: Optional[int] = None
    tail_reward_rate: int = DEFAULT_TAIL_REWARD_RATE
    base_rate: int = BASE_RATE
    epoch_duration: int = EPOCH_DURATION
    decay_epochs: int = DECAY_EPOCHS
    decay_numerator: int = 4
    decay_denominator: int = 5

    def __post_init__(self):
        if self.epoch_duration <= 0:
            raise ValueError("epoch_duration must be positive")
        if not 0 < self.decay_numerator <= self.decay_denominator:
            raise ValueError("decay factor must lie in (0, 1]")
        if not 0 < self.tail_reward_rate < SCALING_FACTOR:
            raise ValueError("tail_reward_rate must lie in (0, SCALING_FACTOR)")

    def started(self, now: int) -> bool:
        """True once emission has begun (start set and reached)."""
        return self.start_timestamp is not None and now >= self.start_timestamp

    def epoch(self, now: int) -> int:
        if self.start_timestamp is None:
            raise StartTimeNotSet()
        if now < self.start_timestamp:
            raise ValueError(f"{now} is before start {self.start_timestamp}")
        return (now - self.start_timestamp) // self.epoch_duration

    def rate(self, now: int) -> int:
        """
        Emission rate at `now`.

        Formula: base_rate * num^epoch / den^epoch for epoch < decay_epochs,
        tail_reward_rate afterwards.

        Args:
            now: Current timestamp (seconds), not before start

        Returns:
            Rate in fixed point units per second
        """
        epoch = self.epoch(now)
        if epoch >= self.decay_epochs:
            return self.tail_reward_rate
        return (
            self.base_rate * self.decay_numerator ** epoch
            // self.decay_denominator ** epoch
        )

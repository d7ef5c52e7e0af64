"""yieldchef - multi-pool yield farming reward ledger."""

from .engine.chef import Mode, YieldChef
from .engine.pools import TokenRole
from .engine.runtime import Environment, ManualClock
from .engine.schedule import SCALING_FACTOR, EpochRewardSchedule

__version__ = "0.1.0"

__all__ = [
    "SCALING_FACTOR",
    "EpochRewardSchedule",
    "Environment",
    "ManualClock",
    "Mode",
    "TokenRole",
    "YieldChef",
]

"""Configuration schema and YAML loading."""

from .loader import DEFAULTS_PATH, load_config
from .schema import Config, Emission, Farm, PoolSpec, Simulation, to_fixed

__all__ = [
    "Config",
    "Emission",
    "Farm",
    "PoolSpec",
    "Simulation",
    "DEFAULTS_PATH",
    "load_config",
    "to_fixed",
]

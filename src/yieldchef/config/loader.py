"""Load deployment configs from YAML, falling back to the packaged defaults."""

from pathlib import Path
from typing import Optional, Union

import yaml

from .schema import Config

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Read a deployment config.

    Amounts stay in human units here; the ledger converts them to fixed
    point when it is built. An empty file yields the model defaults.

    Args:
        yaml_path: YAML file to read (defaults to the packaged defaults.yaml)

    Returns:
        Validated Config
    """
    path = Path(yaml_path) if yaml_path is not None else DEFAULTS_PATH
    data = yaml.safe_load(path.read_text()) or {}
    return Config.from_dict(data)

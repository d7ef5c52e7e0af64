"""Collaborators the ledger calls out to: escrow, adapters and external farms."""

from .adapter import AdapterBridge, FarmAdapter
from .farm import ExternalFarm
from .rewarder import Rewarder, RewarderEscrow

__all__ = [
    "AdapterBridge",
    "ExternalFarm",
    "FarmAdapter",
    "Rewarder",
    "RewarderEscrow",
]

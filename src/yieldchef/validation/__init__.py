"""Validation and invariant checks for the reward ledger."""

from .sanity_checks import InvariantChecker, ValidationWarning, check_config_inputs

__all__ = [
    "InvariantChecker",
    "ValidationWarning",
    "check_config_inputs"
]

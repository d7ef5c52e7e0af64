"""Typed failures raised by the reward ledger and its collaborators.

Input errors carry the offending numbers so callers can report them.
State errors carry nothing beyond their kind.
"""


class LedgerError(Exception):
    """Base class for every failure raised by yieldchef."""


# ---------------------------------------------------------------------------
# Caller input errors
# ---------------------------------------------------------------------------

class InvalidPool(LedgerError, LookupError):
    """Unknown pool id."""

    def __init__(self, pool_id=None):
        self.pool_id = pool_id
        super().__init__(f"Invalid pool: {pool_id}")


class InvalidAmount(LedgerError, ValueError):
    """Amount or percentage outside the accepted range."""

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Invalid amount: {amount}")


class InsufficientFunds(LedgerError, ValueError):
    """Balance, position or point capacity too small for the request."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"Insufficient funds: available={available}, required={required}")


class InsufficientAllowance(LedgerError, ValueError):
    """Spender has not been approved for the requested amount."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"Insufficient allowance: available={available}, required={required}")


class InvalidAddress(LedgerError, ValueError):
    """Missing or mismatched collaborator reference."""


# ---------------------------------------------------------------------------
# State-precondition errors
# ---------------------------------------------------------------------------

class Unauthorized(LedgerError, PermissionError):
    """Caller is not allowed to perform this action."""


class VotingAlreadyEnabled(LedgerError, RuntimeError):
    pass


class VotingNotEnabled(LedgerError, RuntimeError):
    pass


class VotingActive(LedgerError, RuntimeError):
    """Admin weight overrides are closed once voting is enabled."""


class StartTimeNotSet(LedgerError, RuntimeError):
    pass


class StartTimeAlreadySet(LedgerError, RuntimeError):
    pass


class SystemPaused(LedgerError, RuntimeError):
    pass


class ReentrantCall(LedgerError, RuntimeError):
    """An entry point was invoked while another one was still running."""

"""Rewarder escrow - custodies reward tokens and releases them on instruction.

Only gated callers (the reward ledger) may mint native reward into escrow
or release tokens from it. Pass-through rewards from adapters arrive via
`receive`. Per token, the escrow balance always equals
minted + received - released.
"""

from typing import Dict, Optional, Protocol, Set

from ..errors import InsufficientFunds, InvalidAmount, Unauthorized


class RewarderEscrow(Protocol):
    """Interface the reward ledger consumes."""
    address: str

    def mint(self, token, amount: int, caller: str) -> None:
        ...

    def transfer_to(self, token, receiver: str, amount: int, caller: str) -> None:
        ...


class Rewarder:
    """Gated escrow holding its balances on the token ledgers."""

    def __init__(self, env, address: str = "rewarder", owner: Optional[str] = None):
        """
        Initialize rewarder.

        Args:
            env: Environment the escrow's state is journaled in
            address: Account the escrow holds balances under
            owner: Account allowed to manage gates (None = unrestricted)
        """
        self.address = address
        self.owner = owner
        self.gates: Set[str] = set()
        self.minted: Dict[str, int] = {}
        self.received: Dict[str, int] = {}
        self.released: Dict[str, int] = {}
        env.register(self)

    def set_gate(self, account: str, allowed: bool = True, caller: Optional[str] = None) -> None:
        if self.owner is not None and caller != self.owner:
            raise Unauthorized(f"{caller} cannot manage rewarder gates")
        if allowed:
            self.gates.add(account)
        else:
            self.gates.discard(account)

    def _require_gate(self, caller: str) -> None:
        if caller not in self.gates:
            raise Unauthorized(f"{caller} is not gated on {self.address}")

    def balance(self, token) -> int:
        return token.balance_of(self.address)

    def mint(self, token, amount: int, caller: str) -> None:
        """Mint `amount` of `token` into escrow custody."""
        self._require_gate(caller)
        if amount < 0:
            raise InvalidAmount(amount)
        if amount == 0:
            return
        token.mint(self.address, amount, caller=self.address)
        self.minted[token.symbol] = self.minted.get(token.symbol, 0) + amount

    def receive(self, token, amount: int, sender: str) -> None:
        """Accept `amount` of `token` from `sender` (adapter pass-through reward)."""
        if amount < 0:
            raise InvalidAmount(amount)
        token.transfer(sender, self.address, amount)
        self.received[token.symbol] = self.received.get(token.symbol, 0) + amount

    def transfer_to(self, token, receiver: str, amount: int, caller: str) -> None:
        """Release `amount` of `token` to `receiver`."""
        self._require_gate(caller)
        if amount < 0:
            raise InvalidAmount(amount)
        available = self.balance(token)
        if amount > available:
            raise InsufficientFunds(available=available, required=amount)
        token.transfer(self.address, receiver, amount)
        self.released[token.symbol] = self.released.get(token.symbol, 0) + amount

    def outstanding(self, token) -> int:
        """Tokens that should still be in custody according to the escrow's records."""
        symbol = token.symbol
        return self.minted.get(symbol, 0) + self.received.get(symbol, 0) - self.released.get(symbol, 0)

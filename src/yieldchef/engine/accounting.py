"""Fungible token ledger: balances, allowances and gated minting.

Conservation Identity:
    total_supply = sum(balances) at all times; only mint changes it.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Set, Tuple

from ..errors import InsufficientAllowance, InsufficientFunds, InvalidAmount, Unauthorized


@dataclass(frozen=True)
class TokenInfo:
    """Static token metadata."""
    name: str
    symbol: str
    decimals: int = 18


class Token:
    """In-memory fungible token with standard transfer/allowance semantics."""

    def __init__(
        self,
        env,
        name: str,
        symbol: Optional[str] = None,
        decimals: int = 18,
        minters: Iterable[str] = (),
    ):
        """
        Initialize token.

        Args:
            env: Environment the token's state is journaled in
            name: Human readable name
            symbol: Ticker (defaults to name)
            decimals: Display decimals
            minters: Addresses allowed to mint (empty = anyone may mint)
        """
        self.info = TokenInfo(name=name, symbol=symbol or name, decimals=decimals)
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.minters: Set[str] = set(minters)
        self.total_supply = 0
        env.register(self)

    @property
    def symbol(self) -> str:
        return self.info.symbol

    def __repr__(self) -> str:
        return f"Token({self.info.symbol})"

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def set_minter(self, account: str, allowed: bool = True) -> None:
        if allowed:
            self.minters.add(account)
        else:
            self.minters.discard(account)

    def mint(self, to: str, amount: int, caller: Optional[str] = None) -> None:
        """Create `amount` new units for `to`. Restricted once minters are set."""
        if amount < 0:
            raise InvalidAmount(amount)
        if self.minters and caller not in self.minters:
            raise Unauthorized(f"{caller} cannot mint {self.symbol}")
        self.balances[to] = self.balance_of(to) + amount
        self.total_supply += amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move `amount` from `sender` to `recipient`."""
        if amount < 0:
            raise InvalidAmount(amount)
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientFunds(available=balance, required=amount)
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(amount)
        self.allowances[(owner, spender)] = amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """Move `amount` out of `owner` using `spender`'s allowance."""
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise InsufficientAllowance(available=allowed, required=amount)
        self.transfer(owner, recipient, amount)
        self.allowances[(owner, spender)] = allowed - amount

    def validate_conservation(self) -> Tuple[bool, Optional[str]]:
        """
        Validate that balances sum to total supply.

        Returns:
            (is_valid, error_message)
        """
        computed = sum(self.balances.values())
        if computed != self.total_supply:
            return False, (
                f"Conservation violation for {self.symbol}: "
                f"total_supply={self.total_supply}, sum(balances)={computed}"
            )
        return True, None

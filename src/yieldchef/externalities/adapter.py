"""Adapter bridge - routes a pool's deposits into an external farm.

The adapter stakes everything the ledger hands it under its own address,
harvests the farm on `update_adapter()` and forwards the harvest to the
rewarder escrow, reporting how much arrived. The ledger never recomputes
that amount; the adapter is the only authority on it.
"""

import logging
from typing import Protocol

from ..errors import InsufficientFunds

logger = logging.getLogger(__name__)


class AdapterBridge(Protocol):
    """Interface the reward ledger consumes."""
    address: str
    asset: object
    reward_asset: object

    def deposit(self, amount: int, account: str) -> None:
        ...

    def withdraw(self, amount: int, account: str) -> None:
        ...

    def emergency_withdraw(self, amount: int, account: str) -> None:
        ...

    def update_adapter(self) -> int:
        ...

    def get_acc_reward(self) -> int:
        ...

    def get_reward_rate(self) -> int:
        ...


class FarmAdapter:
    """AdapterBridge over an ExternalFarm."""

    def __init__(self, env, farm, rewarder, address: str = "adapter"):
        """
        Initialize adapter.

        Args:
            env: Environment the adapter's state is journaled in
            farm: ExternalFarm receiving the staked asset
            rewarder: Escrow the harvested reward is forwarded to
            address: Account the adapter holds balances under
        """
        self.farm = farm
        self.rewarder = rewarder
        self.address = address
        self.asset = farm.stake_asset
        self.reward_asset = farm.reward_token
        self.adapter_balance = 0
        env.register(self)

    def deposit(self, amount: int, account: str) -> None:
        """Stake `amount` already transferred to the adapter on behalf of `account`."""
        held = self.asset.balance_of(self.address)
        if amount > held:
            raise InsufficientFunds(available=held, required=amount)
        self.adapter_balance += amount
        self.farm.deposit(self.address, amount)

    def withdraw(self, amount: int, account: str) -> None:
        """Unstake `amount` and return it to `account`."""
        if amount > self.adapter_balance:
            raise InsufficientFunds(available=self.adapter_balance, required=amount)
        self.adapter_balance -= amount
        self.farm.withdraw(self.address, amount)
        self.asset.transfer(self.address, account, amount)

    def emergency_withdraw(self, amount: int, account: str) -> None:
        # The farm keeps the adapter's accrued reward; only principal moves.
        self.withdraw(amount, account)

    def update_adapter(self) -> int:
        """Harvest the farm into the rewarder; return the amount forwarded."""
        harvested = self.farm.harvest(self.address)
        if harvested > 0:
            self.rewarder.receive(self.reward_asset, harvested, sender=self.address)
            logger.debug("Adapter %s forwarded %d to escrow", self.address, harvested)
        return harvested

    def get_acc_reward(self) -> int:
        return self.farm.pending(self.address)

    def get_reward_rate(self) -> int:
        return self.farm.reward_rate_for(self.address)

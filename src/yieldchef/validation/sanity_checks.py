"""Sanity checks and invariant validation for the reward ledger."""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config.schema import Config
from ..engine.pools import TokenRole

# Per-share rounding can leave escrow a few wei short of the sum of pending
# rewards; anything beyond this is a real shortfall.
SOLVENCY_DUST = 10 ** 6


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "allocation"
    message: str
    details: Optional[str] = None


class InvariantChecker:
    """Check ledger, escrow and token state against the ledger's invariants."""

    def __init__(self, chef):
        """Initialize with the ledger to inspect."""
        self.chef = chef

    def check_pools(self) -> List[ValidationWarning]:
        """
        Check pool supplies and accumulators.

        Returns:
            List of validation warnings
        """
        warnings = []
        pools = self.chef.pools

        for pool_id, pool in enumerate(pools.pools):
            position_sum = sum(pos.amount for _, pos in self.chef.positions.in_pool(pool_id))
            if position_sum != pool.supply:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message=f"Pool {pool_id} supply does not match positions",
                    details=f"supply={pool.supply}, sum(amount)={position_sum}"
                ))

            if pool.supply < 0 or pool.allocation_points < 0:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Pool {pool_id} has a negative counter",
                    details=f"supply={pool.supply}, allocation_points={pool.allocation_points}"
                ))

            if any(acc < 0 for acc in pool.acc_reward_per_share):
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Pool {pool_id} has a negative accumulator",
                    details=f"acc={pool.acc_reward_per_share}"
                ))

        weight_sum = sum(pool.allocation_points for pool in pools.pools)
        if weight_sum != pools.total_allocation_points:
            warnings.append(ValidationWarning(
                severity="error",
                category="allocation",
                message="Total allocation points do not match pool weights",
                details=f"total={pools.total_allocation_points}, sum={weight_sum}"
            ))

        return warnings

    def check_allocations(self) -> List[ValidationWarning]:
        """Check per-account allocation totals and the 100% cap."""
        warnings = []
        positions = self.chef.positions

        per_account: Dict[str, int] = {}
        for (_, account), pos in positions.items():
            per_account[account] = per_account.get(account, 0) + pos.allocated_points
            if pos.amount < 0 or pos.allocated_points < 0:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Negative position counter for {account}",
                    details=f"amount={pos.amount}, allocated_points={pos.allocated_points}"
                ))

        accounts = set(per_account) | set(positions.user_allocated_points)
        for account in sorted(accounts):
            cached = positions.allocated_points_of(account)
            actual = per_account.get(account, 0)
            if cached != actual:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="allocation",
                    message=f"Allocated points cache out of sync for {account}",
                    details=f"cached={cached}, sum={actual}"
                ))
            balance = self.chef.voting.points_balance(account)
            if balance is not None and actual > balance:
                # Points may have moved after allocating; not a ledger fault.
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="allocation",
                    message=f"{account} allocates more points than it holds",
                    details=f"allocated={actual}, balance={balance}"
                ))

        return warnings

    def check_escrow(self) -> List[ValidationWarning]:
        """Check escrow bookkeeping and solvency against outstanding pending rewards."""
        warnings = []
        chef = self.chef
        rewarder = chef.rewarder

        tokens = [chef.native_token] + [
            pool.adapter_reward_asset for pool in chef.pools.pools if pool.adapter_reward_asset is not None
        ]
        seen = set()
        for token in tokens:
            if id(token) in seen:
                continue
            seen.add(id(token))
            balance = rewarder.balance(token)
            recorded = rewarder.outstanding(token)
            if balance != recorded:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message=f"Escrow balance of {token.symbol} differs from its records",
                    details=f"balance={balance}, minted+received-released={recorded}"
                ))
            is_valid, error_msg = token.validate_conservation()
            if not is_valid:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message="Token conservation violated",
                    details=error_msg
                ))

        owed_native = 0
        owed_adapter: Dict[int, int] = {}
        for (pool_id, _), pos in chef.positions.items():
            pool = chef.pools.pools[pool_id]
            owed_native += chef.positions.pending(pool, pos, TokenRole.NATIVE)
            if pool.adapter_reward_asset is not None:
                key = id(pool.adapter_reward_asset)
                owed_adapter[key] = owed_adapter.get(key, 0) + chef.positions.pending(
                    pool, pos, TokenRole.ADAPTER
                )

        native_balance = rewarder.balance(chef.native_token)
        if owed_native > native_balance:
            warnings.append(ValidationWarning(
                severity=_shortfall_severity(owed_native - native_balance),
                category="solvency",
                message="Escrow cannot cover pending native rewards",
                details=f"pending={owed_native}, escrow={native_balance}"
            ))
        for pool in chef.pools.pools:
            token = pool.adapter_reward_asset
            if token is None or id(token) not in owed_adapter:
                continue
            owed = owed_adapter.pop(id(token))
            if owed > rewarder.balance(token):
                warnings.append(ValidationWarning(
                    severity=_shortfall_severity(owed - rewarder.balance(token)),
                    category="solvency",
                    message=f"Escrow cannot cover pending {token.symbol} rewards",
                    details=f"pending={owed}, escrow={rewarder.balance(token)}"
                ))

        return warnings

    def check_all(self) -> List[ValidationWarning]:
        return self.check_pools() + self.check_allocations() + self.check_escrow()


def _shortfall_severity(shortfall: int) -> str:
    return "error" if shortfall > SOLVENCY_DUST else "warning"


def check_config_inputs(config: Config) -> List[ValidationWarning]:
    """
    Check configuration inputs for implausible values.

    Returns:
        List of validation warnings
    """
    warnings = []
    emission = config.emission

    if emission.tail_rate_per_second >= emission.base_rate_per_second:
        warnings.append(ValidationWarning(
            severity="warning",
            category="input",
            message="Tail rate is not below the base rate; emission never decays",
            details=f"Base: {emission.base_rate_per_second}, Tail: {emission.tail_rate_per_second}"
        ))

    if emission.decay_numerator == emission.decay_denominator and emission.decay_epochs > 0:
        warnings.append(ValidationWarning(
            severity="warning",
            category="input",
            message="Decay factor is 1; epochs have no effect",
            details=f"{emission.decay_numerator}/{emission.decay_denominator}"
        ))

    if config.pools and sum(p.base_allocation_points for p in config.pools) == 0:
        if not config.simulation.enable_voting:
            warnings.append(ValidationWarning(
                severity="warning",
                category="allocation",
                message="All pools start with zero weight and voting is disabled",
                details="No native emission will ever be distributed"
            ))

    if config.simulation.max_deposit > config.simulation.initial_balance:
        warnings.append(ValidationWarning(
            severity="warning",
            category="input",
            message="Max deposit exceeds the per-account starting balance",
            details=(
                f"max_deposit={config.simulation.max_deposit}, "
                f"initial_balance={config.simulation.initial_balance}"
            )
        ))

    return warnings

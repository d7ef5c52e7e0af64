"""Simulation runner - drive a farm with seeded random user activity.

Key Features:
- Random deposits, withdrawals, claims, allocations, resets and emergency exits
- Clock advanced by a random interval between actions
- Every invariant checked after every step; violations collected, not raised
- Per-step metrics for reporting
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from ..config.schema import Config
from ..engine.pools import TokenRole
from ..engine.schedule import SCALING_FACTOR
from ..errors import LedgerError
from ..validation.sanity_checks import InvariantChecker, ValidationWarning
from .factory import FarmSystem, build_system

logger = logging.getLogger(__name__)

ACTIONS = (
    "deposit",
    "withdraw",
    "get_reward",
    "allocate_points",
    "reset_allocations",
    "emergency_withdraw",
)
ACTION_WEIGHTS = np.array([0.35, 0.2, 0.2, 0.15, 0.05, 0.05])


@dataclass
class SimulationResult:
    """Complete simulation result."""
    config: Config
    seed: int
    metrics_over_time: List[Dict[str, Any]]
    final_metrics: Dict[str, Any]
    action_counts: Dict[str, int] = field(default_factory=dict)
    rejected_counts: Dict[str, int] = field(default_factory=dict)
    invariant_errors: List[ValidationWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.invariant_errors


class SimulationRunner:
    """Run one seeded sequence of random actions against a freshly built farm."""

    def __init__(self, config: Config):
        """
        Initialize simulation runner.

        Args:
            config: Simulation configuration
        """
        self.config = config
        self.system: FarmSystem = None

    def run(self, random_seed: int = None) -> SimulationResult:
        """
        Run the simulation.

        Args:
            random_seed: Random seed for reproducibility

        Returns:
            Simulation result
        """
        seed = self.config.simulation.random_seed if random_seed is None else random_seed
        rng = np.random.default_rng(seed)
        self.system = build_system(self.config)
        checker = InvariantChecker(self.system.chef)

        sim = self.config.simulation
        action_counts = {name: 0 for name in ACTIONS}
        rejected_counts = {name: 0 for name in ACTIONS}
        metrics_over_time = []
        invariant_errors: List[ValidationWarning] = []

        for step in range(sim.num_steps):
            if sim.max_step_seconds:
                self.system.clock.advance(int(rng.integers(0, sim.max_step_seconds + 1)))

            action = ACTIONS[rng.choice(len(ACTIONS), p=ACTION_WEIGHTS)]
            action_counts[action] += 1
            try:
                self._apply(action, rng)
            except LedgerError as exc:
                rejected_counts[action] += 1
                logger.debug("Step %d: %s rejected (%s)", step, action, exc)

            errors = [w for w in checker.check_all() if w.severity == "error"]
            if errors:
                logger.warning("Step %d: %d invariant violation(s) after %s", step, len(errors), action)
                invariant_errors.extend(errors)

            metrics_over_time.append(self._metrics(step))

        final_metrics = dict(metrics_over_time[-1]) if metrics_over_time else {}
        final_metrics['events'] = len(self.system.chef.events)
        return SimulationResult(
            config=self.config,
            seed=seed,
            metrics_over_time=metrics_over_time,
            final_metrics=final_metrics,
            action_counts=action_counts,
            rejected_counts=rejected_counts,
            invariant_errors=invariant_errors,
        )

    def _apply(self, action: str, rng: np.random.Generator) -> None:
        system = self.system
        chef = system.chef
        account = system.accounts[int(rng.integers(len(system.accounts)))]
        pool_id = int(rng.integers(chef.pools_length()))

        if action == "deposit":
            # Sampled in milli-units; fixed point amounts overflow int64.
            max_units = int(self.config.simulation.max_deposit * 1000)
            units = int(rng.integers(1, max_units + 1))
            chef.deposit(pool_id, account, units * SCALING_FACTOR // 1000)
        elif action == "withdraw":
            held = chef.position(pool_id, account).amount
            # Occasionally over-withdraw to exercise the rejection path.
            amount = max(held * int(rng.integers(1, 1051)) // 1000, 1)
            chef.withdraw(pool_id, account, amount)
        elif action == "get_reward":
            chef.get_reward(pool_id, account)
        elif action == "allocate_points":
            chef.allocate_points(pool_id, account, int(rng.integers(0, 101)))
        elif action == "reset_allocations":
            chef.reset_allocations(account)
        elif action == "emergency_withdraw":
            chef.emergency_withdraw(pool_id, account)

    def _metrics(self, step: int) -> Dict[str, Any]:
        system = self.system
        chef = system.chef
        metrics = {
            'step': step,
            't': system.env.now(),
            'total_allocation_points': chef.total_allocation_points,
            'escrow_native': system.rewarder.balance(system.native_token),
            'escrow_adapter': system.rewarder.balance(system.farm_reward_token),
            'native_supply': system.native_token.total_supply,
        }
        for pool_id in range(chef.pools_length()):
            pool = chef.pools.get(pool_id)
            metrics[f'pool_{pool_id}_supply'] = pool.supply
            metrics[f'pool_{pool_id}_allocation_points'] = pool.allocation_points
            metrics[f'pool_{pool_id}_acc_native'] = pool.acc_reward_per_share[TokenRole.NATIVE]
            metrics[f'pool_{pool_id}_acc_adapter'] = pool.acc_reward_per_share[TokenRole.ADAPTER]
        return metrics

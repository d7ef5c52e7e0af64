"""Monte Carlo runs - many seeds of the random-activity simulation."""

from typing import Any, Dict, List

import numpy as np

from ..config.schema import Config
from .runner import SimulationResult, SimulationRunner


class MonteCarloRunner:
    """Run the simulation over consecutive seeds and summarize."""

    def __init__(self, config: Config):
        self.config = config

    def run(
        self,
        num_runs: int = None,
        random_seed: int = None
    ) -> List[SimulationResult]:
        """
        Run Monte Carlo simulation.

        Args:
            num_runs: Number of runs (defaults to config value)
            random_seed: First seed (defaults to config value)

        Returns:
            List of simulation results
        """
        if num_runs is None:
            num_runs = self.config.simulation.monte_carlo_runs

        if random_seed is None:
            random_seed = self.config.simulation.random_seed

        results = []
        for run_idx in range(num_runs):
            runner = SimulationRunner(self.config)
            results.append(runner.run(random_seed=random_seed + run_idx))
        return results

    @staticmethod
    def summarize(results: List[SimulationResult]) -> Dict[str, Any]:
        """Aggregate invariant failures and final escrow balances across runs."""
        if not results:
            return {'runs': 0}
        escrow = np.array([float(r.final_metrics.get('escrow_native', 0)) for r in results])
        rejected = np.array([sum(r.rejected_counts.values()) for r in results])
        return {
            'runs': len(results),
            'failed_runs': sum(1 for r in results if not r.ok),
            'failed_seeds': [r.seed for r in results if not r.ok],
            'escrow_native_mean': float(np.mean(escrow)),
            'escrow_native_p5': float(np.percentile(escrow, 5)),
            'escrow_native_p95': float(np.percentile(escrow, 95)),
            'rejected_mean': float(np.mean(rejected)),
        }

"""Export ledger snapshots and simulation results to DataFrames, CSV and JSON."""

import json

import pandas as pd

from ..engine.pools import TokenRole
from ..engine.schedule import SCALING_FACTOR
from ..simulation.runner import SimulationResult


def _units(value: int) -> float:
    return value / SCALING_FACTOR


def pools_frame(chef) -> pd.DataFrame:
    """One row per pool, amounts in human units."""
    rows = []
    for pool_id in range(chef.pools_length()):
        pool = chef.pool(pool_id)
        rows.append({
            'pool_id': pool_id,
            'lp_asset': pool.lp_asset.symbol,
            'adapter': pool.has_adapter,
            'supply': _units(pool.supply),
            'allocation_points': _units(pool.allocation_points),
            'weight_share': (
                pool.allocation_points / chef.total_allocation_points
                if chef.total_allocation_points else 0.0
            ),
            'acc_native': pool.acc_reward_per_share[TokenRole.NATIVE],
            'acc_adapter': pool.acc_reward_per_share[TokenRole.ADAPTER],
            'last_update_time': pool.last_update_time,
        })
    return pd.DataFrame(rows)


def positions_frame(chef) -> pd.DataFrame:
    """One row per (pool, account) position with projected pending rewards."""
    rows = []
    for (pool_id, account), pos in chef.positions.items():
        rows.append({
            'pool_id': pool_id,
            'account': account,
            'amount': _units(pos.amount),
            'allocated_points': _units(pos.allocated_points),
            'pending_native': _units(chef.pending_reward(pool_id, account)),
            'pending_adapter': _units(chef.pending_adapter_reward(pool_id, account)),
        })
    return pd.DataFrame(rows, columns=[
        'pool_id', 'account', 'amount', 'allocated_points', 'pending_native', 'pending_adapter'
    ])


def events_frame(chef) -> pd.DataFrame:
    rows = [
        {
            'timestamp': e.timestamp,
            'event_type': e.event_type,
            'account': e.account,
            'pool_id': e.pool_id,
            'amount': e.amount,
        }
        for e in chef.events.tail(len(chef.events))
    ]
    return pd.DataFrame(rows, columns=['timestamp', 'event_type', 'account', 'pool_id', 'amount'])


def export_csv(result: SimulationResult, filepath: str):
    """Export per-step simulation metrics to CSV."""
    df = pd.DataFrame(result.metrics_over_time)
    df.to_csv(filepath, index=False)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'seed': result.seed,
        # Fixed point integers exceed JSON-safe precision; store as strings.
        'metrics_over_time': [
            {k: str(v) if isinstance(v, int) and abs(v) > 2 ** 53 else v for k, v in m.items()}
            for m in result.metrics_over_time
        ],
        'action_counts': result.action_counts,
        'rejected_counts': result.rejected_counts,
        'invariant_errors': [
            {'severity': w.severity, 'category': w.category, 'message': w.message, 'details': w.details}
            for w in result.invariant_errors
        ],
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)

"""Wire a complete farm (tokens, escrow, external farms, adapters, ledger) from config."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config.schema import Config, to_fixed
from ..engine.accounting import Token
from ..engine.chef import YieldChef
from ..engine.runtime import Environment, ManualClock
from ..externalities.adapter import FarmAdapter
from ..externalities.farm import ExternalFarm
from ..externalities.rewarder import Rewarder

OWNER = "owner"
MAX_ALLOWANCE = 2 ** 256 - 1


@dataclass
class FarmSystem:
    """Every component of a wired deployment."""
    env: Environment
    chef: YieldChef
    rewarder: Rewarder
    native_token: Token
    points: Token
    farm_reward_token: Token
    lp_tokens: List[Token]
    farms: Dict[int, ExternalFarm] = field(default_factory=dict)
    adapters: Dict[int, FarmAdapter] = field(default_factory=dict)
    accounts: List[str] = field(default_factory=list)
    owner: str = OWNER

    @property
    def clock(self):
        return self.env.clock


def account_name(index: int) -> str:
    return f"user_{index:02d}"


def build_system(
    config: Config,
    clock: Optional[ManualClock] = None,
    num_accounts: Optional[int] = None,
) -> FarmSystem:
    """
    Build a deployment from config.

    Args:
        config: Configuration (emission, pools, farm, simulation)
        clock: Clock to use (defaults to a ManualClock at the emission start)
        num_accounts: Funded accounts (defaults to config.simulation.num_accounts)

    Returns:
        FarmSystem with funded, approved accounts
    """
    if clock is None:
        clock = ManualClock(config.emission.start_timestamp or 0)
    env = Environment(clock)

    rewarder = Rewarder(env, owner=OWNER)
    native_token = Token(env, "Yield Chef", "CHEF", minters=[rewarder.address])
    points = Token(env, "Points", "PTS")
    farm_reward_token = Token(env, "Farm Reward", "FARM")

    chef = YieldChef.from_config(env, config, rewarder, native_token, owner=OWNER)
    rewarder.set_gate(chef.address, True, caller=OWNER)

    system = FarmSystem(
        env=env,
        chef=chef,
        rewarder=rewarder,
        native_token=native_token,
        points=points,
        farm_reward_token=farm_reward_token,
        lp_tokens=[],
    )

    for spec in config.pools:
        lp_token = Token(env, spec.name)
        pool_index = len(system.lp_tokens)
        system.lp_tokens.append(lp_token)
        adapter = None
        reward_asset = None
        if spec.adapter:
            farm = ExternalFarm(
                env,
                stake_asset=lp_token,
                reward_token=farm_reward_token,
                reward_per_second=to_fixed(config.farm.reward_per_second),
                address=f"farm_{pool_index}",
            )
            farm_reward_token.set_minter(farm.address)
            adapter = FarmAdapter(env, farm, rewarder, address=f"adapter_{pool_index}")
            reward_asset = farm_reward_token
            system.farms[pool_index] = farm
            system.adapters[pool_index] = adapter
        chef.add_pool(
            lp_token, reward_asset, adapter, to_fixed(spec.base_allocation_points), caller=OWNER
        )

    if config.simulation.enable_voting:
        chef.enable_voting(points, caller=OWNER)

    count = config.simulation.num_accounts if num_accounts is None else num_accounts
    for index in range(count):
        account = account_name(index)
        fund_account(system, account, to_fixed(config.simulation.initial_balance),
                     to_fixed(config.simulation.points_per_account))
        system.accounts.append(account)

    return system


def fund_account(system: FarmSystem, account: str, lp_amount: int, points_amount: int = 0) -> None:
    """Mint deposit assets and points to `account` and approve the ledger."""
    for lp_token in system.lp_tokens:
        lp_token.mint(account, lp_amount)
        lp_token.approve(account, system.chef.address, MAX_ALLOWANCE)
    if points_amount:
        system.points.mint(account, points_amount)

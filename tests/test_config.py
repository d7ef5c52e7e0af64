"""Tests for configuration loading and validation."""

import pytest
import sys
import os

from pydantic import ValidationError

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from yieldchef.config.loader import DEFAULTS_PATH, load_config
from yieldchef.config.schema import Config, Emission, to_fixed
from yieldchef.engine.schedule import DEFAULT_TAIL_REWARD_RATE, EPOCH_DURATION, SCALING_FACTOR
from yieldchef.validation.sanity_checks import check_config_inputs


class TestConfigLoading:

    def test_load_default_config(self):
        config = load_config()
        assert isinstance(config, Config)
        assert [p.name for p in config.pools] == ["LP-A", "LP-B"]
        assert config.pools[0].adapter is True
        assert config.pools[1].base_allocation_points == 0

    def test_config_hash_is_deterministic(self):
        assert load_config().compute_hash() == load_config().compute_hash()

    def test_config_hash_tracks_changes(self):
        config = load_config()
        changed = load_config()
        changed.farm.reward_per_second = 2.0
        assert config.compute_hash() != changed.compute_hash()

    def test_load_from_yaml_path(self, tmp_path):
        path = tmp_path / "farm.yaml"
        path.write_text(
            "emission:\n"
            "  base_rate_per_second: 2.0\n"
            "pools:\n"
            "  - name: SOLO\n"
            "    base_allocation_points: 10\n"
        )
        config = load_config(str(path))
        assert config.emission.base_rate_per_second == 2.0
        assert config.emission.start_timestamp is None
        assert len(config.pools) == 1
        assert config.pools[0].adapter is False

    def test_explicit_defaults_path(self):
        assert load_config(DEFAULTS_PATH).compute_hash() == load_config().compute_hash()

    def test_empty_file_uses_model_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.pools == []
        assert config.emission.base_rate_per_second == 1.0

    def test_round_trip_through_dict(self):
        config = load_config()
        assert Config.from_dict(config.to_dict()).compute_hash() == config.compute_hash()


class TestEmission:

    def test_default_schedule_matches_constants(self):
        schedule = load_config().emission.build_schedule()
        assert schedule.base_rate == SCALING_FACTOR
        assert schedule.tail_reward_rate == DEFAULT_TAIL_REWARD_RATE
        assert schedule.epoch_duration == EPOCH_DURATION
        assert schedule.start_timestamp == 0

    def test_to_fixed_is_exact(self):
        assert to_fixed(0.05) == 5 * 10 ** 16
        assert to_fixed(100) == 100 * SCALING_FACTOR
        assert to_fixed(0.1) == 10 ** 17

    def test_decay_factor_above_one_rejected(self):
        with pytest.raises(ValidationError):
            Emission(decay_numerator=6, decay_denominator=5)

    @pytest.mark.parametrize("tail", [0, 1.0, 1.5])
    def test_tail_rate_bounds(self, tail):
        with pytest.raises(ValidationError):
            Emission(tail_rate_per_second=tail)

    def test_negative_start_rejected(self):
        with pytest.raises(ValidationError):
            Emission(start_timestamp=-1)


class TestConfigInputChecks:

    def test_default_config_is_clean(self):
        assert check_config_inputs(load_config()) == []

    def test_zero_weight_without_voting(self):
        config = load_config()
        config.pools[0].base_allocation_points = 0
        config.simulation.enable_voting = False
        categories = [w.category for w in check_config_inputs(config)]
        assert "allocation" in categories

    def test_tail_not_below_base(self):
        config = Config.from_dict({"emission": {"base_rate_per_second": 0.05}})
        messages = [w.message for w in check_config_inputs(config)]
        assert any("never decays" in m for m in messages)

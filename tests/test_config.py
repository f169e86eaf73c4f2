"""Tests for configuration loading and validation."""

import json
import logging
from pathlib import Path

import pytest

from intraday_backtest.utils.config import BacktestConfig, Config, StrategyWeights


def test_defaults_validate(config):
    config.validate()
    assert config.weights.total == pytest.approx(1.0)
    assert config.max_positions == 15
    assert config.stop_loss == -2.0


def test_validate_collects_every_error():
    bad = BacktestConfig(initial_capital=0, max_positions=0, max_position_size=1.5, stop_loss=2.0)
    with pytest.raises(ValueError) as exc:
        bad.validate()
    message = str(exc.value)
    for field_name in ("initial_capital", "max_positions", "max_position_size", "stop_loss"):
        assert field_name in message


def test_negative_weight_rejected():
    weights = StrategyWeights(momentum=-0.1)
    with pytest.raises(ValueError, match="weights.momentum"):
        BacktestConfig(weights=weights).validate()


def test_weights_not_summing_to_one_only_warn(caplog):
    config = BacktestConfig(weights=StrategyWeights(0.5, 0.5, 0.5, 0.5))
    with caplog.at_level(logging.WARNING, logger="intraday_backtest.config"):
        config.validate()
    assert "가중치 합" in caplog.text


def test_with_overrides(config):
    updated = config.with_overrides(buy_threshold=0.2, **{"weights.technical": 0.4})
    assert updated.buy_threshold == 0.2
    assert updated.weights.technical == 0.4
    assert updated.weights.momentum == config.weights.momentum
    # the source config is unchanged
    assert config.buy_threshold == 0.15


def test_with_overrides_rejects_unknown_keys(config):
    with pytest.raises(ValueError, match="nope"):
        config.with_overrides(nope=1)
    with pytest.raises(ValueError, match="weights.volume"):
        config.with_overrides(**{"weights.volume": 0.1})


def test_with_overrides_rejects_whole_weights(config):
    with pytest.raises(ValueError, match="weights"):
        config.with_overrides(weights={"momentum": 1.0})
    with pytest.raises(ValueError, match="weights"):
        config.with_overrides(weights="0.25")


def test_yaml_round_trip(tmp_path):
    config = Config()
    config.run.symbols = ["AAPL", "MSFT"]
    path = tmp_path / "conf" / "config.yaml"
    config.save_yaml(path)

    loaded = Config.from_yaml(path)
    assert loaded.backtest == config.backtest
    assert loaded.run.symbols == ["AAPL", "MSFT"]
    assert loaded.log_level == "INFO"


def test_from_json_ignores_unknown_keys(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "backtest": {
            "initial_capital": 50000,
            "legacy_option": True,
            "weights": {"technical": 0.5, "unused": 1},
        },
        "run": {"backtest_days": 10, "signal_workers": 4},
        "log_level": "DEBUG",
    }), encoding="utf-8")

    config = Config.from_json(path)
    assert config.backtest.initial_capital == 50000
    assert config.backtest.weights.technical == 0.5
    assert config.backtest.weights.momentum == 0.08
    assert config.run.backtest_days == 10
    assert config.run.signal_workers == 4
    assert config.log_level == "DEBUG"


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert Config.from_yaml(path).backtest == BacktestConfig()


def test_sweep_variants_from_yaml(tmp_path):
    path = tmp_path / "sweep.yaml"
    path.write_text(
        "run:\n"
        "  sweep:\n"
        "    - {max_positions: 10, max_position_size: 0.10}\n"
        "    - {buy_threshold: 0.35, weights.technical: 0.5}\n",
        encoding="utf-8",
    )
    config = Config.from_yaml(path)

    assert config.run.sweep == [
        {"max_positions": 10, "max_position_size": 0.1},
        {"buy_threshold": 0.35, "weights.technical": 0.5},
    ]
    variant = config.backtest.with_overrides(**config.run.sweep[1])
    assert variant.weights.technical == 0.5


def test_bundled_config_sweep_is_valid():
    config = Config.from_yaml(Path(__file__).parent.parent / "config.yaml")
    assert len(config.run.sweep) == 5
    for overrides in config.run.sweep:
        config.backtest.with_overrides(**overrides).validate()

"""
Unit tests for Trading Configuration and logging setup
"""

import pytest
import json
import logging
import sys
import os
from decimal import Decimal

# Add repo root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from signal_swap_bot.config import TradingConfig, load_config
from signal_swap_bot.exceptions import ConfigurationException
from signal_swap_bot.logger import StructuredFormatter, TradeLogger

ENV_KEYS = (
    "RPC_URL", "JUPITER_API_URL", "SLIPPAGE_BPS", "MAX_PRIORITY_FEE_LAMPORTS", "PRIORITY_LEVEL",
    "CONFIRM_POLL_INTERVAL_SEC", "CONFIRM_MAX_ATTEMPTS", "NATIVE_RESERVE_SOL",
    "HOST", "PORT", "WEBHOOK_AUTH_TOKEN", "LOG_LEVEL", "LOG_DIR", "TRADING_CONFIG_PATH",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestDefaults:
    """Test built-in policy values"""

    def test_defaults(self):
        config = TradingConfig()
        assert config.swap.slippage_bps == 50
        assert config.swap.max_priority_fee_lamports == 1_000_000
        assert config.swap.priority_level == "veryHigh"
        assert config.broadcast.max_retries == 2
        assert config.broadcast.skip_preflight is True
        assert config.confirmation.poll_interval_sec == 3.0
        assert config.confirmation.max_attempts == 10
        assert config.signal.native_reserve_sol == Decimal("0.01")
        config.validate()

    def test_to_dict_masks_token(self):
        config = TradingConfig()
        config.server.auth_token = "s3cret"
        data = config.to_dict()

        assert data["server"]["auth_token"] == "***"
        assert data["signal"]["native_reserve_sol"] == "0.01"


class TestOverrides:
    """Test YAML and environment layering"""

    def test_env_overrides(self):
        config = TradingConfig().apply_env({
            "SLIPPAGE_BPS": "100",
            "CONFIRM_MAX_ATTEMPTS": "20",
            "NATIVE_RESERVE_SOL": "0.05",
            "WEBHOOK_AUTH_TOKEN": "",
            "LOG_LEVEL": "debug",
        })

        assert config.swap.slippage_bps == 100
        assert config.confirmation.max_attempts == 20
        assert config.signal.native_reserve_sol == Decimal("0.05")
        assert config.server.auth_token is None
        assert config.server.log_level == "DEBUG"

    def test_yaml_then_env(self, tmp_path, clean_env):
        path = tmp_path / "trading.yaml"
        path.write_text(
            "swap:\n"
            "  slippage_bps: 30\n"
            "signal:\n"
            "  native_reserve_sol: 0.02\n"
            "server:\n"
            "  port: 9000\n"
        )
        clean_env.setenv("PORT", "9100")

        config = load_config(str(path))

        assert config.swap.slippage_bps == 30
        assert config.signal.native_reserve_sol == Decimal("0.02")
        assert config.server.port == 9100

    def test_path_from_env(self, tmp_path, clean_env):
        path = tmp_path / "trading.yaml"
        path.write_text("confirmation:\n  max_attempts: 4\n")
        clean_env.setenv("TRADING_CONFIG_PATH", str(path))

        assert load_config().confirmation.max_attempts == 4


class TestInvalid:
    """Test configuration errors"""

    def test_missing_file(self, tmp_path, clean_env):
        with pytest.raises(ConfigurationException, match="not found"):
            load_config(str(tmp_path / "missing.yaml"))

    def test_unknown_key(self, tmp_path, clean_env):
        path = tmp_path / "trading.yaml"
        path.write_text("swap:\n  slipage_bps: 30\n")
        with pytest.raises(ConfigurationException):
            load_config(str(path))

    def test_bad_env_value(self, clean_env):
        clean_env.setenv("PORT", "eighty")
        with pytest.raises(ConfigurationException):
            load_config()

    @pytest.mark.parametrize("env", [
        {"SLIPPAGE_BPS": "0"},
        {"CONFIRM_MAX_ATTEMPTS": "0"},
        {"NATIVE_RESERVE_SOL": "-1"},
    ])
    def test_validate_rejects(self, env):
        config = TradingConfig().apply_env(env)
        with pytest.raises(ConfigurationException):
            config.validate()


class TestLogging:
    """Test structured trade records"""

    def test_trade_event_is_json(self, caplog):
        with caplog.at_level(logging.INFO, logger="trades"):
            TradeLogger().log_result("sig123", "timed_out", 10, "Not finalized after 10 attempts")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        data = json.loads(StructuredFormatter().format(record))
        assert data["event_type"] == "SWAP_RESULT"
        assert data["trade_event"] is True
        assert data["signature"] == "sig123"
        assert data["attempts"] == 10


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

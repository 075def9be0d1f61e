"""
Trading Configuration

Policy constants for slippage, fees, reserve, broadcast and confirmation,
loaded from an optional YAML file and overridden by environment variables.
"""

import os
import logging
from dataclasses import dataclass, field, asdict
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .. import constants
from ..exceptions import ConfigurationException

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "TRADING_CONFIG_PATH"


@dataclass
class EndpointConfig:
    """Network endpoints"""
    rpc_url: str = constants.DEFAULT_RPC_URL
    jupiter_base_url: str = constants.JUPITER_BASE_URL


@dataclass
class SwapPolicy:
    """Quote and swap-build policy"""
    slippage_bps: int = constants.DEFAULT_SLIPPAGE_BPS
    max_priority_fee_lamports: int = constants.MAX_PRIORITY_FEE_LAMPORTS
    priority_level: str = constants.PRIORITY_LEVEL
    restrict_intermediate_tokens: bool = True


@dataclass
class BroadcastPolicy:
    """Node-level send options"""
    max_retries: int = constants.BROADCAST_MAX_RETRIES
    skip_preflight: bool = constants.SKIP_PREFLIGHT


@dataclass
class ConfirmationPolicy:
    """Confirmation polling budget"""
    poll_interval_sec: float = constants.CONFIRM_POLL_INTERVAL_SECONDS
    max_attempts: int = constants.CONFIRM_MAX_ATTEMPTS


@dataclass
class SignalPolicy:
    """Signal-to-trade sizing"""
    native_reserve_sol: Decimal = constants.NATIVE_RESERVE_SOL


@dataclass
class ServerConfig:
    """HTTP server and process settings"""
    host: str = "0.0.0.0"
    port: int = 8080
    auth_token: Optional[str] = None
    history_default_limit: int = constants.HISTORY_DEFAULT_LIMIT
    history_max_limit: int = constants.HISTORY_MAX_LIMIT
    log_level: str = "INFO"
    log_dir: str = "logs"


@dataclass
class TradingConfig:
    """Complete process configuration"""
    endpoints: EndpointConfig = field(default_factory=EndpointConfig)
    swap: SwapPolicy = field(default_factory=SwapPolicy)
    broadcast: BroadcastPolicy = field(default_factory=BroadcastPolicy)
    confirmation: ConfirmationPolicy = field(default_factory=ConfirmationPolicy)
    signal: SignalPolicy = field(default_factory=SignalPolicy)
    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (auth token masked)"""
        data = asdict(self)
        data["signal"]["native_reserve_sol"] = str(self.signal.native_reserve_sol)
        if data["server"]["auth_token"]:
            data["server"]["auth_token"] = "***"
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TradingConfig":
        """Create from dictionary"""
        signal_data = dict(data.get("signal", {}))
        if "native_reserve_sol" in signal_data:
            signal_data["native_reserve_sol"] = Decimal(str(signal_data["native_reserve_sol"]))

        return cls(
            endpoints=EndpointConfig(**data.get("endpoints", {})),
            swap=SwapPolicy(**data.get("swap", {})),
            broadcast=BroadcastPolicy(**data.get("broadcast", {})),
            confirmation=ConfirmationPolicy(**data.get("confirmation", {})),
            signal=SignalPolicy(**signal_data),
            server=ServerConfig(**data.get("server", {})),
        )

    def apply_env(self, env: Optional[Dict[str, str]] = None) -> "TradingConfig":
        """Override fields from environment variables (in place)."""
        env = os.environ if env is None else env

        self.endpoints.rpc_url = env.get("RPC_URL", self.endpoints.rpc_url)
        self.endpoints.jupiter_base_url = env.get("JUPITER_API_URL", self.endpoints.jupiter_base_url)

        self.swap.slippage_bps = int(env.get("SLIPPAGE_BPS", self.swap.slippage_bps))
        self.swap.max_priority_fee_lamports = int(
            env.get("MAX_PRIORITY_FEE_LAMPORTS", self.swap.max_priority_fee_lamports)
        )
        self.swap.priority_level = env.get("PRIORITY_LEVEL", self.swap.priority_level)

        self.confirmation.poll_interval_sec = float(
            env.get("CONFIRM_POLL_INTERVAL_SEC", self.confirmation.poll_interval_sec)
        )
        self.confirmation.max_attempts = int(env.get("CONFIRM_MAX_ATTEMPTS", self.confirmation.max_attempts))

        if "NATIVE_RESERVE_SOL" in env:
            self.signal.native_reserve_sol = Decimal(env["NATIVE_RESERVE_SOL"])

        self.server.host = env.get("HOST", self.server.host)
        self.server.port = int(env.get("PORT", self.server.port))
        self.server.auth_token = env.get("WEBHOOK_AUTH_TOKEN", self.server.auth_token) or None
        self.server.log_level = env.get("LOG_LEVEL", self.server.log_level).upper()
        self.server.log_dir = env.get("LOG_DIR", self.server.log_dir)
        return self

    def validate(self):
        """Raise ConfigurationException on values the pipeline cannot run with."""
        if not self.endpoints.rpc_url:
            raise ConfigurationException("RPC URL is required")
        if self.swap.slippage_bps <= 0:
            raise ConfigurationException("Slippage must be positive", slippage_bps=self.swap.slippage_bps)
        if self.swap.max_priority_fee_lamports < 0:
            raise ConfigurationException("Priority fee ceiling cannot be negative")
        if self.broadcast.max_retries < 0:
            raise ConfigurationException("Broadcast retries cannot be negative")
        if self.confirmation.max_attempts <= 0:
            raise ConfigurationException(
                "Confirmation attempts must be positive", max_attempts=self.confirmation.max_attempts
            )
        if self.confirmation.poll_interval_sec < 0:
            raise ConfigurationException("Poll interval cannot be negative")
        if self.signal.native_reserve_sol < 0:
            raise ConfigurationException("Native reserve cannot be negative")
        if not 0 < self.server.history_default_limit <= self.server.history_max_limit:
            raise ConfigurationException("History default limit must be within 1..max")


def load_config(path: Optional[str] = None) -> TradingConfig:
    """
    Load configuration from YAML (if present) plus environment overrides.

    Args:
        path: YAML file path; defaults to $TRADING_CONFIG_PATH

    Returns:
        Validated TradingConfig
    """
    path = path or os.getenv(CONFIG_PATH_ENV)
    data: Dict[str, Any] = {}

    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationException("Config file not found", path=str(config_path))
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Invalid YAML config: {e}", path=str(config_path)) from e
        logger.info(f"Loaded trading config from {config_path}")

    try:
        config = TradingConfig.from_dict(data).apply_env()
    except (TypeError, ValueError, ArithmeticError) as e:
        raise ConfigurationException(f"Invalid configuration value: {e}") from e

    config.validate()
    return config

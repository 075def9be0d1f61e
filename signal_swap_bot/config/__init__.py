"""Config package"""
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from .trading_config import (
    TradingConfig,
    EndpointConfig,
    SwapPolicy,
    BroadcastPolicy,
    ConfirmationPolicy,
    SignalPolicy,
    ServerConfig,
    load_config,
    CONFIG_PATH_ENV,
)

# ============================================
# CREDENTIAL ENV NAMES
# ============================================
# The key itself is only ever read by TransactionSubmitter.from_env()
PRIVATE_KEY_ENV = "SOLANA_PRIVATE_KEY"

__all__ = [
    "TradingConfig",
    "EndpointConfig",
    "SwapPolicy",
    "BroadcastPolicy",
    "ConfirmationPolicy",
    "SignalPolicy",
    "ServerConfig",
    "load_config",
    "PRIVATE_KEY_ENV",
    "CONFIG_PATH_ENV",
]

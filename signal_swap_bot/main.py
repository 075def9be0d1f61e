import asyncio
import logging
import platform
import signal
import sys

import aiohttp
from solana.rpc.async_api import AsyncClient

from signal_swap_bot.config import TradingConfig, load_config
from signal_swap_bot.core.jupiter_client import JupiterClient
from signal_swap_bot.core.models import FeePolicy
from signal_swap_bot.core.trade_executor import TradeExecutor
from signal_swap_bot.core.transaction_history import TransactionHistoryService
from signal_swap_bot.core.tx_confirmer import TransactionConfirmer
from signal_swap_bot.core.tx_submitter import TransactionSubmitter
from signal_swap_bot.core.wallet import BalanceOracle
from signal_swap_bot.core.webhook_server import TradeSignalServer
from signal_swap_bot.exceptions import ConfigurationException
from signal_swap_bot.logger import setup_logging

logger = logging.getLogger(__name__)


def build_server(config: TradingConfig, session: aiohttp.ClientSession, client: AsyncClient) -> TradeSignalServer:
    """Wire every component around one HTTP session and one RPC client."""
    fee_policy = FeePolicy(
        max_lamports=config.swap.max_priority_fee_lamports,
        priority_level=config.swap.priority_level,
    )
    jupiter = JupiterClient(
        session,
        base_url=config.endpoints.jupiter_base_url,
        restrict_intermediate_tokens=config.swap.restrict_intermediate_tokens,
    )
    submitter = TransactionSubmitter.from_env(
        client,
        max_retries=config.broadcast.max_retries,
        skip_preflight=config.broadcast.skip_preflight,
    )
    executor = TradeExecutor(
        oracle=BalanceOracle(client),
        jupiter=jupiter,
        submitter=submitter,
        confirmer=TransactionConfirmer(
            client,
            poll_interval=config.confirmation.poll_interval_sec,
            max_attempts=config.confirmation.max_attempts,
        ),
        slippage_bps=config.swap.slippage_bps,
        fee_policy=fee_policy,
        native_reserve=config.signal.native_reserve_sol,
    )
    history = TransactionHistoryService(client, max_limit=config.server.history_max_limit)

    logger.info(f"🔑 Signer: {submitter.public_key}")
    return TradeSignalServer(
        executor,
        history,
        jupiter,
        fee_policy,
        host=config.server.host,
        port=config.server.port,
        auth_token=config.server.auth_token,
        history_default_limit=config.server.history_default_limit,
    )


async def main(config: TradingConfig):
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_shutdown(sig):
        """Handle shutdown signals."""
        logger.info(f"🛑 [SHUTDOWN] Received signal {sig}...")
        shutdown_event.set()

    # Add signal handlers (not supported on Windows)
    if platform.system() != "Windows":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: handle_shutdown(s))

    session = aiohttp.ClientSession()
    client = AsyncClient(config.endpoints.rpc_url)
    server = None

    try:
        server = build_server(config, session, client)
        await server.start()
        await shutdown_event.wait()
        logger.info("Initiating graceful shutdown...")
    finally:
        if server:
            await server.stop()
        await session.close()
        await client.close()
        logger.info("Shutdown complete")


def run():
    try:
        config = load_config()
    except ConfigurationException as e:
        print(f"🔥 Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config.server.log_level, config.server.log_dir)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.info("👋 Bot stopped by user.")
    except ConfigurationException as e:
        logger.error(f"🔥 Configuration error: {e}")
        sys.exit(2)


if __name__ == "__main__":
    run()

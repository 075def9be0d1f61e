"""
Trade Signal Webhook Server

HTTP front door for the bot:
- POST /trade-signal           {"indicator": "bullish"|"bearish"} -> swap
- GET  /transactions/history   ?address=...&limit=30 -> classified history
- POST /api/swap               {"quote": {...}, "userPublicKey": "..."} -> unsigned swap tx
- GET  /health

Legacy paths /tradingview-webhook and /api/solana/transactions are kept
as aliases for existing TradingView alerts and dashboards.
"""

import hmac
import logging
from typing import Optional

from aiohttp import web

from ..exceptions import BotException, ValidationException
from .jupiter_client import JupiterClient
from .models import FeePolicy
from .trade_executor import TradeExecutor
from .transaction_history import TransactionHistoryService

logger = logging.getLogger(__name__)


class TradeSignalServer:
    """
    aiohttp server wiring requests to the executor and history service.

    Each request runs in its own task; a trade waiting on confirmation
    does not hold up history or health requests.
    """

    def __init__(
        self,
        executor: TradeExecutor,
        history: TransactionHistoryService,
        jupiter: JupiterClient,
        fee_policy: FeePolicy,
        host: str = "0.0.0.0",
        port: int = 8080,
        auth_token: Optional[str] = None,
        history_default_limit: int = 30
    ):
        self.executor = executor
        self.history = history
        self.jupiter = jupiter
        self.fee_policy = fee_policy
        self.host = host
        self.port = port
        self.auth_token = auth_token
        self.history_default_limit = history_default_limit

        # Server state
        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.is_running = False

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/trade-signal", self._handle_trade_signal)
        app.router.add_post("/tradingview-webhook", self._handle_trade_signal)
        app.router.add_get("/transactions/history", self._handle_history)
        app.router.add_get("/api/solana/transactions", self._handle_history)
        app.router.add_post("/api/swap", self._handle_build_swap)
        app.router.add_get("/health", self._handle_health)
        return app

    async def start(self):
        """Start the HTTP server"""
        self.app = self.build_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()

        self.is_running = True
        logger.info(f"✅ Signal server started on http://{self.host}:{self.port}")

    async def stop(self):
        """Stop the HTTP server"""
        if self.runner:
            await self.runner.cleanup()
        self.is_running = False
        logger.info("🛑 Signal server stopped")

    @staticmethod
    def _error_response(exc: BotException) -> web.Response:
        return web.json_response(exc.to_response(), status=exc.http_status)

    def _authorized(self, request: web.Request) -> bool:
        if not self.auth_token:
            return True
        supplied = request.headers.get("Authorization", "").encode("utf-8", "surrogateescape")
        return hmac.compare_digest(supplied, f"Bearer {self.auth_token}".encode())

    @staticmethod
    async def _json_body(request: web.Request):
        try:
            return await request.json()
        except ValueError:
            # JSONDecodeError and UnicodeDecodeError
            raise ValidationException("Invalid JSON") from None

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint"""
        return web.json_response({
            "status": "ok",
            "signer": str(self.executor.submitter.public_key),
            "busy": self.executor.busy,
        })

    async def _handle_trade_signal(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            logger.warning("Unauthorized trade-signal request")
            return web.json_response({"error": "Unauthorized"}, status=401)

        try:
            body = await self._json_body(request)
            outcome = await self.executor.execute(body)
        except BotException as e:
            log = logger.warning if e.http_status < 500 else logger.error
            log(f"Trade signal rejected: {e}")
            return self._error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error handling trade signal: {e}")
            return web.json_response({"error": "Internal server error"}, status=500)

        return web.json_response({
            "message": "Transaction successful",
            "signature": outcome.signature,
        })

    async def _handle_history(self, request: web.Request) -> web.Response:
        address = request.query.get("address")
        limit = request.query.get("limit", self.history_default_limit)

        try:
            transactions = await self.history.get_history(address, limit)
        except BotException as e:
            logger.warning(f"History request failed: {e}")
            return self._error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error fetching history: {e}")
            return web.json_response({"error": "Internal server error"}, status=500)

        return web.json_response({"transactions": [tx.to_dict() for tx in transactions]})

    async def _handle_build_swap(self, request: web.Request) -> web.Response:
        """Build an unsigned swap for a client that signs with its own wallet."""
        try:
            body = await self._json_body(request)
            quote = body.get("quote") if isinstance(body, dict) else None
            user_public_key = body.get("userPublicKey") if isinstance(body, dict) else None
            if not isinstance(quote, dict) or not user_public_key:
                raise ValidationException("Missing quote or userPublicKey")

            swap_tx = await self.jupiter.build_swap_base64(quote, user_public_key, self.fee_policy)
        except BotException as e:
            logger.warning(f"Swap build request failed: {e}")
            return self._error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error building swap: {e}")
            return web.json_response({"error": "Internal server error"}, status=500)

        return web.json_response({"swapTransaction": swap_tx})

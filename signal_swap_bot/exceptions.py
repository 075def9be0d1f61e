"""
Custom exception classes for the signal swap bot.

Every failure surfaces as a typed exception carrying the HTTP status the
server answers with and any partial result (e.g. a signature) as context.
"""

from typing import Any, Dict


class BotException(Exception):
    """Base exception for all bot-related errors."""

    http_status = 500

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message

    def to_response(self) -> Dict[str, Any]:
        """Structured error body for the HTTP layer."""
        body = {"error": self.message}
        body.update({k: v for k, v in self.context.items() if v is not None})
        return body


class ValidationException(BotException):
    """Raised when request input is missing or malformed."""
    http_status = 400


class UnknownSignalException(ValidationException):
    """Raised when a signal indicator is neither bullish nor bearish."""
    pass


class InsufficientBalanceException(BotException):
    """Raised when the balance cannot cover a trade after the fee reserve."""
    http_status = 400


class UpstreamServiceException(BotException):
    """Raised when the swap aggregator fails."""
    pass


class QuoteUnavailableException(UpstreamServiceException):
    """Raised when no usable quote is returned."""
    pass


class SwapBuildFailedException(UpstreamServiceException):
    """Raised when the aggregator cannot build the swap transaction."""
    pass


class LedgerUnavailableException(BotException):
    """Raised when the RPC node cannot be reached or errors out."""
    pass


class BroadcastFailedException(BotException):
    """Raised when the node rejects the raw transaction."""
    pass


class ConfirmationTimedOutException(BotException):
    """
    Raised when the poll budget runs out before finality.

    The outcome is unresolved: the transaction may still land.
    """
    pass


class TransactionFailedException(BotException):
    """Raised when the transaction landed but failed on-chain."""
    pass


class ConfigurationException(BotException):
    """Raised when configuration is invalid."""
    pass

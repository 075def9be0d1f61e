"""
Structured logging configuration for the signal swap bot.

Console gets human-readable colored lines, files get JSON records.
"""

import json
import logging
import logging.handlers
import os
from datetime import datetime
from typing import Optional

TRADE_LOGGER_NAME = "trades"


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter for console output (human-readable).
    """

    COLOR_CODES = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, self.COLOR_CODES['RESET'])
        reset = self.COLOR_CODES['RESET']

        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')

        msg = f"{color}[{timestamp}] [{record.levelname:8s}]{reset} {record.getMessage()}"

        if hasattr(record, 'extra_data') and record.extra_data:
            context = " | ".join(f"{k}={v}" for k, v in record.extra_data.items())
            msg += f" ({context})"

        if record.exc_info:
            msg += f"\n{self.formatException(record.exc_info)}"

        return msg


def setup_logging(level: str = "INFO", log_dir: str = "logs", enable_console: bool = True, enable_file: bool = True):
    """
    Configure logging system with both file and console handlers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotating JSON log files
        enable_console: Enable console output
        enable_file: Enable file output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    root_logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(HumanReadableFormatter())
        console_handler.setLevel(logging.INFO)
        root_logger.addHandler(console_handler)

    if enable_file:
        os.makedirs(log_dir, exist_ok=True)

        main_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "bot.log"),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        main_handler.setFormatter(StructuredFormatter())
        main_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(main_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "errors.log"),
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3
        )
        error_handler.setFormatter(StructuredFormatter())
        error_handler.setLevel(logging.ERROR)
        root_logger.addHandler(error_handler)

        # Trade events only
        trade_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "trades.log"),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10
        )
        trade_handler.setFormatter(StructuredFormatter())
        trade_handler.addFilter(lambda record: getattr(record, 'extra_data', {}).get('trade_event', False))
        root_logger.addHandler(trade_handler)

    # Quiet noisy libraries
    for noisy in ("solana", "solders", "aiohttp.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


class TradeLogger:
    """
    Specialized logger for trade events.

    Records end up in trades.log when file logging is enabled.

    Usage:
        trade_logger = TradeLogger()
        trade_logger.log_signal("bullish")
        trade_logger.log_submitted(intent, signature="xyz...")
    """

    def __init__(self, name: str = TRADE_LOGGER_NAME):
        self.logger = logging.getLogger(name)

    def _event(self, event_type: str, level: int = logging.INFO, **data):
        payload = {
            'trade_event': True,
            'event_type': event_type,
            'timestamp': datetime.now().isoformat(),
        }
        payload.update(data)
        self.logger.log(level, event_type, extra={'extra_data': payload})

    def log_signal(self, indicator: str):
        """Log an accepted inbound signal"""
        self._event("SIGNAL", indicator=indicator)

    def log_submitted(self, intent, signature: str):
        """Log a broadcast swap"""
        self._event(
            "SWAP_SUBMITTED",
            from_mint=intent.from_mint,
            to_mint=intent.to_mint,
            amount_in=intent.amount_in,
            signature=signature,
        )

    def log_result(self, signature: str, status: str, attempts: int, error: Optional[str] = None):
        """Log the final confirmation status of a swap"""
        level = logging.INFO if status == "finalized" else logging.WARNING
        self._event(
            "SWAP_RESULT",
            level=level,
            signature=signature,
            status=status,
            attempts=attempts,
            error=error,
        )

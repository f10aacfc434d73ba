"""
Utility Module

Logging setup, error taxonomy and formatting helpers shared by the actions,
the orchestrator and the CLI.

Error kinds:
- INSUFFICIENT_BALANCE: funds below the operation minimum (retryable)
- TRANSIENT_NETWORK: estimation, submission or confirmation failures (retryable)
- PARTIAL_SEQUENCE: one swap in a sequence failed (isolated, logged)
- CONFIGURATION: missing credential or invalid settings (fatal, never retried)
"""

import os
import re
import logging
from enum import Enum
from typing import Optional

from web3 import Web3
from rich.logging import RichHandler
from rich.console import Console


# Global console for Rich output
console = Console()

LOGGER_NAME = "somnia_bot"


class ErrorKind(Enum):
    """Tagged failure categories used by the retry controller."""
    INSUFFICIENT_BALANCE = "insufficient_balance"
    TRANSIENT_NETWORK = "transient_network"
    PARTIAL_SEQUENCE = "partial_sequence"
    CONFIGURATION = "configuration"

    @property
    def retryable(self) -> bool:
        return self is not ErrorKind.CONFIGURATION


class BotError(Exception):
    """Base exception carrying an error kind."""
    kind = ErrorKind.TRANSIENT_NETWORK


class InsufficientBalanceError(BotError):
    """Available funds are below the operation's minimum."""
    kind = ErrorKind.INSUFFICIENT_BALANCE


class TransactionError(BotError):
    """Custom exception for transaction failures (reverted or unconfirmed)."""
    kind = ErrorKind.TRANSIENT_NETWORK


class PartialSequenceFailure(BotError):
    """A single swap inside a multi-swap sequence failed."""
    kind = ErrorKind.PARTIAL_SEQUENCE


class ConfigurationError(BotError):
    """Missing credential or invalid configuration."""
    kind = ErrorKind.CONFIGURATION


def classify_error(error: BaseException) -> ErrorKind:
    """
    Map an exception to its error kind.

    Anything that is not one of our own errors comes from the RPC client
    (connection errors, reverts, receipt timeouts) and counts as transient.
    """
    if isinstance(error, BotError):
        return error.kind
    return ErrorKind.TRANSIENT_NETWORK


class SecureLogger:
    """
    Logger that sanitizes sensitive data from log messages.

    Transaction hashes and addresses are left intact; only key/password
    assignments are redacted.
    """

    # Patterns to redact from logs
    SENSITIVE_PATTERNS = [
        (r'private[_-]?key["\']?\s*[:=]\s*\S+', 'private_key=[REDACTED]'),
        (r'password["\']?\s*[:=]\s*\S+', 'password=[REDACTED]'),
        (r'api[_-]?key["\']?\s*[:=]\s*\S+', 'api_key=[REDACTED]'),
    ]

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _sanitize(self, msg: str) -> str:
        """Remove sensitive data from log message."""
        if not isinstance(msg, str):
            msg = str(msg)

        sanitized = msg
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)
        return sanitized

    def debug(self, msg: str, *args, **kwargs):
        self._logger.debug(self._sanitize(msg), *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._logger.info(self._sanitize(msg), *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._logger.warning(self._sanitize(msg), *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._logger.error(self._sanitize(msg), *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self._logger.exception(self._sanitize(msg), *args, **kwargs)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = "./somnia_bot.log") -> SecureLogger:
    """
    Setup logging with both file and console output.

    Returns a SecureLogger that sanitizes sensitive data.
    """
    base = logging.getLogger(LOGGER_NAME)
    base.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers
    base.handlers = []

    # Rich console handler
    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True
    )
    rich_handler.setLevel(getattr(logging, log_level.upper()))
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    base.addHandler(rich_handler)

    # File handler for persistent logging
    if log_file:
        log_path = os.path.abspath(log_file)
        os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        base.addHandler(file_handler)

    return SecureLogger(base)


# Handlers are attached by setup_logging() from the CLI; until then records
# propagate to the root logger.
logger = SecureLogger(logging.getLogger(LOGGER_NAME))


# Formatting utilities

def format_address(address: str, length: int = 4) -> str:
    """Format address as 0x1234...abcd."""
    if len(address) <= length * 2 + 2:
        return address
    return f"{address[:length + 2]}...{address[-length:]}"


def format_units(amount: int, decimals: int = 18, precision: int = 6) -> str:
    """Format a raw integer amount with the given decimals."""
    value = amount / (10 ** decimals)
    return f"{value:.{precision}f}"


# Validation utilities

def validate_private_key(key: str) -> bool:
    """Validate private key format."""
    if not key:
        return False

    # Remove 0x prefix if present
    key_clean = key[2:] if key.startswith("0x") else key

    # Check length and hex format
    if len(key_clean) != 64:
        return False

    try:
        int(key_clean, 16)
        return True
    except ValueError:
        return False


def validate_address(address: str) -> bool:
    """Validate address format (any case; checksummed on use)."""
    if not address:
        return False
    return Web3.is_address(address.lower())

"""
Somnia Activity Bot

Randomized native transfers and PING/PONG ping-pong swaps on Somnia testnet.

Usage:
    from somnia_bot import BotConfig, BotContext, ChainClient, run_mode
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .config import BotConfig, ConfigManager
from .chain import ChainClient, TxOutcome
from .context import BotContext
from .orchestrator import Mode, RunSummary, run_mode
from .retry import retry_async
from .sender import send_tokens
from .swapper import ping_pong_swaps
from .utils import (
    logger,
    ErrorKind,
    BotError,
    ConfigurationError,
    InsufficientBalanceError,
    PartialSequenceFailure,
    TransactionError,
)

__all__ = [
    "BotConfig",
    "ConfigManager",
    "ChainClient",
    "TxOutcome",
    "BotContext",
    "Mode",
    "RunSummary",
    "run_mode",
    "retry_async",
    "send_tokens",
    "ping_pong_swaps",
    "logger",
    "ErrorKind",
    "BotError",
    "ConfigurationError",
    "InsufficientBalanceError",
    "PartialSequenceFailure",
    "TransactionError",
]

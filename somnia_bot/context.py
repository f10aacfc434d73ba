"""Run context threaded from the CLI through the orchestrator into each action."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from .chain import ChainClient
from .config import BotConfig


@dataclass
class BotContext:
    """Everything an action needs: settings, the account's chain client and a sleep coroutine."""
    config: BotConfig
    chain: ChainClient
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

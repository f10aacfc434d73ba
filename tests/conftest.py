"""
Shared fixtures: an in-memory chain client and a recording sleep, so the
actions and the orchestrator run without an RPC endpoint or real pauses.
"""

import pytest
from web3 import Web3

from somnia_bot.config import BotConfig
from somnia_bot.chain import TxOutcome
from somnia_bot.context import BotContext

WALLET = "0x1111111111111111111111111111111111111111"
ROUTER = "0x6AAC14f090A35EeA150705f72D90E4CDC4a49b2C"


class FakeChain:
    """Stands in for ChainClient; records every write."""

    def __init__(self, native: int = 0, tokens=None):
        self.address = WALLET
        self.router_address = ROUTER
        self.native = native
        self.tokens = {k.lower(): v for k, v in (tokens or {}).items()}
        self.allowances = {}
        self.sends = []
        self.approvals = []
        self.swaps = []
        self.swap_errors = []
        self._fresh = 0

    def new_recipient(self) -> str:
        self._fresh += 1
        return Web3.to_checksum_address(f"0x{self._fresh:040x}")

    async def get_balance(self) -> int:
        return self.native

    async def token_balance(self, token: str) -> int:
        return self.tokens.get(token.lower(), 0)

    async def allowance(self, token: str, spender: str) -> int:
        return self.allowances.get(token.lower(), 0)

    async def send_native(self, recipient: str, value: int) -> TxOutcome:
        self.sends.append((recipient, value))
        self.native -= value
        return TxOutcome(success=True, tx_hash="0x01")

    async def approve(self, token: str, spender: str, amount: int) -> TxOutcome:
        self.approvals.append((token.lower(), spender, amount))
        self.allowances[token.lower()] = amount
        return TxOutcome(success=True, tx_hash="0x02")

    async def exact_input_single(self, token_in: str, token_out: str, amount_in: int) -> TxOutcome:
        if self.swap_errors:
            raise self.swap_errors.pop(0)
        # Output tokens are not credited back
        self.tokens[token_in.lower()] -= amount_in
        self.allowances[token_in.lower()] -= amount_in
        self.swaps.append((token_in.lower(), token_out.lower(), amount_in))
        return TxOutcome(success=True, tx_hash="0x03")


class SleepRecorder:
    """Async sleep that returns immediately and remembers what it was asked for."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def config():
    return BotConfig(log_file="")


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def ctx(config, chain, sleeper):
    return BotContext(config=config, chain=chain, sleep=sleeper)


def ether(amount: str) -> int:
    return Web3.to_wei(amount, 'ether')


def tokens(amount: int) -> int:
    return amount * 10 ** 18

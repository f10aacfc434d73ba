"""
Action Orchestrator

Runs the send or swap action in a loop, or alternates between them at random
based on which one the current balances allow. Every action call goes through
the retry controller, so a failing action costs at most ``config.attempts``
tries before the loop moves on. The balance checks ahead of each iteration
are retried the same way; if they still fail the run stops with a
``stop_reason``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from web3 import Web3

from .context import BotContext
from .randomizer import Randomizer
from .retry import retry_async
from .sender import send_tokens
from .swapper import ping_pong_swaps
from .utils import console, logger

T = TypeVar("T")


class Mode(Enum):
    SEND = "random"
    SWAP = "ping"
    COMBINED = "both"


ACTIONS = {
    "send": send_tokens,
    "swap": ping_pong_swaps,
}

ACTION_TITLES = {
    "send": "Token Sender",
    "swap": "Ping Pong Swaps",
}


@dataclass
class RunSummary:
    """Per-action tallies for the end-of-run table."""
    mode: Mode
    iterations: int = 0
    results: Dict[str, List[Optional[bool]]] = field(default_factory=dict)
    stop_reason: Optional[str] = None

    def record(self, action: str, result: Optional[bool]):
        self.iterations += 1
        self.results.setdefault(action, []).append(result)

    def successes(self, action: str) -> int:
        return sum(1 for r in self.results.get(action, []) if r)


async def run_action(ctx: BotContext, action: str) -> Optional[bool]:
    """Run one action through the retry controller; None or False means it failed."""
    logger.info(f"Starting {ACTION_TITLES[action]}")
    result = await retry_async(lambda: ACTIONS[action](ctx), attempts=ctx.config.attempts, sleep=ctx.sleep)
    logger.info(f"{ACTION_TITLES[action]} result: {result}")
    return result


async def native_balance(ctx: BotContext) -> Decimal:
    return Web3.from_wei(await ctx.chain.get_balance(), 'ether')


def is_sufficient(ctx: BotContext, balance: Decimal) -> bool:
    return balance >= Decimal(str(ctx.config.minimum_balance))


async def has_tokens_to_swap(ctx: BotContext) -> bool:
    ping_balance = await ctx.chain.token_balance(ctx.config.ping_token)
    pong_balance = await ctx.chain.token_balance(ctx.config.pong_token)
    return ping_balance > 0 or pong_balance > 0


async def checked(ctx: BotContext, check: Callable[[BotContext], Awaitable[T]]) -> Optional[T]:
    """Run a pre-check read through the retry controller; None once every attempt failed."""
    return await retry_async(lambda: check(ctx), attempts=ctx.config.attempts, sleep=ctx.sleep)


async def _loop_pause(ctx: BotContext, what: str):
    pause = Randomizer.random_attempt_pause(ctx.config.pause_between_attempts)
    logger.info(f"Pausing {pause}s before next {what}")
    await ctx.sleep(pause)


async def run_send_loop(ctx: BotContext, loop_count: int) -> RunSummary:
    """
    Repeat the send action ``loop_count`` times (0 = until stopped).

    Stops early once the native balance drops below ``minimum_balance``.
    """
    summary = RunSummary(Mode.SEND)
    label = "unlimited" if loop_count == 0 else str(loop_count)
    console.rule(f"[bold magenta]{ctx.config.native_symbol} Token Sender - {label} loops")
    logger.info("Press Ctrl+C to stop")

    current = 0
    while loop_count == 0 or current < loop_count:
        current += 1
        logger.info(f"Starting send loop {current}")

        balance = await checked(ctx, native_balance)
        if balance is None:
            logger.error("Could not read balance, stopping")
            summary.stop_reason = "balance check failed"
            break
        if not is_sufficient(ctx, balance):
            symbol = ctx.config.native_symbol
            logger.error(
                f"Insufficient balance ({balance:.6f} {symbol} < {ctx.config.minimum_balance} {symbol})"
            )
            summary.stop_reason = "insufficient balance"
            break

        summary.record("send", await run_action(ctx, "send"))

        if loop_count == 0 or current < loop_count:
            await _loop_pause(ctx, "loop")

    console.rule(f"[bold magenta]{ctx.config.native_symbol} Token Sender Stopped")
    return summary


async def run_swap_loop(ctx: BotContext, loop_count: int) -> RunSummary:
    """Repeat the swap action ``loop_count`` times (0 = until stopped)."""
    summary = RunSummary(Mode.SWAP)
    label = "unlimited" if loop_count == 0 else str(loop_count)
    console.rule(f"[bold magenta]Starting {label} Swap Loops")

    current = 0
    while loop_count == 0 or current < loop_count:
        current += 1
        logger.info(f"Starting swap loop {current}" + (f"/{loop_count}" if loop_count else ""))

        summary.record("swap", await run_action(ctx, "swap"))

        if loop_count == 0 or current < loop_count:
            await _loop_pause(ctx, "loop")

    console.rule("[bold magenta]All Swap Loops Completed")
    return summary


async def possible_actions(ctx: BotContext) -> List[str]:
    """Actions the current balances allow, in a fixed order."""
    actions = []
    if is_sufficient(ctx, await native_balance(ctx)):
        actions.append("send")
    if await has_tokens_to_swap(ctx):
        actions.append("swap")
    return actions


async def run_combined(ctx: BotContext, iterations: int) -> RunSummary:
    """
    Run ``iterations`` randomly chosen actions.

    Before each iteration the balances decide which actions are possible;
    with none possible the run ends without selecting anything.
    """
    summary = RunSummary(Mode.COMBINED)
    console.rule(f"[bold magenta]Combined Random Mode - {iterations} Iterations")

    for i in range(iterations):
        actions = await checked(ctx, possible_actions)
        if actions is None:
            logger.error("Could not read balances, stopping")
            summary.stop_reason = "balance check failed"
            break
        if not actions:
            logger.error(
                f"No actions possible: insufficient {ctx.config.native_symbol} and no PING/PONG tokens"
            )
            summary.stop_reason = "no actions possible"
            break

        action = Randomizer.random_choice(actions)
        logger.info(f"Iteration {i + 1}/{iterations}: Running {ACTION_TITLES[action]}")
        summary.record(action, await run_action(ctx, action))

        if i < iterations - 1:
            await _loop_pause(ctx, "iteration")

    console.rule("[bold magenta]Combined Random Mode Completed")
    return summary


async def run_mode(ctx: BotContext, mode: Mode, count: int) -> RunSummary:
    """Dispatch to the loop for ``mode``."""
    if mode is Mode.SEND:
        return await run_send_loop(ctx, count)
    if mode is Mode.SWAP:
        return await run_swap_loop(ctx, count)
    return await run_combined(ctx, count)

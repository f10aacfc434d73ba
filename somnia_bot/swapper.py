"""
Token Swap Action

Ping-pong swaps between the PING and PONG tokens through the router.
The input side is chosen from live balances before every swap: a fair coin
when both tokens are held, otherwise whichever token is left.
"""

from dataclasses import dataclass
from typing import Optional

from .context import BotContext
from .randomizer import Randomizer
from .utils import PartialSequenceFailure, console, format_address, format_units, logger


@dataclass
class SwapDirection:
    token_in: str
    token_out: str
    name_in: str
    name_out: str
    balance: int


def choose_direction(ctx: BotContext, ping_balance: int, pong_balance: int) -> Optional[SwapDirection]:
    """Pick the input token from current balances; None when both are empty."""
    config = ctx.config
    ping = SwapDirection(config.ping_token, config.pong_token, "PING", "PONG", ping_balance)
    pong = SwapDirection(config.pong_token, config.ping_token, "PONG", "PING", pong_balance)

    if ping_balance > 0 and pong_balance > 0:
        return ping if Randomizer.coin_flip() else pong
    if ping_balance > 0:
        return ping
    if pong_balance > 0:
        return pong
    return None


async def ensure_allowance(ctx: BotContext, direction: SwapDirection, amount: int, display_amount: int):
    """Approve exactly ``amount`` for the router when the current allowance is short."""
    chain = ctx.chain
    current = await chain.allowance(direction.token_in, chain.router_address)
    if current >= amount:
        logger.info(f"No approval needed for {direction.name_in}")
        return

    logger.info(f"Approving {display_amount} {direction.name_in} for router")
    await chain.approve(direction.token_in, chain.router_address, amount)
    logger.info(f"Approved {display_amount} {direction.name_in}")


async def ping_pong_swaps(ctx: BotContext) -> bool:
    """
    Run one randomized sequence of PING/PONG swaps.

    A failed swap is logged and the sequence moves on; approval and balance
    read errors propagate to the caller's retry wrapper.

    Returns:
        True if at least one swap in the sequence was confirmed
    """
    config = ctx.config
    chain = ctx.chain
    decimals = config.token_decimals
    console.rule("[bold magenta]Ping Pong Swap Started")

    ping_balance = await chain.token_balance(config.ping_token)
    pong_balance = await chain.token_balance(config.pong_token)
    logger.info(
        f"Balance: {format_units(ping_balance, decimals)} PING, "
        f"{format_units(pong_balance, decimals)} PONG at {format_address(chain.address)}"
    )

    if ping_balance == 0 and pong_balance == 0:
        logger.warning("No PING or PONG tokens to swap")
        return False

    num_swaps = Randomizer.random_int(config.swap_min_txs, config.swap_max_txs)
    logger.info(f"Planning {num_swaps} swaps")

    success_count = 0
    for i in range(num_swaps):
        if i > 0:
            ping_balance = await chain.token_balance(config.ping_token)
            pong_balance = await chain.token_balance(config.pong_token)
            logger.info(
                f"Balance updated: {format_units(ping_balance, decimals)} PING, "
                f"{format_units(pong_balance, decimals)} PONG"
            )

        direction = choose_direction(ctx, ping_balance, pong_balance)
        if direction is None:
            logger.warning("No tokens left to swap. Ending sequence.")
            break

        logger.info(f"Swap {i + 1}/{num_swaps}: {direction.name_in} to {direction.name_out}")

        whole_amount = Randomizer.random_int(config.swap_min_amount, config.swap_max_amount)
        amount = whole_amount * 10 ** decimals
        if direction.balance < amount:
            logger.warning(
                f"Insufficient {direction.name_in} balance "
                f"({format_units(direction.balance, decimals)} < {whole_amount})"
            )
            continue

        logger.info(f"Swapping {whole_amount} {direction.name_in} to {direction.name_out}")
        await ensure_allowance(ctx, direction, amount, whole_amount)

        try:
            await chain.exact_input_single(direction.token_in, direction.token_out, amount)
            success_count += 1
        except Exception as e:
            failure = PartialSequenceFailure(f"Swap {i + 1}/{num_swaps} failed: {e}")
            logger.error(str(failure))
            continue

        if i < num_swaps - 1:
            pause = Randomizer.random_pause(config.pause_between_actions)
            logger.info(f"Pausing {pause:.1f}s before next swap")
            await ctx.sleep(pause)

    console.rule("[bold magenta]Ping Pong Swap Completed")
    logger.info(f"{success_count}/{num_swaps} swaps confirmed")
    return success_count > 0

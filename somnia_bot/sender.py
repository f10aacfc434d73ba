"""
Native Transfer Action

Sends a random number of small native-token transfers, each to either a
developer wallet (with ``dev_chance`` percent probability) or a freshly
generated address.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple

from web3 import Web3

from .context import BotContext
from .randomizer import Randomizer
from .utils import InsufficientBalanceError, console, format_address, format_units, logger

# Share of the drawn amount actually sent; the rest stays behind for gas.
SEND_SHARE_PERCENT = 95


def round_amount(amount) -> Decimal:
    """Round a drawn amount to 4 decimals, halves away from zero."""
    return Decimal(str(amount)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def haircut_value(amount) -> int:
    """Wei value sent for a drawn amount: 95% of the amount rounded to 4 decimals."""
    return Web3.to_wei(round_amount(amount), 'ether') * SEND_SHARE_PERCENT // 100


def pick_recipient(ctx: BotContext) -> Tuple[str, bool]:
    """Dev wallet with dev_chance probability, otherwise a throwaway address."""
    if Randomizer.random_percent() <= ctx.config.dev_chance:
        dev = Randomizer.random_choice(ctx.config.dev_recipients)
        return Web3.to_checksum_address(dev.lower()), True
    return ctx.chain.new_recipient(), False


async def send_once(ctx: BotContext, recipient: str) -> bool:
    """
    Send one transfer. On any failure, pause and re-raise so the outer
    retry controller decides what happens next.
    """
    config = ctx.config
    symbol = config.native_symbol
    try:
        balance = await ctx.chain.get_balance()
        balance_ether = Web3.from_wei(balance, 'ether')
        if balance_ether < Decimal(str(config.send_min_amount)):
            raise InsufficientBalanceError(
                f"Insufficient balance ({balance_ether:.6f} {symbol} < {config.send_min_amount} {symbol})"
            )

        amount = round_amount(Randomizer.random_float(config.send_min_amount, config.send_max_amount))
        value = haircut_value(amount)
        logger.info(f"Sending {amount} {symbol} to {format_address(recipient)}")

        await ctx.chain.send_native(recipient, value)
        return True
    except Exception as e:
        pause = Randomizer.random_attempt_pause(config.pause_between_attempts)
        logger.error(f"Send failed: {e}. Retrying in {pause}s")
        await ctx.sleep(pause)
        raise


async def send_tokens(ctx: BotContext) -> bool:
    """
    Run one randomized batch of native transfers.

    Returns:
        False if the wallet holds no native balance, otherwise True once the
        last transfer of the batch has been confirmed
    """
    config = ctx.config
    symbol = config.native_symbol
    console.rule(f"[bold magenta]{symbol} Token Sender Started")

    balance = await ctx.chain.get_balance()
    logger.info(
        f"Balance: {format_units(balance)} {symbol} at {format_address(ctx.chain.address)}"
    )
    if balance == 0:
        logger.warning(f"No {symbol} balance to send")
        return False

    num_transactions = Randomizer.random_int(config.send_min_txs, config.send_max_txs)
    logger.info(f"Planning {num_transactions} {symbol} transactions")

    result = True
    for i in range(num_transactions):
        recipient, is_dev = pick_recipient(ctx)
        kind = "dev" if is_dev else "random"
        logger.info(f"Tx {i + 1}/{num_transactions}: Sending to {kind} wallet {format_address(recipient)}")

        result = await send_once(ctx, recipient)

        if i < num_transactions - 1:
            pause = Randomizer.random_pause(config.pause_between_actions)
            logger.info(f"Pausing {pause:.1f}s before next transaction")
            await ctx.sleep(pause)

    console.rule(f"[bold magenta]{symbol} Token Sender Completed")
    return result

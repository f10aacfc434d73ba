#!/usr/bin/env python3
"""
Somnia Activity Bot CLI
=======================
Interactive entry point: pick a mode (token sender, ping-pong swaps or a
random mix of both), pick a loop count, and let the orchestrator run.

Usage:
    somnia-bot                      # same as "run"
    somnia-bot run --mode combined --count 10
    somnia-bot setup                # store an encrypted private key
    somnia-bot balance
"""

import sys
import asyncio
import getpass
import argparse
from pathlib import Path
from typing import Optional

from rich.panel import Panel
from rich.table import Table
from rich.prompt import Prompt, IntPrompt
from rich import box

from .chain import ChainClient
from .config import ConfigManager
from .context import BotContext
from .orchestrator import Mode, RunSummary, ACTION_TITLES, run_mode
from .utils import ConfigurationError, console, format_units, logger, setup_logging
from .wallet import SecureKeyManager, load_private_key

MODE_CHOICES = {
    "send": Mode.SEND,
    "swap": Mode.SWAP,
    "combined": Mode.COMBINED,
}

MENU = [
    ("1", "send", "Token Sender"),
    ("2", "swap", "Ping Pong Swaps"),
    ("3", "combined", "Combined Random (Send + Swap)"),
]


def prompt_password() -> str:
    console.print("[yellow]Enter wallet password:[/yellow]")
    return getpass.getpass("> ")


def prompt_mode() -> Mode:
    """Show the mode menu and return the selection."""
    table = Table(title="Choose bot mode", box=box.ROUNDED, show_header=False)
    for key, _, title in MENU:
        table.add_row(f"[cyan]{key}[/cyan]", title)
    console.print(table)

    choice = Prompt.ask("Mode", choices=[key for key, _, _ in MENU], default="1")
    name = next(name for key, name, _ in MENU if key == choice)
    return MODE_CHOICES[name]


def prompt_count(mode: Mode) -> int:
    """Ask for a loop count; 0 means unlimited except in combined mode."""
    if mode is Mode.COMBINED:
        message, minimum = "Enter number of random actions (send or swap)", 1
    else:
        message, minimum = f"Enter {mode_title(mode)} loop count (0 for unlimited)", 0

    while True:
        count = IntPrompt.ask(message)
        if count >= minimum:
            return count
        console.print(f"[red]Please enter a number >= {minimum}[/red]")


def mode_title(mode: Mode) -> str:
    return {Mode.SEND: "Token Sender", Mode.SWAP: "Ping Pong Swaps"}.get(mode, "Combined Random")


def load_context(config_path: Path) -> BotContext:
    """Load config and key, and connect the chain client."""
    config = ConfigManager(config_path).load()
    setup_logging(config.log_level, config.log_file)

    private_key = load_private_key(config.key_file, password_prompt=prompt_password)
    chain = ChainClient.connect(config, private_key)
    return BotContext(config=config, chain=chain)


def show_summary(summary: RunSummary):
    """Display the per-action results of a run."""
    table = Table(title="Run Summary", box=box.ROUNDED)
    table.add_column("Action", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")

    for action, results in summary.results.items():
        succeeded = summary.successes(action)
        table.add_row(ACTION_TITLES[action], str(len(results)), str(succeeded), str(len(results) - succeeded))

    console.print(table)
    if summary.stop_reason:
        console.print(f"[yellow]Stopped early: {summary.stop_reason}[/yellow]")


def run_command(config_path: Path, mode_name: Optional[str] = None, count: Optional[int] = None):
    """Run the bot."""
    ctx = load_context(config_path)

    console.print(Panel.fit(
        "[bold magenta]Somnia Activity Bot[/bold magenta]\n"
        f"[dim]Chain {ctx.config.chain_id} | {ctx.chain.address}[/dim]",
        box=box.DOUBLE
    ))

    mode = MODE_CHOICES[mode_name] if mode_name else prompt_mode()
    if count is None:
        count = prompt_count(mode)
    elif count < (1 if mode is Mode.COMBINED else 0):
        raise ConfigurationError(f"Invalid count {count} for {mode_title(mode)} mode")

    summary = asyncio.run(run_mode(ctx, mode, count))
    show_summary(summary)
    console.print("[bold green]Bot execution completed[/bold green]")


def setup_command(config_path: Path):
    """Encrypt a private key into the keystore and write a default config if missing."""
    console.print(Panel.fit(
        "[bold cyan]Somnia Activity Bot - Setup[/bold cyan]\n"
        "[dim]Encrypted key import[/dim]",
        box=box.DOUBLE
    ))

    manager = ConfigManager(config_path)
    config = manager.load()
    if not config_path.exists():
        manager.save(config)
        console.print(f"[green]✓ Default config created ({config_path})[/green]")

    private_key = getpass.getpass("Private key: ").strip()

    console.print("[yellow]Create encryption password (min 8 characters):[/yellow]")
    password = getpass.getpass("> ")
    if len(password) < 8:
        raise ConfigurationError("Password must be at least 8 characters")

    console.print("[yellow]Confirm password:[/yellow]")
    if getpass.getpass("> ") != password:
        raise ConfigurationError("Passwords don't match")

    SecureKeyManager(config.key_file).encrypt_and_save(private_key, password)
    console.print("[green]✓ Wallet encrypted and saved![/green]")


async def _balances(ctx: BotContext):
    native = await ctx.chain.get_balance()
    ping = await ctx.chain.token_balance(ctx.config.ping_token)
    pong = await ctx.chain.token_balance(ctx.config.pong_token)
    return native, ping, pong


def balance_command(config_path: Path):
    """Check wallet balances."""
    ctx = load_context(config_path)
    native, ping, pong = asyncio.run(_balances(ctx))
    decimals = ctx.config.token_decimals

    console.print("\n[bold cyan]Wallet Balances[/bold cyan]")
    console.print(f"[dim]Address: {ctx.chain.address}[/dim]\n")

    table = Table(box=box.ROUNDED)
    table.add_column("Asset", style="cyan")
    table.add_column("Balance", style="green")
    table.add_row(ctx.config.native_symbol, format_units(native))
    table.add_row("PING", format_units(ping, decimals))
    table.add_row("PONG", format_units(pong, decimals))

    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Randomized send/swap activity bot for Somnia")
    parser.add_argument("--config", type=Path, default=Path("./bot_config.yaml"),
                        help="YAML config file (default: ./bot_config.yaml)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Start the bot (default)")
    run_parser.add_argument("--mode", choices=sorted(MODE_CHOICES), help="Skip the mode menu")
    run_parser.add_argument("--count", type=int,
                            help="Loop count (0 = unlimited for send/swap) or combined iterations")

    subparsers.add_parser("setup", help="Store an encrypted private key")
    subparsers.add_parser("balance", help="Check wallet balances")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if args.command == "setup":
            setup_command(args.config)
        elif args.command == "balance":
            balance_command(args.config)
        else:
            run_command(args.config, getattr(args, "mode", None), getattr(args, "count", None))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        console.print(f"[red]✗ {e}[/red]")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Bot stopped by user[/yellow]")
        return 130
    except Exception as e:
        logger.exception(f"Bot error: {e}")
        console.print(f"[red]✗ Bot error: {e}[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

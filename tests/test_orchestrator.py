"""Tests for the mode loops and the combined random mode."""

from unittest.mock import patch

import pytest

from conftest import ether, tokens
from somnia_bot import orchestrator
from somnia_bot.orchestrator import Mode, possible_actions, run_action, run_mode
from somnia_bot.randomizer import Randomizer
from somnia_bot.utils import TransactionError


class Recorder:
    """Replacement action that records calls and returns canned results."""

    def __init__(self, results=(True,)):
        self.results = list(results)
        self.calls = 0

    async def __call__(self, ctx):
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def send_action(monkeypatch):
    action = Recorder()
    monkeypatch.setitem(orchestrator.ACTIONS, "send", action)
    return action


@pytest.fixture
def swap_action(monkeypatch):
    action = Recorder()
    monkeypatch.setitem(orchestrator.ACTIONS, "swap", action)
    return action


class TestRunAction:

    @pytest.mark.asyncio
    async def test_retries_until_success(self, ctx, monkeypatch):
        action = Recorder([TransactionError("timeout"), True])
        monkeypatch.setitem(orchestrator.ACTIONS, "send", action)

        assert await run_action(ctx, "send") is True
        assert action.calls == 2

    @pytest.mark.asyncio
    async def test_exhausted_attempts_return_none(self, ctx, monkeypatch, sleeper):
        action = Recorder([TransactionError("timeout")])
        monkeypatch.setitem(orchestrator.ACTIONS, "swap", action)
        ctx.config.attempts = 3

        assert await run_action(ctx, "swap") is None
        assert action.calls == 3
        assert sleeper.calls == [1, 2]


class TestPossibleActions:

    @pytest.mark.asyncio
    async def test_nothing_possible(self, ctx):
        assert await possible_actions(ctx) == []

    @pytest.mark.asyncio
    async def test_send_needs_minimum_balance(self, ctx, chain):
        chain.native = ether("0.00005")
        assert await possible_actions(ctx) == []
        chain.native = ether("0.0001")
        assert await possible_actions(ctx) == ["send"]

    @pytest.mark.asyncio
    async def test_both_possible(self, ctx, chain):
        chain.native = ether("1")
        chain.tokens = {ctx.config.pong_token.lower(): tokens(1)}
        assert await possible_actions(ctx) == ["send", "swap"]


def flaky_balance(chain, failing_calls):
    """Replace get_balance with one that raises on the given call numbers (None = always)."""
    calls = []

    async def get_balance():
        calls.append(1)
        if failing_calls is None or len(calls) in failing_calls:
            raise ConnectionError("rpc hiccup")
        return chain.native

    chain.get_balance = get_balance
    return calls


class TestBalanceChecks:
    """Balance reads ahead of each iteration go through the retry controller."""

    @pytest.mark.asyncio
    async def test_combined_recovers_from_transient_error(self, ctx, chain, send_action, swap_action):
        chain.native = ether("1")
        chain.tokens = {ctx.config.ping_token.lower(): tokens(500)}
        flaky_balance(chain, {2})

        summary = await run_mode(ctx, Mode.COMBINED, 3)

        assert summary.iterations == 3
        assert summary.stop_reason is None

    @pytest.mark.asyncio
    async def test_combined_stops_when_checks_keep_failing(self, ctx, chain, send_action, swap_action):
        flaky_balance(chain, None)

        summary = await run_mode(ctx, Mode.COMBINED, 3)

        assert summary.iterations == 0
        assert summary.stop_reason == "balance check failed"

    @pytest.mark.asyncio
    async def test_send_loop_recovers_from_transient_error(self, ctx, chain, send_action):
        chain.native = ether("1")
        flaky_balance(chain, {1})

        summary = await run_mode(ctx, Mode.SEND, 2)

        assert send_action.calls == 2
        assert summary.stop_reason is None

    @pytest.mark.asyncio
    async def test_send_loop_stops_when_checks_keep_failing(self, ctx, chain, send_action, sleeper):
        calls = flaky_balance(chain, None)

        summary = await run_mode(ctx, Mode.SEND, 2)

        assert send_action.calls == 0
        assert len(calls) == ctx.config.attempts
        assert sleeper.calls == [1, 2]
        assert summary.stop_reason == "balance check failed"


class TestSendLoop:

    @pytest.mark.asyncio
    async def test_runs_requested_loops(self, ctx, chain, send_action, sleeper):
        chain.native = ether("1")
        summary = await run_mode(ctx, Mode.SEND, 3)

        assert send_action.calls == 3
        assert summary.successes("send") == 3
        # Pauses only between loops
        assert len(sleeper.calls) == 2
        assert all(5 <= s <= 10 for s in sleeper.calls)

    @pytest.mark.asyncio
    async def test_stops_on_low_balance(self, ctx, chain, send_action):
        chain.native = ether("0.00001")
        summary = await run_mode(ctx, Mode.SEND, 5)

        assert send_action.calls == 0
        assert summary.stop_reason == "insufficient balance"

    @pytest.mark.asyncio
    async def test_unlimited_runs_until_balance_drops(self, ctx, chain, monkeypatch):
        chain.native = ether("0.0003")

        async def spend(ctx):
            ctx.chain.native -= ether("0.0001")
            return True

        monkeypatch.setitem(orchestrator.ACTIONS, "send", spend)
        summary = await run_mode(ctx, Mode.SEND, 0)

        assert summary.iterations == 3
        assert summary.stop_reason == "insufficient balance"


class TestSwapLoop:

    @pytest.mark.asyncio
    async def test_runs_requested_loops(self, ctx, swap_action):
        summary = await run_mode(ctx, Mode.SWAP, 2)
        assert swap_action.calls == 2
        assert summary.iterations == 2

    @pytest.mark.asyncio
    async def test_failed_loop_counts_and_continues(self, ctx, monkeypatch):
        action = Recorder([False, True])
        monkeypatch.setitem(orchestrator.ACTIONS, "swap", action)

        summary = await run_mode(ctx, Mode.SWAP, 2)
        assert summary.results["swap"] == [False, True]
        assert summary.successes("swap") == 1


class TestCombined:
    """Random selection between the actions the balances allow."""

    @pytest.mark.asyncio
    async def test_nothing_possible_selects_nothing(self, ctx, send_action, swap_action):
        with patch.object(Randomizer, "random_choice") as choice:
            summary = await run_mode(ctx, Mode.COMBINED, 5)

        choice.assert_not_called()
        assert send_action.calls == 0
        assert swap_action.calls == 0
        assert summary.iterations == 0
        assert summary.stop_reason == "no actions possible"

    @pytest.mark.asyncio
    async def test_only_swap_possible(self, ctx, chain, send_action, swap_action):
        chain.tokens = {ctx.config.ping_token.lower(): tokens(500)}
        summary = await run_mode(ctx, Mode.COMBINED, 4)

        assert swap_action.calls == 4
        assert send_action.calls == 0
        assert summary.iterations == 4

    @pytest.mark.asyncio
    async def test_mixes_actions(self, ctx, chain, send_action, swap_action, sleeper):
        chain.native = ether("1")
        chain.tokens = {ctx.config.ping_token.lower(): tokens(500)}

        with patch.object(Randomizer, "random_choice", side_effect=["send", "swap", "send"]):
            summary = await run_mode(ctx, Mode.COMBINED, 3)

        assert send_action.calls == 2
        assert swap_action.calls == 1
        assert summary.iterations == 3
        assert len(sleeper.calls) == 2

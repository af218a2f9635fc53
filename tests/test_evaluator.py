"""Tests for autotrader.strategy.evaluator — SNIPER / CONDITIONAL / SPOT outcomes."""

import pytest

from autotrader.config import Config
from autotrader.errors import (
    BroadcastError,
    ConfirmationTimeoutError,
    MarketDataError,
    QuoteError,
    WalletError,
)
from autotrader.market.filters import filter_pairs
from autotrader.market.models import Candle, CandidatePair
from autotrader.strategy.evaluator import StrategyEvaluator
from autotrader.strategy.models import Action, Strategy
from autotrader.swap.models import SwapResult
from autotrader.swap.tokens import NATIVE_MINT, TOKEN_MINTS


def _make_config() -> Config:
    return Config(
        birdeye_api_key="test-key",
        encryption_key="0123456789abcdef" * 4,
        solana_rpc_url="https://rpc.test",
        jupiter_api_url="https://jup.test",
        birdeye_api_url="https://birdeye.test",
        db_path=":memory:",
        log_level="WARNING",
        poll_interval_seconds=15,
        market_cache_ttl_seconds=30.0,
        confirm_max_polls=30,
        confirm_poll_interval=0.0,
        api_port=8080,
    )


def _pair(address="PairA", symbol="PEPE", name="Pepe Coin", age=10.0, liquidity=12_000.0):
    return CandidatePair(
        address=address,
        symbol=symbol,
        name=name,
        price=0.001,
        liquidity=liquidity,
        volume_24h=5_000.0,
        market_cap=100_000.0,
        listed_at=1_700_000_000_000,
        age_minutes=age,
    )


def _candles(closes):
    return [
        Candle(timestamp=i * 3_600_000, open=c, high=c, low=c, close=c, volume=1.0)
        for i, c in enumerate(closes)
    ]


class FakeMarket:
    def __init__(self, pairs=None, closes=None, error=None):
        self.pairs = pairs or []
        self.closes = closes or []
        self.error = error
        self.calls = []

    async def fetch_filtered_new_pairs(self, criteria):
        self.calls.append(("pairs", criteria))
        if self.error:
            raise self.error
        return filter_pairs(self.pairs, criteria)

    async def fetch_candles(self, token, timeframe, limit):
        self.calls.append(("candles", token, timeframe, limit))
        if self.error:
            raise self.error
        return _candles(self.closes)


class FakeSwap:
    def __init__(self, error=None, output_amount=5_000_000, decimals=6):
        self.error = error
        self.output_amount = output_amount
        self.decimals = decimals
        self.calls = []
        self.keys = []

    async def execute(self, encrypted_key, input_mint, output_mint, amount, slippage_bps, timeout=None):
        self.keys.append(encrypted_key)
        self.calls.append((input_mint, output_mint, amount, slippage_bps))
        if self.error:
            raise self.error
        return SwapResult("Sig111", int(amount * 1e9), self.output_amount, 0.1)

    async def resolve_decimals(self, mint):
        if isinstance(self.decimals, Exception):
            raise self.decimals
        return 9 if mint == NATIVE_MINT else self.decimals


class FakeTradeRepo:
    def __init__(self, error=None):
        self.error = error
        self.recorded = []

    def record_trade(self, trade, deactivate_strategy_id=None):
        if self.error:
            raise self.error
        self.recorded.append((trade, deactivate_strategy_id))


def _strategy(type_, config, id_=1):
    return Strategy(id=id_, user_id="user-1", name=f"{type_.lower()} #{id_}", type=type_, config=config)


def _evaluator(market=None, swap=None, repo=None):
    return StrategyEvaluator(
        _make_config(), market or FakeMarket(), swap or FakeSwap(), repo or FakeTradeRepo(),
    )


SNIPER_CONFIG = {"maxAgeMinutes": 15, "minLiquidity": 10_000, "amount": 0.1}
SEALED_KEY = "sealed-key-blob"


# ── SNIPER ───────────────────────────────────────────────────────────────


class TestSniper:
    @pytest.mark.asyncio
    async def test_buys_matching_pair(self):
        market = FakeMarket(pairs=[_pair()])
        swap = FakeSwap()
        repo = FakeTradeRepo()
        ev = _evaluator(market, swap, repo)

        result = await ev.evaluate(_strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set())

        assert result.action is Action.TRADE_EXECUTED
        assert result.trade.input_amount == 0.1
        assert result.trade.token_address == "PairA"
        assert result.trade.output_amount == pytest.approx(5.0)
        assert result.trade.explorer_url == "https://solscan.io/tx/Sig111"
        assert swap.calls == [(NATIVE_MINT, "PairA", 0.1, 300)]
        assert swap.keys == [SEALED_KEY]
        trade, deactivate = repo.recorded[0]
        assert trade.direction == "BUY"
        assert trade.input_token == NATIVE_MINT
        assert trade.output_token == "PairA"
        assert trade.strategy_id == 1
        assert deactivate is None

    @pytest.mark.asyncio
    async def test_criteria_reach_the_market_query(self):
        market = FakeMarket(pairs=[_pair(age=20.0), _pair(address="B", liquidity=500.0)])
        result = await _evaluator(market).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        criteria = market.calls[0][1]
        assert criteria.max_age_minutes == 15
        assert criteria.min_liquidity == 10_000
        assert result.action is Action.NO_OPPORTUNITIES

    @pytest.mark.asyncio
    async def test_no_pairs(self):
        swap = FakeSwap()
        result = await _evaluator(FakeMarket(), swap).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.NO_OPPORTUNITIES
        assert result.details == "No new pairs matching criteria"
        assert swap.calls == []

    @pytest.mark.asyncio
    async def test_all_bought(self):
        market = FakeMarket(pairs=[_pair("A"), _pair("B")])
        swap = FakeSwap()
        result = await _evaluator(market, swap).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, {"A", "B"},
        )
        assert result.action is Action.ALREADY_BOUGHT
        assert result.details == "Already bought all 2 matching pairs"
        assert swap.calls == []

    @pytest.mark.asyncio
    async def test_skips_bought_and_takes_next(self):
        market = FakeMarket(pairs=[_pair("A"), _pair("B")])
        swap = FakeSwap()
        bought = {"A"}
        result = await _evaluator(market, swap).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, bought,
        )
        assert result.trade.token_address == "B"
        assert bought == {"A"}

    @pytest.mark.asyncio
    async def test_name_filter_no_match(self):
        market = FakeMarket(pairs=[_pair(symbol="DOGE", name="Doge")])
        config = dict(SNIPER_CONFIG, nameFilter="cat")
        result = await _evaluator(market).evaluate(_strategy("SNIPER", config), SEALED_KEY, set())
        assert result.action is Action.NO_OPPORTUNITIES
        assert result.details == 'No pairs matching name filter "cat"'

    @pytest.mark.asyncio
    async def test_single_letter_filter_is_prefix(self):
        market = FakeMarket(pairs=[
            _pair("A", symbol="APE", name="Ape"),
            _pair("B", symbol="POPCAT", name="Popcat"),
        ])
        config = dict(SNIPER_CONFIG, nameFilter="p")
        result = await _evaluator(market).evaluate(_strategy("SNIPER", config), SEALED_KEY, set())
        assert result.trade.token_address == "B"

    @pytest.mark.asyncio
    async def test_market_outage_is_no_opportunity(self):
        market = FakeMarket(error=MarketDataError("Birdeye down"))
        swap = FakeSwap()
        result = await _evaluator(market, swap).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.NO_OPPORTUNITIES
        assert result.details == "Market data unavailable: Birdeye down"
        assert swap.calls == []


# ── CONDITIONAL ──────────────────────────────────────────────────────────


EMA_CROSS = {
    "inputToken": "BONK",
    "condition": {"indicator": "EMA", "period": 50, "trigger": "crosses_above", "timeframe": "1H"},
    "amount": 0.5,
}


class TestConditional:
    @pytest.mark.asyncio
    async def test_condition_met_buys_and_deactivates(self):
        market = FakeMarket(closes=[1.0] * 99 + [2.0])
        swap = FakeSwap()
        repo = FakeTradeRepo()
        result = await _evaluator(market, swap, repo).evaluate(
            _strategy("CONDITIONAL", EMA_CROSS, id_=7), SEALED_KEY, set(),
        )

        bonk = TOKEN_MINTS["BONK"]
        assert result.action is Action.TRADE_EXECUTED
        assert market.calls[0] == ("candles", bonk, "1H", 100)
        assert swap.calls == [(NATIVE_MINT, bonk, 0.5, 100)]
        trade, deactivate = repo.recorded[0]
        assert deactivate == 7
        assert trade.price_usd == 2.0
        assert result.trade.token_symbol == "BONK"

    @pytest.mark.asyncio
    async def test_sell_direction_swaps_into_native(self):
        config = dict(EMA_CROSS, direction="sell")
        swap = FakeSwap()
        await _evaluator(FakeMarket(closes=[1.0] * 99 + [2.0]), swap).evaluate(
            _strategy("CONDITIONAL", config), SEALED_KEY, set(),
        )
        assert swap.calls[0][:2] == (TOKEN_MINTS["BONK"], NATIVE_MINT)

    @pytest.mark.asyncio
    async def test_waiting_for_condition(self):
        swap = FakeSwap()
        result = await _evaluator(FakeMarket(closes=[1.0] * 100), swap).evaluate(
            _strategy("CONDITIONAL", EMA_CROSS), SEALED_KEY, set(),
        )
        assert result.action is Action.NO_OPPORTUNITIES
        assert result.details.startswith("Waiting for condition: crosses_above EMA(50)")
        assert swap.calls == []

    @pytest.mark.asyncio
    async def test_not_enough_data(self):
        result = await _evaluator(FakeMarket(closes=[1.0] * 30)).evaluate(
            _strategy("CONDITIONAL", EMA_CROSS), SEALED_KEY, set(),
        )
        assert result.action is Action.NO_OPPORTUNITIES
        assert result.details == "Not enough price data for indicator calculation"

    @pytest.mark.asyncio
    async def test_missing_condition_is_error_without_network(self):
        market = FakeMarket()
        swap = FakeSwap()
        result = await _evaluator(market, swap).evaluate(
            _strategy("CONDITIONAL", {"inputToken": "SOL"}), SEALED_KEY, set(),
        )
        assert result.action is Action.ERROR
        assert result.error == "Missing condition or inputToken in config"
        assert market.calls == []
        assert swap.calls == []

    @pytest.mark.asyncio
    async def test_price_without_value_is_error(self):
        config = {"inputToken": "SOL", "condition": {"indicator": "PRICE", "trigger": "price_above"}}
        result = await _evaluator(FakeMarket(closes=[1.0] * 30)).evaluate(
            _strategy("CONDITIONAL", config), SEALED_KEY, set(),
        )
        assert result.action is Action.ERROR


# ── Swap outcome mapping ─────────────────────────────────────────────────


class TestSwapOutcomes:
    @pytest.mark.asyncio
    async def test_quote_unavailable_is_no_opportunity(self):
        swap = FakeSwap(error=QuoteError("no route"))
        repo = FakeTradeRepo()
        result = await _evaluator(FakeMarket(pairs=[_pair()]), swap, repo).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.NO_OPPORTUNITIES
        assert result.details == "Quote unavailable: no route"
        assert repo.recorded == []

    @pytest.mark.asyncio
    async def test_broadcast_failure_is_error(self):
        swap = FakeSwap(error=BroadcastError("rejected"))
        repo = FakeTradeRepo()
        result = await _evaluator(FakeMarket(pairs=[_pair()]), swap, repo).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.ERROR
        assert result.error == "rejected"
        assert repo.recorded == []

    @pytest.mark.asyncio
    async def test_timeout_keeps_signature(self):
        swap = FakeSwap(error=ConfirmationTimeoutError("SigX", 30))
        result = await _evaluator(FakeMarket(pairs=[_pair()]), swap).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.ERROR
        assert "outcome unknown" in result.error
        assert result.meta["signature"] == "SigX"

    @pytest.mark.asyncio
    async def test_record_failure_after_confirmed_swap(self):
        repo = FakeTradeRepo(error=RuntimeError("disk full"))
        result = await _evaluator(FakeMarket(pairs=[_pair()]), FakeSwap(), repo).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.ERROR
        assert result.trade.signature == "Sig111"
        assert result.meta["signature"] == "Sig111"
        assert "could not be recorded" in result.error

    @pytest.mark.asyncio
    async def test_undecryptable_key_is_error(self):
        swap = FakeSwap(error=WalletError("Stored key could not be decrypted"))
        repo = FakeTradeRepo()
        result = await _evaluator(FakeMarket(pairs=[_pair()]), swap, repo).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.ERROR
        assert result.error == "Stored key could not be decrypted"
        assert repo.recorded == []

    @pytest.mark.asyncio
    async def test_decimals_failure_after_confirmed_swap(self):
        swap = FakeSwap(decimals=RuntimeError("node gone"))
        repo = FakeTradeRepo()
        result = await _evaluator(FakeMarket(pairs=[_pair()]), swap, repo).evaluate(
            _strategy("SNIPER", SNIPER_CONFIG), SEALED_KEY, set(),
        )
        assert result.action is Action.ERROR
        assert result.meta["signature"] == "Sig111"
        assert "Sig111 confirmed but could not be recorded" in result.error
        assert repo.recorded == []


@pytest.mark.asyncio
async def test_spot_is_not_executed():
    swap = FakeSwap()
    result = await _evaluator(swap=swap).evaluate(
        _strategy("SPOT", {"inputToken": "SOL", "outputToken": "USDC"}), SEALED_KEY, set(),
    )
    assert result.action is Action.NO_OPPORTUNITIES
    assert result.details == "Strategy type SPOT execution coming soon"
    assert swap.calls == []


@pytest.mark.asyncio
async def test_unknown_type_is_error():
    result = await _evaluator().evaluate(_strategy("GRID", {}), SEALED_KEY, set())
    assert result.action is Action.ERROR

"""Strategy Evaluator — one strategy, one evaluation, one ``ExecutionResult``.

Outcomes:
    TRADE_EXECUTED     a swap confirmed and its trade was recorded
    NO_OPPORTUNITIES   nothing to do this cycle (including upstream outages)
    ALREADY_BOUGHT     every SNIPER candidate was bought inside the dedup window
    ERROR              configuration problem or a swap that did not provably succeed
"""

import logging
from typing import Optional

from autotrader.config import Config
from autotrader.errors import (
    ExecutionError,
    MarketDataError,
    StrategyConfigError,
    WalletError,
)
from autotrader.market.filters import filter_by_name
from autotrader.strategy.conditions import evaluate_condition
from autotrader.strategy.models import (
    Action,
    ConditionalConfig,
    ExecutionResult,
    SniperConfig,
    Strategy,
    Trade,
    TradeSummary,
    parse_strategy_config,
)
from autotrader.swap.models import SwapResult
from autotrader.swap.tokens import NATIVE_MINT, from_smallest_unit, resolve_mint

logger = logging.getLogger("autotrader.strategy")

CANDLE_LOOKBACK = 100
SNIPER_SCAN_LIMIT = 20


class StrategyEvaluator:
    """Evaluates strategies against live data and drives their swaps.

    Args:
        config: Application configuration.
        market: Market data gateway (``fetch_filtered_new_pairs``, ``fetch_candles``).
        swap: Swap gateway (``execute``, ``resolve_decimals``).
        trade_repo: Trade store (``record_trade``).
    """

    def __init__(self, config: Config, market, swap, trade_repo) -> None:
        self._config = config
        self._market = market
        self._swap = swap
        self._trade_repo = trade_repo

    async def evaluate(
        self,
        strategy: Strategy,
        encrypted_key: str,
        bought_tokens: set[str],
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """Evaluate *strategy* once.

        *bought_tokens* is read, never mutated; the caller folds new buys in.
        """
        try:
            config = parse_strategy_config(strategy.type, strategy.config)
        except StrategyConfigError as exc:
            return self._error(strategy, str(exc))

        try:
            if isinstance(config, SniperConfig):
                return await self._evaluate_sniper(
                    strategy, config, encrypted_key, bought_tokens, timeout,
                )
            if isinstance(config, ConditionalConfig):
                return await self._evaluate_conditional(strategy, config, encrypted_key, timeout)
        except MarketDataError as exc:
            logger.warning("Strategy %s market data unavailable: %s", strategy.id, exc)
            return self._nothing(strategy, f"Market data unavailable: {exc}")
        return ExecutionResult(
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            action=Action.NO_OPPORTUNITIES,
            details=f"Strategy type {strategy.type} execution coming soon",
        )

    # ── SNIPER ───────────────────────────────────────────────────────────

    async def _evaluate_sniper(
        self,
        strategy: Strategy,
        config: SniperConfig,
        encrypted_key: str,
        bought_tokens: set[str],
        timeout: Optional[float],
    ) -> ExecutionResult:
        pairs = await self._market.fetch_filtered_new_pairs(
            config.criteria(limit=SNIPER_SCAN_LIMIT)
        )
        if not pairs:
            return self._nothing(strategy, "No new pairs matching criteria")

        named = filter_by_name(pairs, config.name_filter)
        if not named:
            return self._nothing(
                strategy, f'No pairs matching name filter "{config.name_filter}"'
            )

        target = next((p for p in named if p.address not in bought_tokens), None)
        if target is None:
            return ExecutionResult(
                strategy_id=strategy.id,
                strategy_name=strategy.name,
                action=Action.ALREADY_BOUGHT,
                details=f"Already bought all {len(named)} matching pairs",
            )

        logger.info(
            "Strategy %s sniping %s (%s): age=%.1fm liquidity=%.0f",
            strategy.id, target.symbol, target.address,
            target.age_minutes, target.liquidity,
        )
        return await self._swap_and_record(
            strategy,
            encrypted_key,
            input_mint=NATIVE_MINT,
            output_mint=target.address,
            amount=config.amount,
            slippage_bps=config.slippage_bps,
            direction="BUY",
            token_address=target.address,
            token_symbol=target.symbol,
            price_usd=target.price,
            details=f"Bought {target.symbol} ({target.name})",
            deactivate=False,
            timeout=timeout,
        )

    # ── CONDITIONAL ──────────────────────────────────────────────────────

    async def _evaluate_conditional(
        self,
        strategy: Strategy,
        config: ConditionalConfig,
        encrypted_key: str,
        timeout: Optional[float],
    ) -> ExecutionResult:
        condition = config.condition
        token_mint = resolve_mint(config.input_token)

        candles = await self._market.fetch_candles(
            token_mint, condition.timeframe, CANDLE_LOOKBACK
        )
        if len(candles) < condition.effective_period:
            return self._nothing(strategy, "Not enough price data for indicator calculation")

        try:
            check = evaluate_condition(condition, [c.close for c in candles])
        except StrategyConfigError as exc:
            return self._error(strategy, str(exc))

        if not check.met:
            return self._nothing(strategy, f"Waiting for condition: {check.description}")

        logger.info("Strategy %s condition met: %s", strategy.id, check.description)
        if config.direction == "buy":
            input_mint, output_mint = NATIVE_MINT, token_mint
        else:
            input_mint, output_mint = token_mint, NATIVE_MINT

        return await self._swap_and_record(
            strategy,
            encrypted_key,
            input_mint=input_mint,
            output_mint=output_mint,
            amount=config.amount,
            slippage_bps=config.slippage_bps,
            direction=config.direction.upper(),
            token_address=token_mint,
            token_symbol=config.input_token,
            price_usd=check.current_price,
            details=(
                f"Condition met ({check.description}); "
                f"{config.direction} {config.input_token}"
            ),
            deactivate=True,
            timeout=timeout,
        )

    # ── Swap + record ────────────────────────────────────────────────────

    async def _swap_and_record(
        self,
        strategy: Strategy,
        encrypted_key: str,
        *,
        input_mint: str,
        output_mint: str,
        amount: float,
        slippage_bps: int,
        direction: str,
        token_address: str,
        token_symbol: str,
        price_usd: Optional[float],
        details: str,
        deactivate: bool,
        timeout: Optional[float],
    ) -> ExecutionResult:
        try:
            result: SwapResult = await self._swap.execute(
                encrypted_key, input_mint, output_mint, amount, slippage_bps, timeout=timeout,
            )
        except MarketDataError as exc:
            # Quote unavailable: nothing was broadcast.
            logger.warning("Strategy %s quote unavailable: %s", strategy.id, exc)
            return self._nothing(strategy, f"Quote unavailable: {exc}")
        except WalletError as exc:
            logger.error("Strategy %s signing key unavailable: %s", strategy.id, exc)
            return self._error(strategy, str(exc))
        except ExecutionError as exc:
            logger.error("Strategy %s swap failed: %s", strategy.id, exc)
            out = self._error(strategy, str(exc))
            if getattr(exc, "signature", None):
                out.meta["signature"] = exc.signature
            return out

        # The swap landed; anything failing from here on is bookkeeping only.
        summary: Optional[TradeSummary] = None
        try:
            output_decimals = await self._swap.resolve_decimals(output_mint)
            output_amount = from_smallest_unit(result.output_amount, output_decimals)
            trade = Trade(
                user_id=strategy.user_id,
                signature=result.signature,
                direction=direction,
                input_token=input_mint,
                output_token=output_mint,
                input_amount=amount,
                output_amount=output_amount,
                price_usd=price_usd,
                strategy_id=strategy.id,
            )
            summary = TradeSummary(
                signature=result.signature,
                token_address=token_address,
                token_symbol=token_symbol,
                input_amount=amount,
                output_amount=output_amount,
                direction=direction,
                explorer_url=f"{self._config.explorer_base_url}/{result.signature}",
            )
            self._trade_repo.record_trade(
                trade, deactivate_strategy_id=strategy.id if deactivate else None,
            )
        except Exception as exc:
            logger.exception(
                "Strategy %s trade %s confirmed but not recorded", strategy.id, result.signature,
            )
            return ExecutionResult(
                strategy_id=strategy.id,
                strategy_name=strategy.name,
                action=Action.ERROR,
                trade=summary,
                error=(
                    f"Trade {result.signature} confirmed but could not be recorded: {exc}"
                ),
                meta={"signature": result.signature},
            )

        logger.info(
            "Strategy %s %s %s: in=%s out=%.6f sig=%s",
            strategy.id, direction, token_symbol, amount, output_amount, result.signature,
        )
        return ExecutionResult(
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            action=Action.TRADE_EXECUTED,
            details=details,
            trade=summary,
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _nothing(strategy: Strategy, details: str) -> ExecutionResult:
        return ExecutionResult(
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            action=Action.NO_OPPORTUNITIES,
            details=details,
        )

    @staticmethod
    def _error(strategy: Strategy, message: str) -> ExecutionResult:
        return ExecutionResult(
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            action=Action.ERROR,
            error=message,
        )

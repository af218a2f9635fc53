"""Execution engine — per-user evaluation cycle plus the polling scheduler.

``ExecutionEngine.run_once`` is the "evaluate now" entry point; it owns no
timers.  ``StrategyScheduler`` drives it at a fixed cadence for every owner
with active strategies.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from autotrader.config import Config
from autotrader.strategy.evaluator import StrategyEvaluator
from autotrader.strategy.models import Action, ExecutionResult, Strategy

logger = logging.getLogger("autotrader.engine")

DEDUP_WINDOW = timedelta(hours=24)


class ExecutionEngine:
    """Evaluates a user's active strategies once per call.

    Args:
        config: Application configuration.
        market: Market data gateway.
        swap: Swap gateway.
        strategy_repo: Strategy store.
        trade_repo: Trade store.
        wallet_repo: Wallet store.
        evaluator: Optional evaluator override (defaults to ``StrategyEvaluator``).
    """

    def __init__(
        self,
        config: Config,
        market,
        swap,
        strategy_repo,
        trade_repo,
        wallet_repo,
        evaluator: Optional[StrategyEvaluator] = None,
    ) -> None:
        self._config = config
        self._strategy_repo = strategy_repo
        self._trade_repo = trade_repo
        self._wallet_repo = wallet_repo
        self._evaluator = evaluator or StrategyEvaluator(config, market, swap, trade_repo)

    async def run_once(
        self,
        user_id: str,
        timeout: Optional[float] = None,
        utc_now: Optional[datetime] = None,
    ) -> list[ExecutionResult]:
        """Evaluate every active strategy of *user_id* in sequence.

        Args:
            user_id: Strategy owner.
            timeout: Optional confirmation deadline applied to each swap.
            utc_now: Override for the dedup window's end (testing).

        Returns:
            One ``ExecutionResult`` per active strategy, in evaluation order.
        """
        strategies = self._strategy_repo.list_active(user_id)
        if not strategies:
            return []

        # Only presence is checked here; the key stays encrypted until a swap
        # signs with it.
        encrypted = self._wallet_repo.get_encrypted_key(user_id)
        if encrypted is None:
            logger.warning("User %s has active strategies but no wallet", user_id)
            return _fail_all(strategies, "Wallet not found")

        now = utc_now or datetime.now(timezone.utc)
        bought = self._trade_repo.bought_tokens_since(user_id, now - DEDUP_WINDOW)

        results: list[ExecutionResult] = []
        for strategy in strategies:
            try:
                result = await self._evaluator.evaluate(
                    strategy, encrypted, bought, timeout=timeout,
                )
            except Exception as exc:
                logger.exception("Strategy %s evaluation crashed", strategy.id)
                result = ExecutionResult(
                    strategy_id=strategy.id,
                    strategy_name=strategy.name,
                    action=Action.ERROR,
                    error=str(exc) or type(exc).__name__,
                )
            results.append(result)

            # Later strategies in this cycle must not buy the same token.
            if result.trade is not None and result.trade.direction == "BUY":
                bought.add(result.trade.token_address)

        executed = sum(1 for r in results if r.action is Action.TRADE_EXECUTED)
        logger.info(
            "User %s: evaluated %d strateg%s, %d trade(s)",
            user_id, len(results), "y" if len(results) == 1 else "ies", executed,
        )
        return results

    def status(self, user_id: str, utc_now: Optional[datetime] = None) -> dict:
        """Summary of *user_id*'s strategies and today's confirmed trades."""
        now = utc_now or datetime.now(timezone.utc)
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        strategies = self._strategy_repo.list_for_user(user_id)
        return {
            "active_count": sum(1 for s in strategies if s.is_active),
            "total_trades_today": self._trade_repo.count_since(user_id, day_start),
            "strategies": [
                {
                    "id": s.id,
                    "name": s.name,
                    "type": s.type,
                    "is_active": s.is_active,
                    "trades_today": self._trade_repo.count_since(
                        user_id, day_start, strategy_id=s.id,
                    ),
                }
                for s in strategies
            ],
        }


def _fail_all(strategies: list[Strategy], message: str) -> list[ExecutionResult]:
    return [
        ExecutionResult(
            strategy_id=s.id,
            strategy_name=s.name,
            action=Action.ERROR,
            error=message,
        )
        for s in strategies
    ]


class StrategyScheduler:
    """Polling loop that calls ``ExecutionEngine.run_once`` for each owner.

    Args:
        engine: The execution engine.
        strategy_repo: Used to find owners with active strategies.
        poll_interval: Default seconds between cycles.
    """

    def __init__(self, engine: ExecutionEngine, strategy_repo, poll_interval: int = 15) -> None:
        self._engine = engine
        self._strategy_repo = strategy_repo
        self._poll_interval = poll_interval
        self._running: bool = False
        self._cycle_count: int = 0
        self.last_results: dict[str, list[ExecutionResult]] = {}
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def poll_interval(self) -> int:
        return self._poll_interval

    def stop(self) -> None:
        """Signal the scheduler to stop after the current cycle."""
        self._running = False

    async def run_cycle(self) -> dict[str, list[ExecutionResult]]:
        """Evaluate every owner with active strategies once."""
        cycle_results: dict[str, list[ExecutionResult]] = {}
        for user_id in self._strategy_repo.users_with_active():
            try:
                cycle_results[user_id] = await self._engine.run_once(user_id)
            except Exception as exc:
                logger.error("User %s cycle error: %s", user_id, exc)
                self.last_error = f"{user_id}: {exc}"
        self.last_results.update(cycle_results)
        return cycle_results

    async def run(
        self,
        poll_interval: Optional[int] = None,
        max_cycles: int = 0,
    ) -> int:
        """Run cycles until stopped.

        Args:
            poll_interval: Seconds between cycles (defaults to the constructor value).
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            Number of cycles run.
        """
        interval = self._poll_interval if poll_interval is None else poll_interval
        self._running = True
        cycle = 0

        while self._running:
            cycle += 1
            self._cycle_count += 1
            try:
                results = await self.run_cycle()
                trades = sum(
                    1 for rs in results.values() for r in rs
                    if r.action is Action.TRADE_EXECUTED
                )
                logger.info("Cycle %d: %d user(s), %d trade(s)", cycle, len(results), trades)
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                self.last_error = str(exc)

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep — checks _running every second
            for _ in range(int(interval)):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        return cycle

"""AutoTrader — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for the
strategy scheduler and one-off evaluation runs.
"""

import logging

from fastapi import FastAPI

from autotrader.api.routers import router

app = FastAPI(title="AutoTrader Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("autotrader")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


def build_services(config):
    """Wire gateways, repos, engine and scheduler from *config*.

    Returns:
        ``(engine, scheduler, trade_repo)``
    """
    from autotrader.chain.rpc_client import SolanaRpcClient
    from autotrader.engine import ExecutionEngine, StrategyScheduler
    from autotrader.market.birdeye_client import BirdeyeClient
    from autotrader.market.cache import TTLCache
    from autotrader.repos.db import init_db
    from autotrader.repos.strategy_repo import StrategyRepo
    from autotrader.repos.trade_repo import TradeRepo
    from autotrader.repos.wallet_repo import WalletRepo
    from autotrader.swap.gateway import SwapGateway
    from autotrader.swap.jupiter_client import JupiterClient

    init_db(config.db_path)

    market = BirdeyeClient(config, cache=TTLCache(config.market_cache_ttl_seconds))
    swap = SwapGateway(config, JupiterClient(config), SolanaRpcClient(config))
    strategy_repo = StrategyRepo(config.db_path)
    trade_repo = TradeRepo(config.db_path)
    wallet_repo = WalletRepo(config.db_path)

    engine = ExecutionEngine(
        config, market, swap, strategy_repo, trade_repo, wallet_repo,
    )
    scheduler = StrategyScheduler(
        engine, strategy_repo, poll_interval=config.poll_interval_seconds,
    )
    return engine, scheduler, trade_repo


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio
    import signal

    from autotrader.api.routers import configure_routers
    from autotrader.config import load_config

    parser = argparse.ArgumentParser(description="AutoTrader strategy execution engine")
    parser.add_argument(
        "--mode",
        choices=["serve", "engine-only", "once"],
        default="serve",
        help="serve: API + scheduler; engine-only: scheduler only; once: one cycle",
    )
    parser.add_argument("--user-id", help="Owner to evaluate (required with --mode once)")
    parser.add_argument("--env", default=None, help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    engine, scheduler, trade_repo = build_services(config)

    if args.mode == "once":
        if not args.user_id:
            parser.error("--user-id is required with --mode once")
        results = asyncio.run(engine.run_once(args.user_id))
        for r in results:
            logger.info(
                "Strategy %s (%s): %s %s",
                r.strategy_id, r.strategy_name, r.action.value,
                r.details or r.error or "",
            )
        return

    configure_routers(engine=engine, trade_repo=trade_repo, scheduler=scheduler)

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        scheduler.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.mode == "engine-only":
        asyncio.run(_run_scheduler_only(scheduler))
    else:
        asyncio.run(_run_server_and_scheduler(scheduler, config.api_port))


async def _run_server_and_scheduler(scheduler, port: int = 8080) -> None:
    """Start the API server and the strategy scheduler concurrently."""
    import asyncio
    import uvicorn

    logger.info("Starting AutoTrader (poll every %ss).", scheduler.poll_interval)

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(uvi_config)

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        server.serve(),
        scheduler.run(),
        return_exceptions=True,
    )
    logger.info("AutoTrader stopped. Results: %s", results)


async def _run_scheduler_only(scheduler) -> None:
    """Run the strategy scheduler without starting the API server."""
    logger.info("Starting AutoTrader scheduler (no API).")
    cycles = await scheduler.run()
    logger.info("AutoTrader scheduler stopped after %d cycle(s).", cycles)


def main() -> None:
    _run_cli()


if __name__ == "__main__":
    _run_cli()

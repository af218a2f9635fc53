"""Internal API routers — /strategies/execute, /strategies/status, /trades, /scheduler.

No business logic, no DB access. Delegates to the engine, repos, and scheduler.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from autotrader.strategy.models import Action

logger = logging.getLogger("autotrader.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_engine = None       # Set via configure_routers()
_trade_repo = None   # Set via configure_routers()
_scheduler = None    # Set via configure_routers()


def configure_routers(engine, trade_repo=None, scheduler=None) -> None:
    """Inject dependencies from the application startup.

    Args:
        engine: An ``ExecutionEngine`` instance (or duck-type for tests).
        trade_repo: A ``TradeRepo`` instance for the trade log.
        scheduler: A ``StrategyScheduler`` for loop status.
    """
    global _engine, _trade_repo, _scheduler  # noqa: PLW0603
    _engine = engine
    _trade_repo = trade_repo
    _scheduler = scheduler


def _require_engine():
    if _engine is None:
        raise HTTPException(status_code=503, detail="Execution engine not configured")
    return _engine


# ── Endpoints ────────────────────────────────────────────────────────────


@router.api_route("/strategies/execute", methods=["GET", "POST"])
async def execute_strategies(
    user_id: str = Query(..., min_length=1),
    timeout: Optional[float] = Query(default=None, gt=0),
):
    """Evaluate the user's active strategies now and report per-strategy outcomes."""
    engine = _require_engine()
    timestamp = datetime.now(timezone.utc).isoformat()

    status = engine.status(user_id)
    if status["active_count"] == 0:
        return {
            "executed": False,
            "message": "No active strategies",
            "status": status,
            "results": [],
            "timestamp": timestamp,
        }

    results = await engine.run_once(user_id, timeout=timeout)
    executed = [r for r in results if r.action is Action.TRADE_EXECUTED]
    errors = [r for r in results if r.action is Action.ERROR]
    if executed:
        message = f"Executed {len(executed)} trade(s)"
    elif errors:
        message = f"{len(errors)} error(s) occurred"
    else:
        message = "No opportunities found"

    return {
        "executed": bool(executed),
        "message": message,
        "status": engine.status(user_id),
        "results": [r.to_dict() for r in results],
        "timestamp": timestamp,
    }


@router.get("/strategies/status")
async def get_strategy_status(user_id: str = Query(..., min_length=1)):
    """Return active count, today's trade count, and a per-strategy summary."""
    return _require_engine().status(user_id)


@router.get("/trades")
async def get_trades(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    """Return the user's recent trade log entries."""
    if _trade_repo is None:
        return {"trades": [], "total": 0}
    return _trade_repo.list_for_user(user_id, limit=limit)


@router.get("/scheduler")
async def get_scheduler_status():
    """Return polling-loop state."""
    if _scheduler is None:
        return {"running": False, "cycle_count": 0, "last_error": None}
    return {
        "running": _scheduler.running,
        "cycle_count": _scheduler.cycle_count,
        "last_error": _scheduler.last_error,
    }

"""One-shot script to save an active strategy for an owner.

Usage (from the project root):
    python -m scripts.add_strategy --user-id alice --type SNIPER --name "Pump sniper" \
        --config '{"maxAgeMinutes": 15, "minLiquidity": 10000, "amount": 0.1}'
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from autotrader.config import load_config
from autotrader.repos.db import init_db
from autotrader.repos.strategy_repo import StrategyRepo
from autotrader.strategy.models import parse_strategy_config

logger = logging.getLogger(__name__)


def add_strategy(
    user_id: str,
    strategy_type: str,
    name: str,
    config_json: str,
    description: str | None = None,
    env_path: str | None = None,
) -> int:
    """Validate *config_json* for *strategy_type* and insert it; returns the id.

    Raises ``StrategyConfigError`` if the configuration cannot be executed.
    """
    raw = json.loads(config_json)
    parse_strategy_config(strategy_type, raw)

    config = load_config(env_path)
    init_db(config.db_path)
    return StrategyRepo(config.db_path).insert(
        user_id, name, strategy_type, raw, description=description,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Save an active strategy")
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--type", required=True, choices=["SNIPER", "CONDITIONAL", "SPOT"])
    parser.add_argument("--name", required=True)
    parser.add_argument("--config", required=True, help="Strategy config as JSON (camelCase keys)")
    parser.add_argument("--description", default=None)
    parser.add_argument("--env", default=None, help="Path to a .env file")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    strategy_id = add_strategy(
        args.user_id, args.type, args.name, args.config, args.description, args.env,
    )
    logger.info("Saved strategy %d (%s) for %s", strategy_id, args.type, args.user_id)

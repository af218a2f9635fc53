"""One-shot script to store an owner's signing key, encrypted at rest.

Usage (from the project root):
    python -m scripts.import_wallet --user-id alice --secret-file ~/alice.key

The secret file holds the base58-encoded 64-byte keypair.
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from autotrader.chain.keys import encrypt_private_key, load_keypair
from autotrader.config import load_config
from autotrader.repos.db import init_db
from autotrader.repos.wallet_repo import WalletRepo

logger = logging.getLogger(__name__)


def import_wallet(user_id: str, secret: str, env_path: str | None = None) -> str:
    """Encrypt *secret*, store it for *user_id*, and return the public key."""
    config = load_config(env_path)
    init_db(config.db_path)

    encrypted = encrypt_private_key(secret.strip(), config.encryption_key)
    # Fails on a malformed secret before anything is stored.
    public_key = str(load_keypair(encrypted, config.encryption_key).pubkey())

    WalletRepo(config.db_path).insert(user_id, public_key, encrypted)
    return public_key


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import an encrypted wallet for an owner")
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--secret-file", required=True, type=Path)
    parser.add_argument("--env", default=None, help="Path to a .env file")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    pubkey = import_wallet(
        args.user_id, args.secret_file.expanduser().read_text(encoding="utf-8"), args.env,
    )
    logger.info("Stored wallet %s for %s", pubkey, args.user_id)

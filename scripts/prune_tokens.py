"""Delete bearer tokens that were revoked or expired a while ago.

Usage:
  python scripts/prune_tokens.py [--hours 24]
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from romaneio.auth.tokens import prune_tokens
from romaneio.config import load_config
from romaneio.db import connect, init_db


def main() -> None:
    cfg = load_config()
    ap = argparse.ArgumentParser()
    ap.add_argument("--hours", type=int, default=cfg.AUTH_TOKEN_PRUNE_HOURS)
    args = ap.parse_args()

    init_db(cfg.DB_DSN)
    with connect(cfg.DB_DSN) as conn:
        n = prune_tokens(conn, older_than_hours=args.hours)

    print(f"Pruned {n} token(s)")


if __name__ == "__main__":
    main()

"""Create a user account from the command line.

Usage:
  python scripts/create_user.py --name Ana --email ana@example.com --password '...'

The same validation rules as the register endpoint apply. No token is printed.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from romaneio.auth.crud import create_user
from romaneio.auth.errors import ValidationError
from romaneio.auth.security import hash_password
from romaneio.auth.service import validate_registration
from romaneio.config import load_config
from romaneio.db import connect, init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        name, email = validate_registration(args.name, args.email, args.password)
        with connect(cfg.DB_DSN) as conn:
            user = create_user(
                conn,
                name=name,
                email=email,
                password_hash=hash_password(args.password, rounds=cfg.AUTH_PASSWORD_ROUNDS),
            )
    except ValidationError as e:
        for field, messages in e.errors.items():
            for m in messages:
                print(f"{field}: {m}", file=sys.stderr)
        raise SystemExit(2)

    print("Created user:")
    print(user.summary())


if __name__ == "__main__":
    main()

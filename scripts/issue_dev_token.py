#!/usr/bin/env python3
"""
Issue a bearer token for local development, signed with auth.secret_key.

Optionally marks the owner as subscribed so entitlement-gated routes work
against the configured database.

Usage:
    python scripts/issue_dev_token.py alice
    python scripts/issue_dev_token.py alice --hours 2 --subscribe
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config.settings import settings
from shelfscan.auth import create_token


def main():
    parser = argparse.ArgumentParser(description="Issue a development bearer token")
    parser.add_argument("owner", help="Owner id placed in the token's sub claim")
    parser.add_argument("--hours", type=float, default=None, help="Lifetime (default: auth.token_expire_hours)")
    parser.add_argument("--subscribe", action="store_true", help="Also mark the owner's subscription active")
    args = parser.parse_args()

    if settings.is_prod:
        print("Error: refusing to issue development tokens with SHELFSCAN_ENV=prod")
        sys.exit(1)

    if args.subscribe:
        if settings.storage.backend != "sql":
            print("Error: --subscribe needs storage.backend=sql")
            sys.exit(1)
        from shelfscan.billing import SqlEntitlementStore
        from shelfscan.db import get_engine, init_db

        engine = get_engine()
        init_db(engine)
        SqlEntitlementStore(engine).upsert(args.owner, "active")
        print(f"Subscription for {args.owner}: active")

    print(create_token(args.owner, expire_hours=args.hours))


if __name__ == "__main__":
    main()

# softlock/locks/cli.py
# cron entry point: prints one line per unlocked subject
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from ..shared.config import settings
from ..shared.db import make_engine, make_session_factory
from .engine import LockEngine, LockingOptions
from .events import EventDispatcher
from .store import SqlLockStore
from .sweep import flush_expired_locks


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="softlock-flush-locks",
        description="Flush all expired model locks",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL (default: DATABASE_URL from settings)",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not list unlocked subjects")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    bind = make_engine(args.database_url or settings.DATABASE_URL)
    factory = make_session_factory(bind)

    options = LockingOptions.from_settings(settings)
    with factory() as db:
        engine = LockEngine(SqlLockStore(db), options, dispatcher=EventDispatcher.from_options(options))
        unlocked = flush_expired_locks(engine)

    if not args.quiet:
        for ref in unlocked:
            print(f"unlocked {ref}")
    print("Expired model locks flushed!")
    return 0


if __name__ == "__main__":
    sys.exit(main())

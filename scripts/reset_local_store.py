#!/usr/bin/env python3
"""Delete and recreate the local store (recovery for a broken database).

Every locally stored bet and profile is lost. In remote mode the mirror is
refilled on the next successful list.

Usage:
    python scripts/reset_local_store.py --yes
    python scripts/reset_local_store.py --db /tmp/other.db --yes
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import logging

from src.logging_config import setup_logging  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Recreate the local bet store")
    parser.add_argument("--db", default=None, help="Local DB path override")
    parser.add_argument("--yes", action="store_true", help="Confirm destructive reset")
    args = parser.parse_args()

    from src.store.db_path import resolve_db_path
    from src.store.local_store import LocalStore, StoreInitError

    db_path = resolve_db_path(args.db)
    if not args.yes:
        print(f"This deletes every bet and profile in {db_path}. Re-run with --yes.")
        sys.exit(2)

    session_id = setup_logging()
    log = logging.LoggerAdapter(logging.getLogger(__name__), {"session_id": session_id})
    try:
        LocalStore(db_path).reset()
    except StoreInitError as e:
        log.error("Reset failed: %s", e)
        sys.exit(1)
    print(f"Local store recreated: {db_path}")


if __name__ == "__main__":
    main()

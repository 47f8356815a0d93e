from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Recompute identity claim confidences with the current decay and source weights."
    )
    parser.add_argument("--user-id", default=None, help="Only recalculate claims for this user.")
    parser.add_argument("--db", default=None, help="Identity database path (defaults to IDENTITY_DB_PATH).")
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    from career_identity.identity.synthesis import recalculate_all_confidences
    from career_identity.store import IdentityStore, get_store

    store = IdentityStore(args.db) if args.db else get_store()
    try:
        updated = recalculate_all_confidences(store, args.user_id)
    finally:
        store.close()
    print(f"Recalculated confidence for {updated} claims.")


if __name__ == "__main__":
    main()

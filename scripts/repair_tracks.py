#!/usr/bin/env python3
"""Re-match stored shelf tracks against Spotify search and fix their metadata."""
import argparse
import asyncio

from music_library.core.config import settings
from music_library.core.logging_config import setup_logging
from music_library.db import models as m
from music_library.db.session import SessionLocal, init_engine
from music_library.services.profiles import get_spotify_access_token
from music_library.services.track_repair import REQUEST_DELAY_SEC, repair_tracks


def main():
    ap = argparse.ArgumentParser(description="Repair track ids/images on shelves via Spotify search")
    ap.add_argument("--operator", required=True, help="username whose stored Spotify token is used")
    ap.add_argument("--user", action="append", default=[], help="username to repair (repeatable; default: virtual users)")
    ap.add_argument("--delay", type=float, default=REQUEST_DELAY_SEC, help="seconds between Spotify requests")
    args = ap.parse_args()

    setup_logging(f"{settings.service_name}-repair")
    init_engine()
    db = SessionLocal()
    try:
        operator = db.query(m.User).filter(m.User.username == args.operator).first()
        if not operator:
            print(f"Unknown operator: {args.operator}")
            return 2
        token = get_spotify_access_token(db, operator.id)
        if not token:
            print(f"No stored Spotify token for {args.operator}; log in again first.")
            return 2

        user_ids = None
        if args.user:
            rows = db.query(m.User.id).filter(m.User.username.in_(args.user)).all()
            user_ids = [uid for (uid,) in rows]
            if len(user_ids) != len(set(args.user)):
                print("Some --user names were not found; continuing with the rest.")

        report = asyncio.run(repair_tracks(db, token, user_ids=user_ids, delay=args.delay))
    finally:
        db.close()

    print(f"Repair complete. fixed:{report.fixed} skipped:{report.skipped} failed:{report.failed}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Out-of-band repair of stored track metadata.

For every item on the selected users' shelves, search Spotify for
``track:"<title>" artist:"<artist>"`` with an operator's user token and
overwrite the item's spotify_id, image, title, artist and album with the best
match. Items are committed one by one; a failure on one item is logged and the
run continues. Requests are spaced by a fixed delay to stay under Spotify's
rate limits.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from music_library.clients import spotify
from music_library.core.errors import UpstreamError
from music_library.db import models as m

logger = logging.getLogger(__name__)

VIRTUAL_PREFIX = "virtual_"
REQUEST_DELAY_SEC = 0.2


@dataclass
class RepairReport:
    fixed: int = 0
    skipped: int = 0
    failed: int = 0


def virtual_user_ids(db: Session) -> List[uuid.UUID]:
    rows = db.query(m.User.id).filter(m.User.spotify_id.like(f"{VIRTUAL_PREFIX}%")).all()
    return [uid for (uid,) in rows]


def _items_for(db: Session, user_ids: Iterable[uuid.UUID]) -> List[m.ShelfItem]:
    return (
        db.query(m.ShelfItem)
        .join(m.Shelf, m.Shelf.id == m.ShelfItem.shelf_id)
        .filter(m.Shelf.user_id.in_(list(user_ids)), m.ShelfItem.spotify_type == "track")
        .order_by(m.Shelf.sort_order, m.ShelfItem.position)
        .all()
    )


def _apply_match(item: m.ShelfItem, track: dict) -> None:
    album = track.get("album") or {}
    images = album.get("images") or []
    artists = track.get("artists") or []

    item.spotify_id = track["id"]
    item.image_url = images[0].get("url") if images else item.image_url
    item.title = track.get("name") or item.title
    item.artist = (artists[0].get("name") if artists else None) or item.artist
    item.album = album.get("name") or item.album


async def repair_tracks(
    db: Session,
    access_token: str,
    *,
    user_ids: Optional[Iterable[uuid.UUID]] = None,
    delay: float = REQUEST_DELAY_SEC,
) -> RepairReport:
    if user_ids is None:
        user_ids = virtual_user_ids(db)
    user_ids = list(user_ids)
    report = RepairReport()
    if not user_ids:
        logger.info("No users selected for track repair")
        return report

    items = _items_for(db, user_ids)
    logger.info("Repairing %d tracks for %d users", len(items), len(user_ids))

    for i, item in enumerate(items):
        if i and delay:
            await asyncio.sleep(delay)
        try:
            track = await spotify.search_track_with_token(access_token, item.title, item.artist)
        except UpstreamError as e:
            logger.warning("Search failed for %r by %r: %s", item.title, item.artist, e.message)
            report.failed += 1
            continue

        if not track:
            logger.warning("No match for %r by %r", item.title, item.artist)
            report.skipped += 1
            continue

        old_title = item.title
        _apply_match(item, track)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Update failed for item %s", item.id)
            report.failed += 1
            continue

        logger.info("Fixed %r -> %r (%s)", old_title, track.get("name"), track["id"])
        report.fixed += 1

    return report

"""
Shelf store: user-owned shelves and their ordered items.

Every write is filtered by the caller's user id. Item positions are dense and
0-based within a shelf; appends take ``max(position) + 1`` while holding a row
lock on the target shelf, so concurrent appends to one shelf are serialized.
"""
from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.orm import Session, selectinload

from music_library.core.errors import AuthorizationError, NotFoundError, ValidationError
from music_library.core.security import Identity
from music_library.db import models as m
from music_library.services import events
from music_library.services.profiles import ensure_profile

logger = logging.getLogger(__name__)

MEMO_MAX = 20


# --- helpers -----------------------------------------------------------------

def _owned_shelf(db: Session, user_id: uuid.UUID, shelf_id: uuid.UUID, *, lock: bool = False) -> m.Shelf:
    q = db.query(m.Shelf).filter(m.Shelf.id == shelf_id, m.Shelf.user_id == user_id)
    if lock:
        q = q.with_for_update()
    shelf = q.first()
    if not shelf:
        raise NotFoundError("棚が見つかりません")
    return shelf


def _owned_item(db: Session, user_id: uuid.UUID, item_id: uuid.UUID) -> m.ShelfItem:
    item = (
        db.query(m.ShelfItem)
        .join(m.Shelf, m.Shelf.id == m.ShelfItem.shelf_id)
        .filter(m.ShelfItem.id == item_id, m.Shelf.user_id == user_id)
        .first()
    )
    if not item:
        raise NotFoundError("アイテムが見つかりません")
    return item


def _can_read(shelf: m.Shelf, viewer_id: uuid.UUID) -> bool:
    if shelf.user_id == viewer_id:
        return True
    return bool(shelf.is_public and shelf.owner.is_public)


def get_readable_item(db: Session, viewer_id: uuid.UUID, item_id: uuid.UUID) -> m.ShelfItem:
    item = db.get(m.ShelfItem, item_id)
    if not item or not _can_read(item.shelf, viewer_id):
        raise NotFoundError("アイテムが見つかりません")
    return item


def _next_position(db: Session, shelf_id: uuid.UUID) -> int:
    current = (
        db.query(sa.func.max(m.ShelfItem.position))
        .filter(m.ShelfItem.shelf_id == shelf_id)
        .scalar()
    )
    return (current if current is not None else -1) + 1


def _next_sort_order(db: Session, user_id: uuid.UUID) -> int:
    current = (
        db.query(sa.func.max(m.Shelf.sort_order))
        .filter(m.Shelf.user_id == user_id)
        .scalar()
    )
    return (current if current is not None else -1) + 1


def _reject_duplicates(ids: Sequence[uuid.UUID]) -> None:
    if len(set(ids)) != len(ids):
        raise ValidationError("Invalid data for reordering")


# --- shelves -----------------------------------------------------------------

def create_shelf(db: Session, identity: Identity, name: str) -> m.Shelf:
    name = (name or "").strip()
    if not name:
        raise ValidationError("棚名を入力してください")

    # The profile insert and the shelf insert commit separately.
    ensure_profile(db, identity)
    db.commit()

    shelf = m.Shelf(
        user_id=identity.id,
        name=name,
        is_public=True,
        sort_order=_next_sort_order(db, identity.id),
    )
    db.add(shelf)
    db.commit()
    db.refresh(shelf)
    logger.info("User %s created shelf %s", identity.id, shelf.id)
    return shelf


def update_shelf(db: Session, user_id: uuid.UUID, shelf_id: uuid.UUID, name: str) -> m.Shelf:
    name = (name or "").strip()
    if not name:
        raise ValidationError("棚名を入力してください")

    shelf = (
        db.query(m.Shelf)
        .filter(m.Shelf.id == shelf_id, m.Shelf.user_id == user_id)
        .first()
    )
    if not shelf:
        raise NotFoundError("棚名の更新に失敗しました")

    shelf.name = name
    db.commit()
    db.refresh(shelf)
    return shelf


def delete_shelf(db: Session, user_id: uuid.UUID, shelf_id: uuid.UUID) -> uuid.UUID:
    """Delete an owned shelf; its items go with it through the FK cascade."""
    result = db.execute(
        sa.delete(m.Shelf).where(m.Shelf.id == shelf_id, m.Shelf.user_id == user_id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("棚が見つかりません")
    db.commit()
    logger.info("User %s deleted shelf %s", user_id, shelf_id)
    return shelf_id


def reorder_shelves(db: Session, user_id: uuid.UUID, shelf_ids: List[uuid.UUID]) -> None:
    _reject_duplicates(shelf_ids)
    owned = {
        sid for (sid,) in db.query(m.Shelf.id).filter(m.Shelf.user_id == user_id).all()
    }
    if not set(shelf_ids) <= owned:
        raise ValidationError("Invalid data for reordering")
    if not shelf_ids:
        return

    db.execute(
        sa.update(m.Shelf),
        [{"id": sid, "sort_order": index} for index, sid in enumerate(shelf_ids)],
    )
    db.commit()


def list_shelves(db: Session, viewer_id: uuid.UUID, owner_id: Optional[uuid.UUID] = None) -> List[m.Shelf]:
    """
    Shelves of ``owner_id`` (default: the viewer) in sort order, items preloaded.
    Another user's shelves are visible only when that user is public.
    """
    owner_id = owner_id or viewer_id
    q = (
        db.query(m.Shelf)
        .options(selectinload(m.Shelf.items))
        .filter(m.Shelf.user_id == owner_id)
    )
    if owner_id != viewer_id:
        owner = db.get(m.User, owner_id)
        if not owner or not owner.is_public:
            raise NotFoundError("ユーザーが見つかりません")
        q = q.filter(m.Shelf.is_public.is_(True))
    return q.order_by(m.Shelf.sort_order, m.Shelf.created_at).all()


# --- items -------------------------------------------------------------------

def get_shelf_items(db: Session, viewer_id: uuid.UUID, shelf_id: uuid.UUID) -> List[m.ShelfItem]:
    shelf = db.get(m.Shelf, shelf_id)
    if not shelf or not _can_read(shelf, viewer_id):
        raise NotFoundError("棚が見つかりません")
    return (
        db.query(m.ShelfItem)
        .filter(m.ShelfItem.shelf_id == shelf_id)
        .order_by(m.ShelfItem.position, m.ShelfItem.created_at)
        .all()
    )


def add_shelf_item(
    db: Session,
    user_id: uuid.UUID,
    shelf_id: uuid.UUID,
    *,
    spotify_type: str,
    spotify_id: str,
    title: str,
    artist: str = "",
    album: Optional[str] = None,
    image_url: Optional[str] = None,
    color: Optional[str] = None,
) -> m.ShelfItem:
    if not shelf_id or not spotify_type or not spotify_id or not title:
        raise ValidationError("必要な情報が不足しています")
    if spotify_type not in m.SPOTIFY_TYPES:
        raise ValidationError("不正なアイテム種別です")

    _owned_shelf(db, user_id, shelf_id, lock=True)
    item = m.ShelfItem(
        shelf_id=shelf_id,
        spotify_type=spotify_type,
        spotify_id=spotify_id,
        title=title,
        artist=artist or "",
        album=album or None,
        image_url=image_url or None,
        color=color or None,
        position=_next_position(db, shelf_id),
    )
    db.add(item)
    db.commit()
    db.refresh(item)

    events.bus.publish(events.ShelfItemAdded(user_id=user_id, shelf_id=shelf_id, item_id=item.id))
    return item


def delete_shelf_item(db: Session, user_id: uuid.UUID, item_id: uuid.UUID) -> None:
    item = _owned_item(db, user_id, item_id)
    db.delete(item)
    db.commit()


def reorder_shelf_items(db: Session, user_id: uuid.UUID, shelf_id: uuid.UUID, item_ids: List[uuid.UUID]) -> None:
    """Each listed item's position becomes its index in ``item_ids``."""
    _reject_duplicates(item_ids)
    _owned_shelf(db, user_id, shelf_id)
    in_shelf = {
        iid for (iid,) in db.query(m.ShelfItem.id).filter(m.ShelfItem.shelf_id == shelf_id).all()
    }
    if not set(item_ids) <= in_shelf:
        raise ValidationError("Invalid data for reordering")
    if not item_ids:
        return

    db.execute(
        sa.update(m.ShelfItem),
        [{"id": iid, "position": index} for index, iid in enumerate(item_ids)],
    )
    db.commit()

    events.bus.publish(events.ShelfItemsReordered(user_id=user_id, shelf_id=shelf_id, item_ids=tuple(item_ids)))


def move_shelf_item(db: Session, user_id: uuid.UUID, item_id: uuid.UUID, to_shelf_id: uuid.UUID) -> m.ShelfItem:
    item = _owned_item(db, user_id, item_id)
    from_shelf_id = item.shelf_id
    _owned_shelf(db, user_id, to_shelf_id, lock=True)

    item.position = _next_position(db, to_shelf_id)
    item.shelf_id = to_shelf_id
    db.commit()
    db.refresh(item)

    events.bus.publish(
        events.ShelfItemMoved(user_id=user_id, item_id=item.id, from_shelf_id=from_shelf_id, to_shelf_id=to_shelf_id)
    )
    return item


def duplicate_shelf_item(db: Session, user_id: uuid.UUID, item_id: uuid.UUID, to_shelf_id: uuid.UUID) -> m.ShelfItem:
    """
    Copy an item (from any shelf the caller can read) to the end of one of the
    caller's shelves. Descriptive fields are copied; memo, comments and likes
    stay with the original.
    """
    src = get_readable_item(db, user_id, item_id)
    _owned_shelf(db, user_id, to_shelf_id, lock=True)

    copy = m.ShelfItem(
        shelf_id=to_shelf_id,
        spotify_type=src.spotify_type,
        spotify_id=src.spotify_id,
        title=src.title,
        artist=src.artist,
        album=src.album,
        image_url=src.image_url,
        color=src.color,
        position=_next_position(db, to_shelf_id),
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)

    events.bus.publish(events.ShelfItemAdded(user_id=user_id, shelf_id=to_shelf_id, item_id=copy.id))
    return copy


def update_shelf_item_memo(db: Session, user_id: uuid.UUID, item_id: uuid.UUID, memo: Optional[str]) -> m.ShelfItem:
    memo = (memo or "").strip()
    if len(memo) > MEMO_MAX:
        raise ValidationError("メモは20文字以内で入力してください")

    row = (
        db.query(m.ShelfItem, m.Shelf.user_id)
        .join(m.Shelf, m.Shelf.id == m.ShelfItem.shelf_id)
        .filter(m.ShelfItem.id == item_id)
        .first()
    )
    if not row or row[1] != user_id:
        raise AuthorizationError("このアイテムを編集する権限がありません")

    item = row[0]
    item.memo = memo or None
    db.commit()
    db.refresh(item)
    return item

"""
Comments and likes on shelf items, and likes on comments.

Like toggles are a delete-then-insert against a unique (target, user) pair:
if the delete removed a row the caller has unliked, otherwise the insert
(ON CONFLICT DO NOTHING) records the like. A repeated insert cannot create a
second row.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

import sqlalchemy as sa
from sqlalchemy.orm import Session

from music_library.core.errors import AuthorizationError, NotFoundError, ValidationError
from music_library.db import models as m
from music_library.db.upsert import insert_ignore
from music_library.services import events
from music_library.services.shelves import get_readable_item

logger = logging.getLogger(__name__)

COMMENT_MAX = 500


def _toggle(db: Session, model, **key) -> bool:
    """Flip the (target, user) row for ``model``; returns True when it now exists."""
    result = db.execute(
        sa.delete(model).where(*[getattr(model, col) == val for col, val in key.items()])
    )
    if result.rowcount:
        db.commit()
        return False
    insert_ignore(db, model, dict(key), index_elements=list(key))
    db.commit()
    return True


def _comment_like_counts(db: Session, comment_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
    if not comment_ids:
        return {}
    rows = (
        db.query(m.CommentLike.comment_id, sa.func.count(m.CommentLike.id))
        .filter(m.CommentLike.comment_id.in_(comment_ids))
        .group_by(m.CommentLike.comment_id)
        .all()
    )
    return {cid: n for cid, n in rows}


def _comment_out(comment: m.Comment, like_count: int = 0) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "shelf_item_id": comment.shelf_item_id,
        "content": comment.content,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
        "user": comment.author,
        "like_count": like_count,
    }


# --- comments ----------------------------------------------------------------

def add_comment(db: Session, user_id: uuid.UUID, shelf_item_id: uuid.UUID, content: str) -> Dict[str, Any]:
    content = (content or "").strip()
    if not content:
        raise ValidationError("コメント内容を入力してください")
    if len(content) > COMMENT_MAX:
        raise ValidationError("コメントは500文字以内で入力してください")

    get_readable_item(db, user_id, shelf_item_id)
    comment = m.Comment(shelf_item_id=shelf_item_id, user_id=user_id, content=content)
    db.add(comment)
    db.commit()
    db.refresh(comment)

    events.bus.publish(events.CommentAdded(user_id=user_id, shelf_item_id=shelf_item_id, comment_id=comment.id))
    return _comment_out(comment)


def get_comments(db: Session, viewer_id: uuid.UUID, shelf_item_id: uuid.UUID) -> List[Dict[str, Any]]:
    get_readable_item(db, viewer_id, shelf_item_id)
    comments = (
        db.query(m.Comment)
        .filter(m.Comment.shelf_item_id == shelf_item_id)
        .order_by(m.Comment.created_at.asc())
        .all()
    )
    counts = _comment_like_counts(db, [c.id for c in comments])
    return [_comment_out(c, counts.get(c.id, 0)) for c in comments]


def delete_comment(db: Session, user_id: uuid.UUID, comment_id: uuid.UUID) -> None:
    """Author-only delete; the author is re-read before deleting."""
    comment = db.get(m.Comment, comment_id)
    if not comment:
        raise NotFoundError("コメントが見つかりません")
    if comment.user_id != user_id:
        raise AuthorizationError("このコメントを削除する権限がありません")
    db.delete(comment)
    db.commit()


def comment_count(db: Session, viewer_id: uuid.UUID, shelf_item_id: uuid.UUID) -> int:
    get_readable_item(db, viewer_id, shelf_item_id)
    return (
        db.query(sa.func.count(m.Comment.id))
        .filter(m.Comment.shelf_item_id == shelf_item_id)
        .scalar()
    ) or 0


# --- likes -------------------------------------------------------------------

def toggle_like(db: Session, user_id: uuid.UUID, shelf_item_id: uuid.UUID) -> bool:
    get_readable_item(db, user_id, shelf_item_id)
    liked = _toggle(db, m.Like, shelf_item_id=shelf_item_id, user_id=user_id)
    events.bus.publish(events.LikeToggled(user_id=user_id, shelf_item_id=shelf_item_id, liked=liked))
    return liked


def get_likes(db: Session, viewer_id: uuid.UUID, shelf_item_id: uuid.UUID) -> List[Dict[str, Any]]:
    get_readable_item(db, viewer_id, shelf_item_id)
    rows = (
        db.query(m.Like)
        .filter(m.Like.shelf_item_id == shelf_item_id)
        .order_by(m.Like.created_at.desc())
        .all()
    )
    return [{"id": like.id, "created_at": like.created_at, "user": like.user} for like in rows]


def like_count(db: Session, viewer_id: uuid.UUID, shelf_item_id: uuid.UUID) -> int:
    get_readable_item(db, viewer_id, shelf_item_id)
    return (
        db.query(sa.func.count(m.Like.id))
        .filter(m.Like.shelf_item_id == shelf_item_id)
        .scalar()
    ) or 0


def user_like_status(db: Session, user_id: uuid.UUID, shelf_item_id: uuid.UUID) -> bool:
    return (
        db.query(m.Like.id)
        .filter(m.Like.shelf_item_id == shelf_item_id, m.Like.user_id == user_id)
        .first()
        is not None
    )


def _readable_comment(db: Session, viewer_id: uuid.UUID, comment_id: uuid.UUID) -> m.Comment:
    comment = db.get(m.Comment, comment_id)
    if not comment:
        raise NotFoundError("コメントが見つかりません")
    get_readable_item(db, viewer_id, comment.shelf_item_id)
    return comment


def toggle_comment_like(db: Session, user_id: uuid.UUID, comment_id: uuid.UUID) -> bool:
    _readable_comment(db, user_id, comment_id)
    return _toggle(db, m.CommentLike, comment_id=comment_id, user_id=user_id)


def comment_like_count(db: Session, viewer_id: uuid.UUID, comment_id: uuid.UUID) -> int:
    _readable_comment(db, viewer_id, comment_id)
    return _comment_like_counts(db, [comment_id]).get(comment_id, 0)

"""
Friend edges between users.

An edge is a request from ``user_id`` to ``friend_id``:

    none --send--> pending --accept--> accepted
    pending --reject--> none
    accepted --remove--> none

``blocked`` is a valid stored status but no operation here sets it.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from music_library.core.errors import ConflictError, NotFoundError, SelfRequestError, ValidationError
from music_library.db import models as m
from music_library.services import events

logger = logging.getLogger(__name__)

SEARCH_MIN_CHARS = 2
SEARCH_LIMIT = 10

_EXISTING_EDGE_MESSAGES = {
    "accepted": "既にフレンドです",
    "pending": "既にフレンド申請中です",
    "blocked": "このユーザーはブロックされています",
}


def _between(a: uuid.UUID, b: uuid.UUID):
    return sa.or_(
        sa.and_(m.Friend.user_id == a, m.Friend.friend_id == b),
        sa.and_(m.Friend.user_id == b, m.Friend.friend_id == a),
    )


def send_friend_request(db: Session, user_id: uuid.UUID, friend_id: uuid.UUID) -> m.Friend:
    if user_id == friend_id:
        raise SelfRequestError("自分自身をフレンドに追加することはできません")

    if not db.get(m.User, friend_id):
        raise NotFoundError("ユーザーが見つかりません")

    existing = db.query(m.Friend).filter(_between(user_id, friend_id)).first()
    if existing:
        raise ConflictError(_EXISTING_EDGE_MESSAGES.get(existing.status, "既にフレンド申請中です"))

    edge = m.Friend(user_id=user_id, friend_id=friend_id, status="pending")
    db.add(edge)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("既にフレンド申請中です")
    db.refresh(edge)

    events.bus.publish(events.FriendRequestSent(user_id=user_id, friend_id=friend_id))
    return edge


def accept_friend_request(db: Session, user_id: uuid.UUID, requester_id: uuid.UUID) -> int:
    """
    Mark the pending request requester -> caller as accepted.
    Returns the number of edges updated; 0 is not an error.
    """
    result = db.execute(
        sa.update(m.Friend)
        .where(
            m.Friend.user_id == requester_id,
            m.Friend.friend_id == user_id,
            m.Friend.status == "pending",
        )
        .values(status="accepted")
    )
    db.commit()
    if result.rowcount:
        events.bus.publish(events.FriendRequestAccepted(user_id=user_id, requester_id=requester_id))
    return result.rowcount


def reject_friend_request(db: Session, user_id: uuid.UUID, requester_id: uuid.UUID) -> int:
    result = db.execute(
        sa.delete(m.Friend).where(
            m.Friend.user_id == requester_id,
            m.Friend.friend_id == user_id,
            m.Friend.status == "pending",
        )
    )
    db.commit()
    return result.rowcount


def remove_friend(db: Session, user_id: uuid.UUID, friend_id: uuid.UUID) -> int:
    """Delete every edge between the two users, whatever its direction or status."""
    result = db.execute(sa.delete(m.Friend).where(_between(user_id, friend_id)))
    db.commit()
    return result.rowcount


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_users(db: Session, user_id: uuid.UUID, query: str) -> List[m.User]:
    query = (query or "").strip()
    if len(query) < SEARCH_MIN_CHARS:
        raise ValidationError("検索クエリは2文字以上必要です")

    like = f"%{_escape_like(query)}%"
    return (
        db.query(m.User)
        .filter(
            m.User.id != user_id,
            m.User.is_public.is_(True),
            sa.or_(
                m.User.username.ilike(like, escape="\\"),
                m.User.display_name.ilike(like, escape="\\"),
            ),
        )
        .limit(SEARCH_LIMIT)
        .all()
    )


def list_friends(db: Session, user_id: uuid.UUID) -> List[m.User]:
    other = sa.case((m.Friend.user_id == user_id, m.Friend.friend_id), else_=m.Friend.user_id)
    friend_ids = sa.select(other).where(
        m.Friend.status == "accepted",
        sa.or_(m.Friend.user_id == user_id, m.Friend.friend_id == user_id),
    )
    return (
        db.query(m.User)
        .filter(m.User.id.in_(friend_ids))
        .order_by(m.User.display_name)
        .all()
    )


def list_incoming_requests(db: Session, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    rows = (
        db.query(m.Friend, m.User)
        .join(m.User, m.User.id == m.Friend.user_id)
        .filter(m.Friend.friend_id == user_id, m.Friend.status == "pending")
        .order_by(m.Friend.created_at.desc())
        .all()
    )
    return [
        {"id": edge.id, "status": edge.status, "created_at": edge.created_at, "user": requester}
        for edge, requester in rows
    ]


def pending_requests_count(db: Session, user_id: uuid.UUID) -> int:
    return (
        db.query(sa.func.count(m.Friend.id))
        .filter(m.Friend.friend_id == user_id, m.Friend.status == "pending")
        .scalar()
    ) or 0

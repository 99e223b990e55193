from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from music_library.core.errors import AuthError, ConflictError, ValidationError
from music_library.core.security import Identity
from music_library.db import models as m
from music_library.db.upsert import insert_ignore

logger = logging.getLogger(__name__)

SPOTIFY = "spotify"
USERNAME_MIN = 3
USERNAME_MAX = 20


def to_identity(user: m.User) -> Identity:
    return Identity(
        id=user.id,
        spotify_id=user.spotify_id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
    )


def _base_username(profile: Dict[str, Any]) -> str:
    email = profile.get("email") or ""
    base = email.split("@")[0] if email else ""
    return (base or profile.get("id") or "user")[:USERNAME_MAX]


def _unique_username(db: Session, base: str) -> str:
    candidate = base
    n = 2
    while db.query(m.User.id).filter(m.User.username == candidate).first():
        suffix = str(n)
        candidate = f"{base[:USERNAME_MAX - len(suffix)]}{suffix}"
        n += 1
    return candidate


def _avatar(profile: Dict[str, Any]) -> Optional[str]:
    images = profile.get("images") or []
    return images[0].get("url") if images else None


def provision_from_spotify(db: Session, profile: Dict[str, Any], tokens: Dict[str, Any]) -> Tuple[m.User, bool]:
    """
    Find or create the users row for a Spotify profile and store its provider tokens.
    Returns (user, created).
    """
    spotify_id = profile["id"]
    user = db.query(m.User).filter(m.User.spotify_id == spotify_id).first()
    created = user is None
    if created:
        user = m.User(
            spotify_id=spotify_id,
            username=_unique_username(db, _base_username(profile)),
            display_name=profile.get("display_name") or profile.get("email") or "user",
            avatar_url=_avatar(profile),
            is_public=True,
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError:
            # Two callbacks for the same new account raced past the lookup
            db.rollback()
            user = db.query(m.User).filter(m.User.spotify_id == spotify_id).one()
            created = False

    link = db.get(m.ExternalLink, (user.id, SPOTIFY))
    if link is None:
        link = m.ExternalLink(user_id=user.id, provider=SPOTIFY, provider_user_id=spotify_id)
        db.add(link)
    link.access_token = tokens.get("access_token")
    # Spotify omits refresh_token when it did not rotate it
    if tokens.get("refresh_token"):
        link.refresh_token = tokens["refresh_token"]
    expires_in = tokens.get("expires_in")
    link.expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in)) if expires_in else None

    db.commit()
    db.refresh(user)
    if created:
        logger.info("Provisioned profile %s for Spotify user %s", user.id, spotify_id)
    return user, created


def ensure_profile(db: Session, identity: Identity) -> None:
    """Idempotently create the caller's users row from token claims."""
    inserted = insert_ignore(
        db,
        m.User,
        {
            "id": identity.id,
            "spotify_id": identity.spotify_id,
            "username": identity.username,
            "display_name": identity.display_name,
            "avatar_url": identity.avatar_url,
            "is_public": True,
        },
        index_elements=["id"],
    )
    if inserted:
        logger.info("Created missing profile row for %s", identity.id)


def get_profile(db: Session, user_id: uuid.UUID) -> m.User:
    user = db.get(m.User, user_id)
    if not user:
        raise AuthError("user_not_found")
    return user


def update_profile(
    db: Session,
    user_id: uuid.UUID,
    *,
    username: str,
    display_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> m.User:
    username = (username or "").strip()
    display_name = (display_name or "").strip()

    if not username:
        raise ValidationError("ユーザー名は必須です")
    if len(username) < USERNAME_MIN or len(username) > USERNAME_MAX:
        raise ValidationError("ユーザー名は3-20文字で入力してください")

    taken = (
        db.query(m.User.id)
        .filter(m.User.username == username, m.User.id != user_id)
        .first()
    )
    if taken:
        raise ConflictError("このユーザー名は既に使用されています")

    user = get_profile(db, user_id)
    user.username = username
    user.display_name = display_name or username
    user.is_public = True
    if avatar_url:
        user.avatar_url = avatar_url

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("このユーザー名は既に使用されています")
    db.refresh(user)
    return user


def get_spotify_access_token(db: Session, user_id: uuid.UUID) -> Optional[str]:
    link = db.get(m.ExternalLink, (user_id, SPOTIFY))
    return link.access_token if link else None

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import jwt
from pydantic import BaseModel

from music_library.core.config import settings
from music_library.core.errors import AuthError


class Identity(BaseModel):
    """The authenticated caller, as carried in the access token."""
    id: uuid.UUID
    spotify_id: str
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    role: str = "USER"


def create_access_token(identity: Identity) -> str:
    now = int(datetime.now(tz=timezone.utc).timestamp())
    payload = {
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + settings.jwt_ttl_minutes * 60,
        "sub": str(identity.id),
        "role": identity.role,
        "spotify_id": identity.spotify_id,
        "username": identity.username,
        "display_name": identity.display_name,
        "avatar_url": identity.avatar_url,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> Identity:
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            leeway=60,  # tolerate small clock skew
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("token_expired")
    except jwt.InvalidAudienceError:
        raise AuthError("invalid_audience")
    except jwt.InvalidIssuerError:
        raise AuthError("invalid_issuer")
    except jwt.PyJWTError:
        raise AuthError("invalid_token")

    try:
        user_id = uuid.UUID(claims["sub"])
    except (KeyError, ValueError, TypeError):
        raise AuthError("invalid_subject")

    return Identity(
        id=user_id,
        spotify_id=claims.get("spotify_id") or str(user_id),
        username=claims.get("username") or "user",
        display_name=claims.get("display_name") or claims.get("username") or "user",
        avatar_url=claims.get("avatar_url"),
        role=claims.get("role") or "USER",
    )

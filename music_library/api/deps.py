import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from music_library.core.errors import AuthError
from music_library.core.security import Identity, decode_access_token
from music_library.db.session import SessionLocal

ACCESS_TOKEN_COOKIE = "access_token"


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

bearer = HTTPBearer(auto_error=False)


def current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer),
) -> Identity:
    # Bearer header first, then the cookie set by /auth/callback
    token = credentials.credentials if credentials else request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        raise AuthError("未認証です")
    return decode_access_token(token)


def current_user_id(identity: Identity = Depends(current_identity)) -> uuid.UUID:
    return identity.id

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from music_library.api.deps import ACCESS_TOKEN_COOKIE, get_db
from music_library.clients import spotify
from music_library.core.config import settings
from music_library.core.errors import AppError
from music_library.core.security import create_access_token
from music_library.services.profiles import provision_from_spotify, to_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

DEFAULT_NEXT = "/app"
LOGIN_PATH = "/login"


# --- helpers -----------------------------------------------------------------

def _safe_next(value: Optional[str]) -> str:
    """Only local absolute paths are allowed as post-login targets."""
    if not value or not value.startswith("/") or value.startswith("//") or "\\" in value:
        return DEFAULT_NEXT
    return value


def _with_params(path: str, **params: str) -> str:
    sep = "&" if "?" in path else "?"
    return f"{path}{sep}{urlencode(params)}"


def _auth_failed() -> RedirectResponse:
    return RedirectResponse(
        _with_params(LOGIN_PATH, error="auth_failed", force_spotify_reauth="true"),
        status_code=307,
    )


# --- routes ------------------------------------------------------------------

@router.get("/login")
def login(next: Optional[str] = Query(None)):
    """Send the browser to Spotify's consent screen."""
    return RedirectResponse(spotify.build_authorize_url(state=_safe_next(next)), status_code=307)


@router.get("/callback")
async def callback(
    code: Optional[str] = Query(None),
    next: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Exchange the authorization code, provision the profile on first login and
    hand the session token back as a cookie.
    """
    if error or not code:
        logger.warning("Auth callback without code (error=%s)", error)
        return _auth_failed()

    try:
        tokens = await spotify.exchange_code(code)
        profile = await spotify.get_current_profile(tokens["access_token"])
        user, created = await run_in_threadpool(provision_from_spotify, db, profile, tokens)
    except (AppError, KeyError, ValueError, SQLAlchemyError) as e:
        db.rollback()
        logger.error("Auth exchange failed: %s", getattr(e, "message", repr(e)))
        return _auth_failed()

    target = _safe_next(next or state)
    response = RedirectResponse(
        _with_params(target, auth_success="true", new_user="true" if created else "false"),
        status_code=307,
    )
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        create_access_token(to_identity(user)),
        max_age=settings.jwt_ttl_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.post("/logout", status_code=204)
def logout():
    response = Response(status_code=204)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return response

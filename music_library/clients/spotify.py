# Spotify Web API client (httpx)
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from music_library.core.config import settings
from music_library.core.errors import ConfigurationError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

API_BASE = "https://api.spotify.com/v1"
ACCOUNTS_BASE = "https://accounts.spotify.com"
TOKEN_URL = f"{ACCOUNTS_BASE}/api/token"
AUTHORIZE_URL = f"{ACCOUNTS_BASE}/authorize"

LOGIN_SCOPES = [
    "user-read-email",
    "user-read-private",
    "streaming",
    "user-read-playback-state",
    "user-modify-playback-state",
    "playlist-read-private",
    "playlist-read-collaborative",
]

_METADATA_PATHS = {
    "track": "tracks",
    "album": "albums",
    "playlist": "playlists",
}

# Swapped for an httpx.MockTransport in tests.
_transport: Optional[httpx.AsyncBaseTransport] = None


class SpotifyNotConfigured(ConfigurationError):
    pass


class SpotifyAPIError(UpstreamError):
    pass


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.spotify_timeout_sec, transport=_transport)


def _credentials() -> tuple[str, str]:
    try:
        return settings.require_spotify()
    except ConfigurationError as e:
        raise SpotifyNotConfigured(e.message)


def callback_url() -> str:
    return settings.app_base_url.rstrip("/") + "/auth/callback"


async def _send(client: httpx.AsyncClient, method: str, url: str, *, failure: str, **kwargs) -> httpx.Response:
    try:
        return await client.request(method, url, **kwargs)
    except httpx.TransportError as e:
        logger.error("Spotify request to %s failed: %s", url, e)
        raise SpotifyAPIError(failure, status_code=502)


# --- app-level (client credentials) ------------------------------------------

async def get_client_credentials_token() -> str:
    """
    POST /api/token with grant_type=client_credentials.
    A fresh token is requested on every call; nothing is cached.
    """
    client_id, client_secret = _credentials()
    async with _client() as client:
        r = await _send(
            client,
            "POST",
            TOKEN_URL,
            failure="Failed to get access token",
            auth=(client_id, client_secret),
            data={"grant_type": "client_credentials"},
        )
    if r.is_error:
        logger.error("Spotify token request failed with %s", r.status_code)
        raise SpotifyAPIError("Failed to get access token", status_code=500)
    return r.json()["access_token"]


def _first_image(images: Any) -> Optional[str]:
    if isinstance(images, list) and images:
        return (images[0] or {}).get("url")
    return None


def shape_track(track: Dict[str, Any]) -> Dict[str, Any]:
    album = track.get("album") or {}
    return {
        "id": track.get("id"),
        "name": track.get("name"),
        "artists": ", ".join(a.get("name", "") for a in track.get("artists") or []),
        "album": album.get("name") or "",
        "image": _first_image(album.get("images")),
        "type": "track",
        "spotify_id": track.get("id"),
        "spotify_type": "track",
        "duration_ms": track.get("duration_ms"),
        "preview_url": track.get("preview_url"),
    }


async def search_tracks(query: str, limit: int = 10) -> List[Dict[str, Any]]:
    """GET /search?type=track, reshaped into the shelf item schema."""
    token = await get_client_credentials_token()
    params = {"q": query, "type": "track", "limit": str(limit)}
    async with _client() as client:
        r = await _send(
            client,
            "GET",
            f"{API_BASE}/search",
            failure="Search failed",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
    if r.is_error:
        raise SpotifyAPIError("Search failed", status_code=r.status_code)
    items = ((r.json().get("tracks") or {}).get("items")) or []
    return [shape_track(t) for t in items]


async def get_metadata(spotify_id: str, spotify_type: str = "track") -> Dict[str, Any]:
    """
    GET /tracks/{id}, /albums/{id} or /playlists/{id}.
    Tracks take their cover from album.images, albums and playlists from images.
    """
    path = _METADATA_PATHS.get(spotify_type)
    if path is None:
        raise ValidationError("Unsupported type")

    token = await get_client_credentials_token()
    async with _client() as client:
        r = await _send(
            client,
            "GET",
            f"{API_BASE}/{path}/{spotify_id}",
            failure="Failed to fetch metadata",
            headers={"Authorization": f"Bearer {token}"},
        )
    if r.is_error:
        raise SpotifyAPIError("Failed to fetch metadata", status_code=r.status_code)

    data = r.json()
    album = data.get("album")
    if spotify_type == "track":
        image = _first_image((album or {}).get("images"))
    else:
        image = _first_image(data.get("images"))
    return {
        "id": data.get("id"),
        "type": spotify_type,
        "name": data.get("name"),
        "album": album,
        "artists": data.get("artists"),
        "images": data.get("images") or (album or {}).get("images") or [],
        "image": image,
    }


# --- user OAuth --------------------------------------------------------------

def build_authorize_url(state: Optional[str] = None) -> str:
    client_id, _ = _credentials()
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": callback_url(),
        "scope": " ".join(LOGIN_SCOPES),
        "show_dialog": "true",
    }
    if state:
        params["state"] = state
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


async def exchange_code(code: str) -> Dict[str, Any]:
    """Authorization-code grant. Returns Spotify's token payload."""
    client_id, client_secret = _credentials()
    async with _client() as client:
        r = await _send(
            client,
            "POST",
            TOKEN_URL,
            failure="Failed to exchange authorization code",
            auth=(client_id, client_secret),
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": callback_url(),
            },
        )
    if r.is_error:
        raise SpotifyAPIError("Failed to exchange authorization code", status_code=r.status_code)
    return r.json()


async def get_current_profile(access_token: str) -> Dict[str, Any]:
    async with _client() as client:
        r = await _send(
            client,
            "GET",
            f"{API_BASE}/me",
            failure="Failed to fetch Spotify profile",
            headers={"Authorization": f"Bearer {access_token}"},
        )
    if r.is_error:
        raise SpotifyAPIError("Failed to fetch Spotify profile", status_code=r.status_code)
    return r.json()


async def search_track_with_token(access_token: str, title: str, artist: str) -> Optional[Dict[str, Any]]:
    """
    Best single match for title+artist using a user's provider token.
    Returns the raw Spotify track object, or None when nothing matched.
    """
    params = {"q": f'track:"{title}" artist:"{artist}"', "type": "track", "limit": "1"}
    async with _client() as client:
        r = await _send(
            client,
            "GET",
            f"{API_BASE}/search",
            failure="Search failed",
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )
    if r.is_error:
        raise SpotifyAPIError("Search failed", status_code=r.status_code)
    items = ((r.json().get("tracks") or {}).get("items")) or []
    return items[0] if items else None

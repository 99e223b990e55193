"""Builders shared by the test modules."""

from music_library.core.security import create_access_token
from music_library.services.profiles import to_identity


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(to_identity(user))}"}


def spotify_track(track_id: str, name: str, artist: str = "The Weeknd", album: str = "After Hours", image: str | None = "https://i.scdn.co/image/cover"):
    """A Spotify Web API track object, trimmed to the fields the app reads."""
    return {
        "id": track_id,
        "name": name,
        "artists": [{"name": artist}],
        "album": {"name": album, "images": [{"url": image, "height": 640, "width": 640}] if image else []},
        "duration_ms": 200040,
        "preview_url": None,
    }

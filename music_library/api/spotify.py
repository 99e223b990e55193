from typing import Optional

from fastapi import APIRouter, Query

from music_library.clients import spotify
from music_library.core.errors import ValidationError
from music_library.db import schemas as s

router = APIRouter(prefix="/api/spotify", tags=["spotify"])


@router.get("/search", response_model=s.SpotifySearchResult)
async def search(
    q: Optional[str] = Query(None, description="Spotify search query"),
    limit: int = Query(10, ge=1, le=50),
):
    """Track search with an app-level (client credentials) token."""
    if not q:
        raise ValidationError("Query parameter is required")
    return {"tracks": await spotify.search_tracks(q, limit)}


@router.get("/metadata", response_model=s.SpotifyMetadata)
async def metadata(
    id: Optional[str] = Query(None),
    type: str = Query("track", description="track | album | playlist"),
):
    if not id:
        raise ValidationError("id is required")
    return await spotify.get_metadata(id, type)

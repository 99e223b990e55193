from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

SpotifyType = Literal["track", "album", "playlist"]
FriendStatus = Literal["pending", "accepted", "blocked"]


# --- Envelopes ---------------------------------------------------------------

class ErrorResult(BaseModel):
    error: str

class SuccessResult(BaseModel):
    success: bool = True

class CountResult(BaseModel):
    count: int

class LikeStatus(BaseModel):
    liked: bool


# --- Users -------------------------------------------------------------------

class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    username: str
    display_name: str
    avatar_url: Optional[str] = None

class UserPublic(UserBrief):
    spotify_id: str
    is_public: bool
    created_at: datetime
    updated_at: datetime

class ProfileUpdate(BaseModel):
    username: str = ""
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

class UserSearchResult(BaseModel):
    users: List[UserBrief]


# --- Shelves -----------------------------------------------------------------

class ShelfName(BaseModel):
    name: str = ""

class ShelfCreated(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    name: str
    created_at: datetime

class ShelfCreateResult(BaseModel):
    shelf: ShelfCreated

class ShelfItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    shelf_id: UUID
    spotify_type: SpotifyType
    spotify_id: str
    title: str
    artist: str
    album: Optional[str] = None
    image_url: Optional[str] = None
    color: Optional[str] = None
    memo: Optional[str] = None
    position: int
    created_at: datetime

class Shelf(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    sort_order: int
    created_at: datetime
    updated_at: datetime

class ShelfWithItems(Shelf):
    items: List[ShelfItem] = []

class ShelfResult(BaseModel):
    shelf: Shelf

class ShelfListResult(BaseModel):
    shelves: List[ShelfWithItems]

class DeletedResult(BaseModel):
    id: UUID

class ShelfItemCreate(BaseModel):
    # Strings default to "" so that missing fields surface as a validation message.
    spotify_type: str = ""
    spotify_id: str = ""
    title: str = ""
    artist: str = ""
    album: Optional[str] = None
    image_url: Optional[str] = None
    color: Optional[str] = None

class ShelfItemResult(BaseModel):
    item: ShelfItem

class ShelfItemListResult(BaseModel):
    items: List[ShelfItem]

class ReorderItems(BaseModel):
    item_ids: List[UUID]

class ReorderShelves(BaseModel):
    shelf_ids: List[UUID]

class ItemTransfer(BaseModel):
    to_shelf_id: UUID

class MemoUpdate(BaseModel):
    memo: Optional[str] = None


# --- Friends -----------------------------------------------------------------

class FriendRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    status: FriendStatus
    created_at: datetime
    user: UserBrief  # the requester

class FriendRequestListResult(BaseModel):
    requests: List[FriendRequest]

class FriendListResult(BaseModel):
    friends: List[UserBrief]


# --- Comments & likes --------------------------------------------------------

class CommentCreate(BaseModel):
    content: str = ""

class Comment(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    shelf_item_id: UUID
    content: str
    created_at: datetime
    updated_at: datetime
    user: UserBrief
    like_count: int = 0

class CommentResult(BaseModel):
    comment: Comment

class CommentListResult(BaseModel):
    comments: List[Comment]

class Like(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    created_at: datetime
    user: UserBrief

class LikeListResult(BaseModel):
    likes: List[Like]


# --- Spotify -----------------------------------------------------------------

class SpotifyTrack(BaseModel):
    id: str
    name: str
    artists: str
    album: str
    image: Optional[str] = None
    type: Literal["track"] = "track"
    spotify_id: str
    spotify_type: Literal["track"] = "track"
    duration_ms: Optional[int] = None
    preview_url: Optional[str] = None

class SpotifySearchResult(BaseModel):
    tracks: List[SpotifyTrack]

class SpotifyMetadata(BaseModel):
    id: str
    type: SpotifyType
    name: str
    album: Optional[dict[str, Any]] = None
    artists: Optional[List[dict[str, Any]]] = None
    images: List[dict[str, Any]] = []
    image: Optional[str] = None

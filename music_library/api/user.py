import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from music_library.api.deps import current_user_id, get_db
from music_library.db import schemas as s
from music_library.services import profiles

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/me", response_model=s.UserPublic)
def get_me(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(current_user_id)):
    return profiles.get_profile(db, user_id)


@router.patch("/me", response_model=s.UserPublic)
def update_me(
    update: s.ProfileUpdate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Username is 3-20 chars and unique; display name falls back to it."""
    return profiles.update_profile(
        db,
        user_id,
        username=update.username,
        display_name=update.display_name,
        avatar_url=update.avatar_url,
    )

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from music_library.api.deps import current_user_id, get_db
from music_library.db import schemas as s
from music_library.services import interactions

router = APIRouter(tags=["interactions"])


# --- comments ----------------------------------------------------------------

@router.get("/items/{item_id:uuid}/comments", response_model=s.CommentListResult)
def get_comments(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"comments": interactions.get_comments(db, user_id, item_id)}


@router.post("/items/{item_id:uuid}/comments", response_model=s.CommentResult, status_code=201)
def add_comment(
    item_id: uuid.UUID,
    payload: s.CommentCreate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"comment": interactions.add_comment(db, user_id, item_id, payload.content)}


@router.get("/items/{item_id:uuid}/comments/count", response_model=s.CountResult)
def comment_count(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"count": interactions.comment_count(db, user_id, item_id)}


@router.delete("/comments/{comment_id:uuid}", response_model=s.SuccessResult)
def delete_comment(
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    interactions.delete_comment(db, user_id, comment_id)
    return {"success": True}


@router.post("/comments/{comment_id:uuid}/like", response_model=s.LikeStatus)
def toggle_comment_like(
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"liked": interactions.toggle_comment_like(db, user_id, comment_id)}


@router.get("/comments/{comment_id:uuid}/likes/count", response_model=s.CountResult)
def comment_like_count(
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"count": interactions.comment_like_count(db, user_id, comment_id)}


# --- likes -------------------------------------------------------------------

@router.post("/items/{item_id:uuid}/like", response_model=s.LikeStatus)
def toggle_like(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"liked": interactions.toggle_like(db, user_id, item_id)}


@router.get("/items/{item_id:uuid}/like", response_model=s.LikeStatus)
def like_status(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"liked": interactions.user_like_status(db, user_id, item_id)}


@router.get("/items/{item_id:uuid}/likes", response_model=s.LikeListResult)
def get_likes(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"likes": interactions.get_likes(db, user_id, item_id)}


@router.get("/items/{item_id:uuid}/likes/count", response_model=s.CountResult)
def like_count(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"count": interactions.like_count(db, user_id, item_id)}

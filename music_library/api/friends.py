import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from music_library.api.deps import current_user_id, get_db
from music_library.db import schemas as s
from music_library.services import friends

router = APIRouter(tags=["friends"])


@router.get("/users/search", response_model=s.UserSearchResult)
def search_users(
    q: str = Query("", description="username or display name, 2+ chars"),
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"users": friends.search_users(db, user_id, q)}


@router.get("/friends", response_model=s.FriendListResult)
def list_friends(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(current_user_id)):
    return {"friends": friends.list_friends(db, user_id)}


@router.delete("/friends/{friend_id:uuid}", response_model=s.SuccessResult)
def remove_friend(
    friend_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    friends.remove_friend(db, user_id, friend_id)
    return {"success": True}


@router.get("/friends/requests", response_model=s.FriendRequestListResult)
def list_incoming_requests(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(current_user_id)):
    return {"requests": friends.list_incoming_requests(db, user_id)}


@router.get("/friends/requests/count", response_model=s.CountResult)
def pending_requests_count(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(current_user_id)):
    return {"count": friends.pending_requests_count(db, user_id)}


@router.post("/friends/requests/{friend_id:uuid}", response_model=s.SuccessResult, status_code=201)
def send_friend_request(
    friend_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    friends.send_friend_request(db, user_id, friend_id)
    return {"success": True}


@router.post("/friends/requests/{requester_id:uuid}/accept", response_model=s.SuccessResult)
def accept_friend_request(
    requester_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    friends.accept_friend_request(db, user_id, requester_id)
    return {"success": True}


@router.post("/friends/requests/{requester_id:uuid}/reject", response_model=s.SuccessResult)
def reject_friend_request(
    requester_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    friends.reject_friend_request(db, user_id, requester_id)
    return {"success": True}

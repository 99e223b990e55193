import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from music_library.api.deps import current_identity, current_user_id, get_db
from music_library.core.security import Identity
from music_library.db import schemas as s
from music_library.services import shelves

router = APIRouter(tags=["shelves"])


# --- shelves -----------------------------------------------------------------

@router.get("/shelves", response_model=s.ShelfListResult)
def list_my_shelves(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(current_user_id)):
    """The caller's shelves in sort order, each with its items in position order."""
    return {"shelves": shelves.list_shelves(db, user_id)}


@router.get("/users/{owner_id:uuid}/shelves", response_model=s.ShelfListResult)
def list_user_shelves(
    owner_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"shelves": shelves.list_shelves(db, user_id, owner_id)}


@router.post("/shelves", response_model=s.ShelfCreateResult, status_code=201)
def create_shelf(
    payload: s.ShelfName,
    db: Session = Depends(get_db),
    identity: Identity = Depends(current_identity),
):
    return {"shelf": shelves.create_shelf(db, identity, payload.name)}


@router.patch("/shelves/{shelf_id:uuid}", response_model=s.ShelfResult)
def rename_shelf(
    shelf_id: uuid.UUID,
    payload: s.ShelfName,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"shelf": shelves.update_shelf(db, user_id, shelf_id, payload.name)}


@router.delete("/shelves/{shelf_id:uuid}", response_model=s.DeletedResult)
def delete_shelf(
    shelf_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"id": shelves.delete_shelf(db, user_id, shelf_id)}


@router.put("/shelves/order", response_model=s.SuccessResult)
def reorder_shelves(
    payload: s.ReorderShelves,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    shelves.reorder_shelves(db, user_id, payload.shelf_ids)
    return {"success": True}


# --- items -------------------------------------------------------------------

@router.get("/shelves/{shelf_id:uuid}/items", response_model=s.ShelfItemListResult)
def get_shelf_items(
    shelf_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"items": shelves.get_shelf_items(db, user_id, shelf_id)}


@router.post("/shelves/{shelf_id:uuid}/items", response_model=s.ShelfItemResult, status_code=201)
def add_shelf_item(
    shelf_id: uuid.UUID,
    payload: s.ShelfItemCreate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    item = shelves.add_shelf_item(
        db,
        user_id,
        shelf_id,
        spotify_type=payload.spotify_type,
        spotify_id=payload.spotify_id,
        title=payload.title,
        artist=payload.artist,
        album=payload.album,
        image_url=payload.image_url,
        color=payload.color,
    )
    return {"item": item}


@router.put("/shelves/{shelf_id:uuid}/items/order", response_model=s.SuccessResult)
def reorder_shelf_items(
    shelf_id: uuid.UUID,
    payload: s.ReorderItems,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    shelves.reorder_shelf_items(db, user_id, shelf_id, payload.item_ids)
    return {"success": True}


@router.delete("/items/{item_id:uuid}", response_model=s.SuccessResult)
def delete_shelf_item(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    shelves.delete_shelf_item(db, user_id, item_id)
    return {"success": True}


@router.post("/items/{item_id:uuid}/move", response_model=s.ShelfItemResult)
def move_shelf_item(
    item_id: uuid.UUID,
    payload: s.ItemTransfer,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"item": shelves.move_shelf_item(db, user_id, item_id, payload.to_shelf_id)}


@router.post("/items/{item_id:uuid}/duplicate", response_model=s.ShelfItemResult, status_code=201)
def duplicate_shelf_item(
    item_id: uuid.UUID,
    payload: s.ItemTransfer,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return {"item": shelves.duplicate_shelf_item(db, user_id, item_id, payload.to_shelf_id)}


@router.patch("/items/{item_id:uuid}/memo", response_model=s.SuccessResult)
def update_memo(
    item_id: uuid.UUID,
    payload: s.MemoUpdate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    shelves.update_shelf_item_memo(db, user_id, item_id, payload.memo)
    return {"success": True}

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from moviebox_user.lists.lists_service import ListsService
from moviebox_user.lists.schemas import (
    BuiltinListsOut,
    ListChangeOut,
    ListItemsPage,
    ListRecord,
)

from app.deps.supabase_client import get_current_user_id, get_lists_service
from app.routers._helpers import parse_movie_id
from app.schemas import AddListItemRequest, CreateListRequest

router = APIRouter(prefix="/lists", tags=["lists"])


@router.get("", response_model=list[ListRecord])
async def get_lists(
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    return await service.get_lists(user_id)


@router.post("", response_model=ListRecord)
async def create_list(
    req: CreateListRequest,
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    return await service.create_list(user_id, req.title)


@router.delete("")
async def delete_list(
    id: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    if not id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "List ID is required")
    await service.delete_list(user_id, id)
    return {"success": True}


# ---- Built-in lists ----
@router.get("/builtin", response_model=list[ListRecord])
async def get_builtin_lists(
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    return await service.get_builtin_lists(user_id)


@router.post("/builtin", response_model=BuiltinListsOut)
async def ensure_builtin_lists(
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    return await service.ensure_builtin_lists(user_id)


# ---- Items; `identifier` is a list id or slug ----
@router.get("/{identifier}/items", response_model=ListItemsPage)
async def get_items(
    identifier: str,
    page: int = 1,
    limit: int = 20,
    search: str = "",
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    return await service.get_items(
        user_id, identifier, page=page, limit=limit, search=search
    )


@router.post("/{identifier}/items", response_model=ListChangeOut)
async def add_item(
    identifier: str,
    req: AddListItemRequest,
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    if req.movieId is None or req.movieId == "":
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Movie ID is required")
    return await service.add_item(user_id, identifier, parse_movie_id(str(req.movieId)))


@router.delete("/{identifier}/items/{movie_id}", response_model=ListChangeOut)
async def remove_item(
    identifier: str,
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ListsService = Depends(get_lists_service),
):
    return await service.remove_item(user_id, identifier, movie_id)

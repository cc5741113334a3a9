from typing import Annotated, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status, Body
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.deps import (
    get_database, get_current_user, get_optional_user,
    pagination_params, post_filter_params, valid_post_id
)
from app.core.utils import build_pagination
from app.crud.comment import add_comment
from app.crud.post import (
    view_post, get_posts, get_posts_count, search_posts,
    create_post, update_post, delete_post
)
from app.models.comment import Comment, CommentCreate
from app.models.common import EmptyData, Envelope, PaginatedEnvelope
from app.models.post import Post, PostCreate, PostUpdate

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")


@router.get("", response_model=PaginatedEnvelope[Post])
async def get_posts_route(
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
    pagination: Annotated[dict, Depends(pagination_params)],
    filters: Annotated[dict, Depends(post_filter_params)]
):
    """Список опубликованных постов с пагинацией и фильтром по категории."""
    total = await get_posts_count(db, filters)
    posts = await get_posts(db, pagination["page"], pagination["limit"], filters)

    return {
        "data": posts,
        "pagination": build_pagination(pagination["page"], pagination["limit"], total),
    }


@router.get("/search", response_model=Envelope[List[Post]])
async def search_posts_route(
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
    q: Annotated[Optional[str], Query()] = None
):
    """Поиск по опубликованным постам, не более 50 результатов."""
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required"
        )
    return {"data": await search_posts(db, q.strip())}


@router.get("/{post_id}", response_model=Envelope[Post])
async def get_post_route(
    post_id: Annotated[str, Depends(valid_post_id)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """Получение поста по ID; каждый запрос увеличивает счетчик просмотров."""
    post = await view_post(db, post_id)
    if not post:
        raise _not_found()
    return {"data": post}


@router.post("", response_model=Envelope[Post], status_code=status.HTTP_201_CREATED)
async def create_post_route(
    post_data: Annotated[PostCreate, Body(...)],
    current_user: Annotated[dict, Depends(get_current_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """Создание нового поста от имени текущего пользователя."""
    return {"data": await create_post(db, post_data, current_user["id"])}


@router.put("/{post_id}", response_model=Envelope[Post])
async def update_post_route(
    post_id: Annotated[str, Depends(valid_post_id)],
    post_data: Annotated[PostUpdate, Body(...)],
    current_user: Annotated[dict, Depends(get_current_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """
    Обновление поста.
    Пользователи могут обновлять только свои посты.
    """
    updated_post = await update_post(db, post_id, post_data, current_user["id"])
    if not updated_post:
        raise _not_found()
    return {"data": updated_post}


@router.delete("/{post_id}", response_model=Envelope[EmptyData])
async def delete_post_route(
    post_id: Annotated[str, Depends(valid_post_id)],
    current_user: Annotated[dict, Depends(get_current_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """
    Удаление поста.
    Пользователи могут удалять только свои посты.
    """
    if not await delete_post(db, post_id, current_user["id"]):
        raise _not_found()
    return {"data": {}}


@router.post("/{post_id}/comments", response_model=Envelope[Comment], status_code=status.HTTP_201_CREATED)
async def add_comment_route(
    post_id: Annotated[str, Depends(valid_post_id)],
    comment_data: Annotated[CommentCreate, Body(...)],
    current_user: Annotated[Optional[Dict], Depends(get_optional_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """Добавление комментария к посту; авторизация не обязательна."""
    author_name = current_user["name"] if current_user else None
    comment = await add_comment(db, post_id, comment_data, author_name)
    if not comment:
        raise _not_found()
    return {"data": comment}

from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status, Body
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.deps import get_database, get_current_user, valid_category_id
from app.crud.category import (
    get_categories, get_category_by_id, create_category,
    update_category, delete_category
)
from app.models.category import Category, CategoryCreate, CategoryUpdate
from app.models.common import CollectionEnvelope, EmptyData, Envelope

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")


@router.get("", response_model=CollectionEnvelope[Category])
async def get_categories_route(
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    categories = await get_categories(db)
    return {"count": len(categories), "data": categories}


@router.get("/{category_id}", response_model=Envelope[Category])
async def get_category_route(
    category_id: Annotated[str, Depends(valid_category_id)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    category = await get_category_by_id(db, category_id)
    if not category:
        raise _not_found()
    return {"data": category}


@router.post("", response_model=Envelope[Category], status_code=status.HTTP_201_CREATED)
async def create_category_route(
    category_data: Annotated[CategoryCreate, Body(...)],
    current_user: Annotated[dict, Depends(get_current_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """Создание категории; имя должно быть уникальным."""
    return {"data": await create_category(db, category_data)}


@router.put("/{category_id}", response_model=Envelope[Category])
async def update_category_route(
    category_id: Annotated[str, Depends(valid_category_id)],
    category_data: Annotated[CategoryUpdate, Body(...)],
    current_user: Annotated[dict, Depends(get_current_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    category = await update_category(db, category_id, category_data)
    if not category:
        raise _not_found()
    return {"data": category}


@router.delete("/{category_id}", response_model=Envelope[EmptyData])
async def delete_category_route(
    category_id: Annotated[str, Depends(valid_category_id)],
    current_user: Annotated[dict, Depends(get_current_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    if not await delete_category(db, category_id):
        raise _not_found()
    return {"data": {}}

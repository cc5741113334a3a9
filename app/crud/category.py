import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from fastapi import HTTPException, status

from app.core.utils import generate_slug
from app.models.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "Category with this name already exists"


def _serialize(category: Dict[str, Any]) -> Dict[str, Any]:
    category["id"] = str(category.pop("_id"))
    return category


def _conflict() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_NAME)


async def get_category_by_id(db: AsyncIOMotorDatabase, category_id: str) -> Optional[Dict[str, Any]]:
    category = await db.categories.find_one({"_id": ObjectId(category_id)})
    if not category:
        return None
    return _serialize(category)


async def get_category_ref(db: AsyncIOMotorDatabase, category_id: str) -> Optional[Dict[str, Any]]:
    """Краткое представление категории для подстановки в пост."""
    category = await db.categories.find_one(
        {"_id": ObjectId(category_id)},
        {"name": 1, "slug": 1}
    )
    if not category:
        return None
    return {"id": str(category["_id"]), "name": category["name"], "slug": category.get("slug")}


async def category_exists(db: AsyncIOMotorDatabase, category_id: str) -> bool:
    return await db.categories.find_one({"_id": ObjectId(category_id)}, {"_id": 1}) is not None


async def get_categories(db: AsyncIOMotorDatabase) -> List[Dict[str, Any]]:
    """Все категории, отсортированные по имени."""
    cursor = db.categories.find({}).sort("name", 1)

    categories = []
    async for category in cursor:
        categories.append(_serialize(category))

    return categories


async def create_category(db: AsyncIOMotorDatabase, category_data: CategoryCreate) -> Dict[str, Any]:
    category_dict = category_data.model_dump()

    # Проверка уникальности имени
    if await db.categories.find_one({"name": category_dict["name"]}):
        raise _conflict()

    now = datetime.now(timezone.utc)
    category_dict["slug"] = generate_slug(category_dict["name"])
    category_dict["created_at"] = now
    category_dict["updated_at"] = now

    try:
        result = await db.categories.insert_one(category_dict)
    except DuplicateKeyError:
        raise _conflict()

    logger.info("Category %s created", result.inserted_id)
    return await get_category_by_id(db, str(result.inserted_id))


async def update_category(
    db: AsyncIOMotorDatabase,
    category_id: str,
    category_data: CategoryUpdate
) -> Optional[Dict[str, Any]]:
    category = await db.categories.find_one({"_id": ObjectId(category_id)})
    if not category:
        return None

    update_data = {k: v for k, v in category_data.model_dump(exclude_unset=True).items() if v is not None}

    if "name" in update_data and update_data["name"] != category["name"]:
        existing = await db.categories.find_one({"name": update_data["name"]})
        if existing:
            raise _conflict()
        update_data["slug"] = generate_slug(update_data["name"])

    update_data["updated_at"] = datetime.now(timezone.utc)

    try:
        await db.categories.update_one(
            {"_id": ObjectId(category_id)},
            {"$set": update_data}
        )
    except DuplicateKeyError:
        raise _conflict()

    return await get_category_by_id(db, category_id)


async def delete_category(db: AsyncIOMotorDatabase, category_id: str) -> bool:
    result = await db.categories.delete_one({"_id": ObjectId(category_id)})
    if result.deleted_count:
        logger.info("Category %s deleted", category_id)
    return result.deleted_count > 0

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from fastapi import HTTPException, status

from app.core.utils import build_search_regex, get_summary_from_content
from app.crud.category import category_exists, get_category_ref
from app.models.post import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50
# Автоматический excerpt вместе с "..." не длиннее 200 символов
EXCERPT_LENGTH = 197
DUPLICATE_TITLE = "Post with this title already exists"


def _conflict() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_TITLE)


def _invalid_category() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category")


async def populate_post(db: AsyncIOMotorDatabase, post: Dict[str, Any]) -> Dict[str, Any]:
    """Замена ссылок на категорию и автора их данными."""
    category_id = post.get("category")
    post["category"] = await get_category_ref(db, category_id) if category_id else None

    author_id = post.get("author")
    post["author"] = None
    if author_id:
        author = await db.users.find_one({"_id": ObjectId(author_id)}, {"name": 1})
        if author:
            # Только публичные поля, пароль не попадает в ответ
            post["author"] = {"id": str(author["_id"]), "name": author.get("name")}

    post.setdefault("comments", [])
    post["id"] = str(post.pop("_id"))
    return post


def _build_query(filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    # Наружу отдаются только опубликованные посты
    query: Dict[str, Any] = {"is_published": True}
    if filters and filters.get("category"):
        query["category"] = filters["category"]
    return query


async def get_post_by_id(db: AsyncIOMotorDatabase, post_id: str) -> Optional[Dict[str, Any]]:
    post = await db.posts.find_one({"_id": ObjectId(post_id)})
    if not post:
        return None
    return await populate_post(db, post)


async def view_post(db: AsyncIOMotorDatabase, post_id: str) -> Optional[Dict[str, Any]]:
    """Получение поста с увеличением счетчика просмотров на единицу."""
    result = await db.posts.update_one(
        {"_id": ObjectId(post_id)},
        {"$inc": {"view_count": 1}}
    )
    if result.matched_count == 0:
        return None
    return await get_post_by_id(db, post_id)


async def get_posts(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 10,
    filters: Optional[Dict[str, Any]] = None
) -> List[Dict[str, Any]]:
    """Получение страницы опубликованных постов, сначала новые."""
    skip = (page - 1) * limit
    cursor = db.posts.find(_build_query(filters)).sort("created_at", -1).skip(skip).limit(limit)

    posts = []
    async for post in cursor:
        posts.append(await populate_post(db, post))

    return posts


async def get_posts_count(db: AsyncIOMotorDatabase, filters: Optional[Dict[str, Any]] = None) -> int:
    return await db.posts.count_documents(_build_query(filters))


async def search_posts(db: AsyncIOMotorDatabase, q: str, limit: int = SEARCH_LIMIT) -> List[Dict[str, Any]]:
    """Поиск подстроки без учета регистра по заголовку, тексту и excerpt."""
    pattern = build_search_regex(q)
    query = {
        "is_published": True,
        "$or": [
            {"title": pattern},
            {"content": pattern},
            {"excerpt": pattern},
        ],
    }
    cursor = db.posts.find(query).sort("created_at", -1).limit(limit)

    posts = []
    async for post in cursor:
        posts.append(await populate_post(db, post))

    return posts


async def create_post(
    db: AsyncIOMotorDatabase,
    post_data: PostCreate,
    author_id: str
) -> Dict[str, Any]:
    """Создание нового поста."""
    post_dict = post_data.model_dump()
    now = datetime.now(timezone.utc)

    # Категория должна существовать на момент записи
    if not await category_exists(db, post_dict["category"]):
        raise _invalid_category()

    if await db.posts.find_one({"title": post_dict["title"]}):
        raise _conflict()

    if not post_dict.get("excerpt"):
        post_dict["excerpt"] = get_summary_from_content(post_dict["content"], EXCERPT_LENGTH)

    post_dict["author"] = author_id
    post_dict["view_count"] = 0
    post_dict["comments"] = []
    post_dict["created_at"] = now
    post_dict["updated_at"] = now

    try:
        result = await db.posts.insert_one(post_dict)
    except DuplicateKeyError:
        raise _conflict()

    logger.info("Post %s created by %s", result.inserted_id, author_id)
    return await get_post_by_id(db, str(result.inserted_id))


async def update_post(
    db: AsyncIOMotorDatabase,
    post_id: str,
    post_data: PostUpdate,
    author_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """Частичное обновление поста: меняются только переданные поля."""
    post = await db.posts.find_one({"_id": ObjectId(post_id)})
    if not post:
        return None

    if author_id and post.get("author") != author_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to update this post"
        )

    update_data = {k: v for k, v in post_data.model_dump(exclude_unset=True).items() if v is not None}

    if "category" in update_data and not await category_exists(db, update_data["category"]):
        raise _invalid_category()

    if "title" in update_data and update_data["title"] != post.get("title"):
        existing_post = await db.posts.find_one({"title": update_data["title"]})
        if existing_post:
            raise _conflict()

    update_data["updated_at"] = datetime.now(timezone.utc)

    try:
        await db.posts.update_one(
            {"_id": ObjectId(post_id)},
            {"$set": update_data}
        )
    except DuplicateKeyError:
        raise _conflict()

    return await get_post_by_id(db, post_id)


async def delete_post(
    db: AsyncIOMotorDatabase,
    post_id: str,
    author_id: Optional[str] = None
) -> bool:
    """Удаление поста вместе со встроенными комментариями."""
    post = await db.posts.find_one({"_id": ObjectId(post_id)}, {"author": 1})
    if not post:
        return False

    if author_id and post.get("author") != author_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to delete this post"
        )

    result = await db.posts.delete_one({"_id": ObjectId(post_id)})
    if result.deleted_count:
        logger.info("Post %s deleted", post_id)
    return result.deleted_count > 0

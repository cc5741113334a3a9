from datetime import datetime, timezone
from typing import Optional, Dict, Any
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.comment import CommentCreate

ANONYMOUS = "Anonymous"


async def add_comment(
    db: AsyncIOMotorDatabase,
    post_id: str,
    comment_data: CommentCreate,
    author_name: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """Добавление комментария в конец списка комментариев поста."""
    comment = {
        "id": str(ObjectId()),
        "content": comment_data.content,
        # Явная подпись важнее имени из токена
        "author": comment_data.author or author_name or ANONYMOUS,
        "created_at": datetime.now(timezone.utc),
    }

    result = await db.posts.update_one(
        {"_id": ObjectId(post_id)},
        {"$push": {"comments": comment}}
    )
    if result.matched_count == 0:
        return None

    return comment

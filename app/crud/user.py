import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from fastapi import HTTPException, status

from app.core.security import get_password_hash, verify_password
from app.core.utils import is_valid_object_id
from app.models.user import UserRegister

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "User with this email already exists"


def to_public(user: Dict[str, Any]) -> Dict[str, Any]:
    """Поля, которые можно отдавать клиенту и класть в токен."""
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
    }


async def get_user_by_id(db: AsyncIOMotorDatabase, user_id: str) -> Optional[Dict[str, Any]]:
    if not is_valid_object_id(user_id):
        return None
    user = await db.users.find_one({"_id": ObjectId(user_id)})
    if not user:
        return None
    return to_public(user)


async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[Dict[str, Any]]:
    """Документ пользователя вместе с хешем пароля."""
    return await db.users.find_one({"email": email.lower()})


async def create_user(db: AsyncIOMotorDatabase, user_data: UserRegister) -> Dict[str, Any]:
    if await get_user_by_email(db, user_data.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)

    user_dict = {
        "name": user_data.name,
        "email": user_data.email,
        "password": get_password_hash(user_data.password),
        "created_at": datetime.now(timezone.utc),
    }

    try:
        result = await db.users.insert_one(user_dict)
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)

    user_dict["_id"] = result.inserted_id
    logger.info("User %s registered", result.inserted_id)
    return to_public(user_dict)


async def authenticate_user(db: AsyncIOMotorDatabase, email: str, password: str) -> Optional[Dict[str, Any]]:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user["password"]):
        return None
    return to_public(user)

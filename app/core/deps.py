import logging
from typing import Annotated, Dict, Optional
from jose import JWTError, jwt

from fastapi import Depends, HTTPException, Path, Query, status
from fastapi.exceptions import RequestValidationError
from fastapi.security import OAuth2PasswordBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import get_settings
from app.core.utils import is_valid_object_id
from app.db.mongodb import get_database
from app.crud.user import get_user_by_id

settings = get_settings()
logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login",
    auto_error=False
)


def invalid_field(field: str, message: str, location: str = "path") -> RequestValidationError:
    return RequestValidationError([
        {"loc": (location, field), "msg": message, "type": "value_error"}
    ])


def _decode_user_id(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
) -> Dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = _decode_user_id(token)
    if user_id is None:
        logger.warning("Rejected bearer token")
        raise credentials_exception

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise credentials_exception

    return user


async def get_optional_user(
    token: Annotated[Optional[str], Depends(optional_oauth2_scheme)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
) -> Optional[Dict]:
    """Пользователь, если передан валидный токен; иначе None без ошибки."""
    if not token:
        return None
    user_id = _decode_user_id(token)
    if user_id is None:
        return None
    return await get_user_by_id(db, user_id)


async def valid_post_id(post_id: Annotated[str, Path(...)]) -> str:
    if not is_valid_object_id(post_id):
        raise invalid_field("id", "Invalid post ID")
    return post_id


async def valid_category_id(category_id: Annotated[str, Path(...)]) -> str:
    if not is_valid_object_id(category_id):
        raise invalid_field("id", "Invalid category ID")
    return category_id


async def pagination_params(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10
) -> Dict:
    return {"page": page, "limit": limit}


async def post_filter_params(
    category: Annotated[Optional[str], Query()] = None
) -> Dict:
    filters = {}
    if category:
        if not is_valid_object_id(category):
            raise invalid_field("category", "Invalid category ID", "query")
        filters["category"] = category
    return filters

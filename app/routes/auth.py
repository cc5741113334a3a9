import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status, Body
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.deps import get_database, get_current_user
from app.core.security import create_access_token
from app.crud.user import authenticate_user, create_user
from app.models.auth import AuthResult
from app.models.common import Envelope
from app.models.user import UserLogin, UserPublic, UserRegister

router = APIRouter()
logger = logging.getLogger(__name__)


def _issue(user: dict) -> dict:
    token = create_access_token(user["id"], {"name": user["name"], "email": user["email"]})
    return {"user": user, "token": token}


@router.post("/register", response_model=Envelope[AuthResult], status_code=status.HTTP_201_CREATED)
async def register_route(
    user_data: Annotated[UserRegister, Body(...)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """Регистрация пользователя и выпуск токена."""
    user = await create_user(db, user_data)
    return {"data": _issue(user)}


@router.post("/login", response_model=Envelope[AuthResult])
async def login_route(
    credentials: Annotated[UserLogin, Body(...)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
):
    """Вход по email и паролю."""
    user = await authenticate_user(db, credentials.email, credentials.password)
    if not user:
        logger.warning("Failed login for %s", credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )
    return {"data": _issue(user)}


@router.get("/me", response_model=Envelope[UserPublic])
async def read_me(
    current_user: Annotated[dict, Depends(get_current_user)]
):
    """Получение информации о текущем пользователе."""
    return {"data": current_user}

from app.models.common import CamelModel
from app.models.user import UserPublic


class AuthResult(CamelModel):
    """Пользователь и выпущенный для него JWT токен"""
    user: UserPublic
    token: str

from pydantic import ConfigDict, EmailStr, Field, field_validator

from app.models.common import CamelModel


class UserRegister(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UserPublic(CamelModel):
    """Публичный профиль: пароль никогда не отдаётся."""
    id: str
    name: str
    email: str

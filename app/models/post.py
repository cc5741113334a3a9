from datetime import datetime
from typing import List, Optional
from pydantic import ConfigDict, Field, field_validator

from app.core.utils import is_valid_object_id, normalize_tags
from app.models.category import CategoryRef
from app.models.comment import Comment
from app.models.common import CamelModel


class PostBase(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = Field(None, max_length=200)
    tags: List[str] = Field(default_factory=list)


class PostCreate(PostBase):
    category: str
    is_published: bool = False

    @field_validator("category")
    @classmethod
    def check_category_id(cls, value: str) -> str:
        if not is_valid_object_id(value):
            raise ValueError("Valid category ID is required")
        return value

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: List[str]) -> List[str]:
        return normalize_tags(value)


class PostUpdate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def check_category_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_object_id(value):
            raise ValueError("Valid category ID is required")
        return value

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return normalize_tags(value) if value is not None else None


class PostAuthor(CamelModel):
    id: str
    name: str


class Post(PostBase):
    id: str
    category: Optional[CategoryRef] = None
    author: Optional[PostAuthor] = None
    is_published: bool
    view_count: int = 0
    comments: List[Comment] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

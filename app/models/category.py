from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from app.models.common import CamelModel


class CategoryBase(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)


class CategoryRef(CamelModel):
    id: str
    name: str
    slug: Optional[str] = None


class Category(CategoryBase):
    id: str
    slug: str
    created_at: datetime
    updated_at: datetime

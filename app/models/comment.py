from typing import Optional
from pydantic import ConfigDict, Field
from datetime import datetime

from app.models.common import CamelModel


class CommentCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1)
    author: Optional[str] = Field(None, max_length=50)


class Comment(CamelModel):
    id: str
    content: str
    author: str
    created_at: datetime

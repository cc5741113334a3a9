from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """JSON наружу в camelCase, на вход принимаются оба варианта имён."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_posts: int
    has_next: bool
    has_prev: bool


class FieldError(BaseModel):
    field: str
    message: str
    location: Optional[str] = None


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    data: T


class PaginatedEnvelope(CamelModel, Generic[T]):
    success: bool = True
    data: List[T]
    pagination: Pagination


class CollectionEnvelope(CamelModel, Generic[T]):
    success: bool = True
    count: int
    data: List[T]


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: Optional[str] = None
    errors: Optional[List[FieldError]] = None


EmptyData = Dict[str, Any]

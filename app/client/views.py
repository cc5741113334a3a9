from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.client.api import ApiError
from app.client.store import Store

UNCATEGORIZED = "Uncategorized"
SUMMARY_LENGTH = 150


def format_date(value: Optional[str]) -> str:
    """ISO-дата в виде "October 18, 2026"."""
    if not value:
        return ""
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{moment:%B} {moment.day}, {moment.year}"


def summarize(post: Dict[str, Any]) -> str:
    if post.get("excerpt"):
        return post["excerpt"]
    return (post.get("content") or "")[:SUMMARY_LENGTH] + "..."


class PostCard(BaseModel):
    id: str
    title: str
    href: str
    category_name: str
    date_label: str
    summary: str


class PageControls(BaseModel):
    current_page: int
    total_pages: int
    has_prev: bool
    has_next: bool


class CategoryFilter(BaseModel):
    label: str
    category_id: Optional[str] = None
    active: bool = False


def _card(post: Dict[str, Any]) -> PostCard:
    category = post.get("category") or {}
    return PostCard(
        id=post["id"],
        title=post.get("title", ""),
        href=f"/post/{post['id']}",
        category_name=category.get("name") or UNCATEGORIZED,
        date_label=format_date(post.get("createdAt")),
        summary=summarize(post),
    )


class PostListView:
    """Список постов: поиск, фильтр по категории и постраничная навигация."""

    def __init__(self, store: Store, page_size: int = 10):
        self.store = store
        self.page_size = page_size
        self.selected_category: Optional[str] = None
        self.search_query = ""
        self.current_page = 1

    @property
    def searching(self) -> bool:
        return bool(self.search_query.strip())

    @property
    def status(self) -> str:
        state = self.store.state
        if state.loading and not state.posts:
            return "loading"
        if state.error:
            return "error"
        if not state.posts:
            return "empty"
        return "ready"

    async def load(self) -> None:
        if self.searching:
            await self.store.search_posts(self.search_query.strip())
        else:
            await self.store.fetch_posts(self.current_page, self.page_size, self.selected_category)

    async def search(self, query: str) -> None:
        self.search_query = query
        await self.load()

    async def select_category(self, category_id: Optional[str]) -> None:
        self.selected_category = category_id
        self.current_page = 1
        await self.load()

    async def next_page(self) -> None:
        pagination = self.store.state.pagination
        if pagination and pagination.get("hasNext"):
            self.current_page = min(self.current_page + 1, pagination["totalPages"])
            await self.load()

    async def prev_page(self) -> None:
        pagination = self.store.state.pagination
        if pagination and pagination.get("hasPrev"):
            self.current_page = max(self.current_page - 1, 1)
            await self.load()

    def cards(self) -> List[PostCard]:
        return [_card(post) for post in self.store.state.posts]

    def category_filters(self) -> List[CategoryFilter]:
        filters = [CategoryFilter(label="All Posts", active=self.selected_category is None)]
        for category in self.store.state.categories:
            filters.append(CategoryFilter(
                label=category["name"],
                category_id=category["id"],
                active=self.selected_category == category["id"],
            ))
        return filters

    def controls(self) -> Optional[PageControls]:
        pagination = self.store.state.pagination
        if self.searching or not pagination or pagination.get("totalPages", 0) <= 1:
            return None
        return PageControls(
            current_page=pagination["currentPage"],
            total_pages=pagination["totalPages"],
            has_prev=pagination["hasPrev"],
            has_next=pagination["hasNext"],
        )


class PostDetailView:
    def __init__(self, store: Store, post_id: str):
        self.store = store
        self.post_id = post_id
        self.post: Optional[Dict[str, Any]] = None

    async def load(self) -> Optional[Dict[str, Any]]:
        self.post = await self.store.fetch_post(self.post_id)
        return self.post

    @property
    def comments(self) -> List[Dict[str, Any]]:
        return list((self.post or {}).get("comments") or [])

    async def add_comment(self, content: str, author: Optional[str] = None) -> Dict[str, Any]:
        comment = await self.store.add_comment(self.post_id, content, author)
        if self.post is not None:
            self.post = {**self.post, "comments": self.comments + [comment]}
        return comment


class PostFormView:
    """Форма создания и редактирования поста."""

    FIELDS = ("title", "content", "excerpt", "category")

    def __init__(self, store: Store, post_id: Optional[str] = None):
        self.store = store
        self.post_id = post_id
        self.values: Dict[str, str] = {field: "" for field in self.FIELDS}
        self.errors: Dict[str, str] = {}
        self.submitting = False

    @property
    def is_editing(self) -> bool:
        return self.post_id is not None

    async def load(self) -> None:
        if not self.is_editing:
            return
        post = await self.store.fetch_post(self.post_id)
        if post:
            self.values = {
                "title": post.get("title") or "",
                "content": post.get("content") or "",
                "excerpt": post.get("excerpt") or "",
                "category": (post.get("category") or {}).get("id", ""),
            }

    def change(self, field: str, value: str) -> None:
        self.values[field] = value
        # Ошибка поля сбрасывается при вводе
        self.errors.pop(field, None)

    def validate(self) -> Dict[str, str]:
        errors = {}
        if not self.values["title"].strip():
            errors["title"] = "Title is required"
        if not self.values["content"].strip():
            errors["content"] = "Content is required"
        if not self.values["category"]:
            errors["category"] = "Category is required"
        return errors

    def payload(self) -> Dict[str, Any]:
        data = {
            "title": self.values["title"],
            "content": self.values["content"],
            "category": self.values["category"],
        }
        if self.values["excerpt"].strip():
            data["excerpt"] = self.values["excerpt"]
        return data

    async def submit(self) -> bool:
        self.errors = self.validate()
        if self.errors:
            return False

        self.submitting = True
        try:
            if self.is_editing:
                await self.store.update_post(self.post_id, self.payload())
            else:
                await self.store.create_post(self.payload())
        except ApiError as exc:
            if exc.errors:
                self.errors = {e["field"]: e["message"] for e in exc.errors if e.get("field")}
            else:
                self.errors = {"submit": exc.message or "Failed to save post. Please try again."}
            return False
        finally:
            self.submitting = False

        return True


class CategoriesView:
    def __init__(self, store: Store):
        self.store = store
        self.error: Optional[str] = None

    async def load(self) -> None:
        await self.store.fetch_categories()

    @property
    def rows(self) -> List[Dict[str, Any]]:
        return [
            {"id": c["id"], "name": c["name"], "description": c.get("description") or ""}
            for c in self.store.state.categories
        ]

    async def create(self, name: str, description: Optional[str] = None) -> Optional[Dict[str, Any]]:
        if not name.strip():
            self.error = "Name is required"
            return None

        data = {"name": name.strip()}
        if description:
            data["description"] = description
        try:
            category = await self.store.create_category(data)
        except ApiError as exc:
            self.error = exc.message
            return None
        self.error = None
        return category

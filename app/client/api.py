import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "An error occurred"


class ApiError(Exception):
    """Ошибка ответа API с сообщением сервера и ошибками полей."""

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[List[Dict]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


class PostPage(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: Optional[Dict[str, Any]] = None


def _error_message(body: Dict[str, Any]) -> str:
    if body.get("error"):
        return str(body["error"])
    messages = [e.get("message") for e in body.get("errors") or [] if e.get("message")]
    if messages:
        return "; ".join(messages)
    return DEFAULT_ERROR


class BlogApiClient:
    """
    Асинхронный клиент REST API блога.
    Одна функция на маршрут; конверт ответа разворачивается здесь,
    наружу уходит только поле data.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_prefix: str = "/api",
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0
    ):
        self.api_prefix = api_prefix.rstrip("/")
        self.token = token
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._client.request(
                method, f"{self.api_prefix}{path}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(str(exc) or DEFAULT_ERROR) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error or not body.get("success", False):
            raise ApiError(_error_message(body), response.status_code, body.get("errors"))

        return body

    # Посты

    async def list_posts(self, page: int = 1, limit: int = 10, category: Optional[str] = None) -> PostPage:
        body = await self._request("GET", "/posts", params={"page": page, "limit": limit, "category": category})
        return PostPage(items=body.get("data") or [], pagination=body.get("pagination"))

    async def search_posts(self, q: str) -> List[Dict[str, Any]]:
        body = await self._request("GET", "/posts/search", params={"q": q})
        return body.get("data") or []

    async def get_post(self, post_id: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/posts/{post_id}"))["data"]

    async def create_post(self, post_data: Dict[str, Any]) -> Dict[str, Any]:
        return (await self._request("POST", "/posts", json=post_data))["data"]

    async def update_post(self, post_id: str, post_data: Dict[str, Any]) -> Dict[str, Any]:
        return (await self._request("PUT", f"/posts/{post_id}", json=post_data))["data"]

    async def delete_post(self, post_id: str) -> None:
        await self._request("DELETE", f"/posts/{post_id}")

    async def add_comment(self, post_id: str, content: str, author: Optional[str] = None) -> Dict[str, Any]:
        payload = {"content": content}
        if author:
            payload["author"] = author
        return (await self._request("POST", f"/posts/{post_id}/comments", json=payload))["data"]

    # Категории

    async def list_categories(self) -> List[Dict[str, Any]]:
        return (await self._request("GET", "/categories")).get("data") or []

    async def get_category(self, category_id: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/categories/{category_id}"))["data"]

    async def create_category(self, category_data: Dict[str, Any]) -> Dict[str, Any]:
        return (await self._request("POST", "/categories", json=category_data))["data"]

    async def update_category(self, category_id: str, category_data: Dict[str, Any]) -> Dict[str, Any]:
        return (await self._request("PUT", f"/categories/{category_id}", json=category_data))["data"]

    async def delete_category(self, category_id: str) -> None:
        await self._request("DELETE", f"/categories/{category_id}")

    # Авторизация

    async def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        data = (await self._request(
            "POST", "/auth/register", json={"name": name, "email": email, "password": password}
        ))["data"]
        self.token = data["token"]
        return data

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = (await self._request("POST", "/auth/login", json={"email": email, "password": password}))["data"]
        self.token = data["token"]
        return data

    async def me(self) -> Dict[str, Any]:
        return (await self._request("GET", "/auth/me"))["data"]

    def logout(self) -> None:
        self.token = None

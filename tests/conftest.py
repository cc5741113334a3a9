"""
Общие фикстуры тестов.

MongoDB заменяется на mongomock-motor, HTTP-запросы идут прямо в
приложение FastAPI через httpx.ASGITransport, без сети и без lifespan.
"""

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from app.client.api import BlogApiClient
from app.db.mongodb import ensure_indexes, get_database
from app.main import app

API = "/api"


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["test_blog"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def asgi_transport(db):
    app.dependency_overrides[get_database] = lambda: db
    # 500-ответы обработчика возвращаются клиенту, а не пробрасываются в тест
    yield httpx.ASGITransport(app=app, raise_app_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
async def client(asgi_transport):
    async with httpx.AsyncClient(transport=asgi_transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def api(asgi_transport):
    async with BlogApiClient(base_url="http://test", transport=asgi_transport) as blog_api:
        yield blog_api


async def register(client, name="Alice", email="alice@example.com", password="secret123"):
    response = await client.post(f"{API}/auth/register", json={
        "name": name, "email": email, "password": password
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
async def auth_headers(client):
    data = await register(client)
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
async def other_headers(client):
    data = await register(client, name="Bob", email="bob@example.com")
    return {"Authorization": f"Bearer {data['token']}"}


async def make_category(client, headers, name="Technology", description=None):
    payload = {"name": name}
    if description is not None:
        payload["description"] = description
    response = await client.post(f"{API}/categories", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def make_post(client, headers, category_id, title="Hello world", **fields):
    payload = {
        "title": title,
        "content": fields.pop("content", "Some content for the post"),
        "category": category_id,
        "isPublished": fields.pop("is_published", True),
        **fields,
    }
    response = await client.post(f"{API}/posts", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
async def category(client, auth_headers):
    return await make_category(client, auth_headers)

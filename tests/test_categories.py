from conftest import API, make_category


class TestCategories:
    async def test_list_sorted_with_count(self, client, auth_headers):
        await make_category(client, auth_headers, name="Travel")
        await make_category(client, auth_headers, name="Food", description="Recipes")

        response = await client.get(f"{API}/categories")

        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert [c["name"] for c in body["data"]] == ["Food", "Travel"]
        assert body["data"][0]["description"] == "Recipes"

    async def test_create_derives_slug(self, client, auth_headers):
        category = await make_category(client, auth_headers, name="  Home Office  ")

        assert category["name"] == "Home Office"
        assert category["slug"] == "home-office"
        assert "createdAt" in category

    async def test_duplicate_name_is_conflict(self, client, auth_headers):
        await make_category(client, auth_headers, name="Travel")

        response = await client.post(f"{API}/categories", json={"name": "Travel"}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json() == {"success": False, "error": "Category with this name already exists"}

    async def test_validation(self, client, auth_headers):
        response = await client.post(
            f"{API}/categories", json={"name": "", "description": "x" * 201}, headers=auth_headers
        )

        body = response.json()
        assert response.status_code == 400
        assert {e["field"] for e in body["errors"]} == {"name", "description"}

    async def test_create_requires_authentication(self, client):
        response = await client.post(f"{API}/categories", json={"name": "Travel"})

        assert response.status_code == 401

    async def test_get_by_id(self, client, category):
        response = await client.get(f"{API}/categories/{category['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Technology"

    async def test_invalid_id(self, client):
        response = await client.get(f"{API}/categories/nope")

        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "Invalid category ID"

    async def test_update(self, client, auth_headers, category):
        response = await client.put(
            f"{API}/categories/{category['id']}",
            json={"name": "Tech News", "description": "Daily"},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["name"] == "Tech News"
        assert data["slug"] == "tech-news"
        assert data["description"] == "Daily"

    async def test_update_to_existing_name(self, client, auth_headers, category):
        await make_category(client, auth_headers, name="Travel")

        response = await client.put(
            f"{API}/categories/{category['id']}", json={"name": "Travel"}, headers=auth_headers
        )

        assert response.status_code == 409

    async def test_update_missing(self, client, auth_headers):
        response = await client.put(
            f"{API}/categories/507f1f77bcf86cd799439011", json={"name": "X"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Category not found"

    async def test_delete(self, client, auth_headers, category):
        response = await client.delete(f"{API}/categories/{category['id']}", headers=auth_headers)

        assert response.json() == {"success": True, "data": {}}
        assert (await client.get(f"{API}/categories/{category['id']}")).status_code == 404

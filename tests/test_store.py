import asyncio
from unittest.mock import MagicMock

import pytest

from app.client.api import DEFAULT_ERROR, ApiError, BlogApiClient, PostPage
from app.client.store import Action, ActionType, Store, StoreState, create_store, reduce, settle

CATEGORY = {"id": "c1", "name": "Technology", "slug": "technology"}


def post(post_id, title="Post"):
    return {"id": post_id, "title": title, "content": "text", "category": CATEGORY}


@pytest.fixture
def fake_api():
    api = MagicMock(spec=BlogApiClient)
    api.token = None
    return api


@pytest.fixture
def store(fake_api):
    return Store(fake_api, StoreState(posts=(post("p1"), post("p2")), categories=(CATEGORY,)))


class TestReducer:
    def test_actions_produce_new_snapshots(self):
        state = StoreState()

        new_state = reduce(state, Action(type=ActionType.ADD_POST, payload=post("p1")))

        assert state.posts == ()
        assert new_state.posts == (post("p1"),)
        assert new_state is not state

    def test_set_posts_clears_loading_and_error(self):
        state = StoreState(loading=True, error="boom")

        state = reduce(state, Action(type=ActionType.SET_POSTS, payload=[post("p1")]))

        assert state.loading is False
        assert state.error is None
        assert state.posts == (post("p1"),)

    def test_add_post_prepends_and_add_category_appends(self):
        state = StoreState(posts=(post("p1"),), categories=(CATEGORY,))

        state = reduce(state, Action(type=ActionType.ADD_POST, payload=post("p2")))
        state = reduce(state, Action(type=ActionType.ADD_CATEGORY, payload={"id": "c2", "name": "Travel"}))

        assert [p["id"] for p in state.posts] == ["p2", "p1"]
        assert [c["id"] for c in state.categories] == ["c1", "c2"]

    def test_replace_update_delete(self):
        state = StoreState(posts=(post("temp-1"), post("p2")))

        state = reduce(state, Action(type=ActionType.REPLACE_POST, payload={"id": "temp-1", "item": post("p1")}))
        state = reduce(state, Action(type=ActionType.UPDATE_POST, payload=post("p2", title="Edited")))
        state = reduce(state, Action(type=ActionType.DELETE_POST, payload="p1"))

        assert state.posts == (post("p2", title="Edited"),)

    def test_set_error_stops_loading(self):
        state = reduce(StoreState(loading=True), Action(type=ActionType.SET_ERROR, payload="failed"))

        assert state.error == "failed"
        assert state.loading is False

    def test_user_lifecycle(self):
        state = reduce(StoreState(), Action(type=ActionType.SET_USER, payload={"id": "u1"}))
        assert state.user == {"id": "u1"}

        assert reduce(state, Action(type=ActionType.LOGOUT)).user is None

    def test_state_is_immutable(self):
        state = StoreState()

        with pytest.raises(Exception):
            state.loading = True


class TestSettle:
    def test_failure_restores_prior_snapshot(self):
        prior = StoreState(posts=(post("p1"),))
        tentative = Action(type=ActionType.ADD_POST, payload=post("temp-1"))

        result = settle(prior, tentative, reduce(prior, tentative), error="nope")

        assert result.posts == prior.posts
        assert result.error == "nope"

    def test_failure_keeps_changes_made_meanwhile(self):
        prior = StoreState(posts=(post("p1"), post("p2")))
        tentative = Action(type=ActionType.DELETE_POST, payload="p1")
        current = reduce(reduce(prior, tentative), Action(type=ActionType.ADD_POST, payload=post("p3")))

        result = settle(prior, tentative, current, error="nope")

        assert [p["id"] for p in result.posts] == ["p3", "p1", "p2"]

    def test_failed_update_restores_only_that_item(self):
        prior = StoreState(categories=(CATEGORY, {"id": "c2", "name": "Travel"}))
        tentative = Action(type=ActionType.UPDATE_CATEGORY, payload={**CATEGORY, "name": "Tech"})
        current = reduce(
            reduce(prior, tentative),
            Action(type=ActionType.UPDATE_CATEGORY, payload={"id": "c2", "name": "Trips"}),
        )

        result = settle(prior, tentative, current, error="nope")

        assert result.categories == (CATEGORY, {"id": "c2", "name": "Trips"})

    def test_success_applies_confirmation(self):
        prior = StoreState()
        tentative = Action(type=ActionType.ADD_POST, payload=post("temp-1"))
        confirmed = Action(type=ActionType.REPLACE_POST, payload={"id": "temp-1", "item": post("p9")})

        result = settle(prior, tentative, reduce(prior, tentative), confirmed=confirmed)

        assert result.posts == (post("p9"),)

    def test_success_without_confirmation_keeps_current(self):
        prior = StoreState(posts=(post("p1"),))
        tentative = Action(type=ActionType.DELETE_POST, payload="p1")
        current = reduce(prior, tentative)

        assert settle(prior, tentative, current) is current


class TestOptimisticPosts:
    async def test_failed_create_leaves_posts_untouched(self, store, fake_api):
        before = store.state.posts
        seen = []
        store.subscribe(lambda state: seen.append(len(state.posts)))
        fake_api.create_post.side_effect = ApiError("Invalid category", 400)

        with pytest.raises(ApiError):
            await store.create_post({"title": "New", "content": "x", "category": "c1"})

        assert store.state.posts == before
        assert store.state.error == "Invalid category"
        # Оптимистичный пост успел появиться до ответа сервера
        assert seen == [3, 2]

    async def test_successful_create_replaces_temporary_post(self, store, fake_api):
        fake_api.create_post.return_value = post("p3", title="New")

        created = await store.create_post({"title": "New", "content": "x", "category": "c1"})

        assert created["id"] == "p3"
        assert [p["id"] for p in store.state.posts] == ["p3", "p1", "p2"]
        assert not any(p["id"].startswith("temp-") for p in store.state.posts)

    async def test_temporary_post_resolves_category(self, store, fake_api):
        snapshots = []
        store.subscribe(snapshots.append)
        fake_api.create_post.return_value = post("p3")

        await store.create_post({"title": "New", "content": "x", "category": "c1"})

        temp = snapshots[0].posts[0]
        assert temp["id"].startswith("temp-")
        assert temp["category"] == CATEGORY

    async def test_failed_update_reverts(self, store, fake_api):
        fake_api.update_post.side_effect = ApiError("Post with this title already exists", 409)

        with pytest.raises(ApiError):
            await store.update_post("p1", {"title": "Clash"})

        assert store.state.posts[0] == post("p1")

    async def test_successful_update_uses_server_copy(self, store, fake_api):
        fake_api.update_post.return_value = {**post("p1", title="Server title"), "viewCount": 4}

        await store.update_post("p1", {"title": "Local title"})

        assert store.state.posts[0]["title"] == "Server title"
        assert store.state.posts[0]["viewCount"] == 4

    async def test_failed_delete_restores_position(self, store, fake_api):
        fake_api.delete_post.side_effect = ApiError("Post not found", 404)

        with pytest.raises(ApiError):
            await store.delete_post("p1")

        assert [p["id"] for p in store.state.posts] == ["p1", "p2"]

    async def test_delete(self, store, fake_api):
        fake_api.delete_post.return_value = None

        await store.delete_post("p1")

        assert [p["id"] for p in store.state.posts] == ["p2"]

    async def test_failed_create_keeps_concurrently_confirmed_post(self, fake_api):
        store = Store(fake_api)
        release_a, release_b = asyncio.Event(), asyncio.Event()

        async def create(data):
            if data["title"] == "A":
                await release_a.wait()
                return post("real-a", title="A")
            await release_b.wait()
            raise ApiError("Post with this title already exists", 409)

        fake_api.create_post.side_effect = create
        task_a = asyncio.create_task(store.create_post({"title": "A", "content": "x", "category": "c1"}))
        task_b = asyncio.create_task(store.create_post({"title": "B", "content": "x", "category": "c1"}))
        await asyncio.sleep(0)
        assert len(store.state.posts) == 2

        release_a.set()
        await task_a
        release_b.set()
        with pytest.raises(ApiError):
            await task_b

        assert [p["id"] for p in store.state.posts] == ["real-a"]

    async def test_unexpected_failure_also_reverts(self, store, fake_api):
        before = store.state.posts
        fake_api.create_post.side_effect = KeyError("data")

        with pytest.raises(KeyError):
            await store.create_post({"title": "New", "content": "x", "category": "c1"})

        assert store.state.posts == before
        assert store.state.error == DEFAULT_ERROR

    async def test_add_comment_appends_to_cached_post(self, store, fake_api):
        fake_api.add_comment.return_value = {"id": "m1", "content": "hi", "author": "Anonymous"}

        await store.add_comment("p1", "hi")

        assert store.state.posts[0]["comments"] == [{"id": "m1", "content": "hi", "author": "Anonymous"}]


class TestOptimisticCategories:
    async def test_failed_create_reverts(self, store, fake_api):
        fake_api.create_category.side_effect = ApiError("Category with this name already exists", 409)

        with pytest.raises(ApiError):
            await store.create_category({"name": "Technology"})

        assert store.state.categories == (CATEGORY,)
        assert store.state.error == "Category with this name already exists"

    async def test_create_and_delete(self, store, fake_api):
        fake_api.create_category.return_value = {"id": "c2", "name": "Travel"}
        fake_api.delete_category.return_value = None

        await store.create_category({"name": "Travel"})
        await store.delete_category("c1")

        assert store.state.categories == ({"id": "c2", "name": "Travel"},)

    async def test_update(self, store, fake_api):
        fake_api.update_category.return_value = {**CATEGORY, "name": "Tech"}

        await store.update_category("c1", {"name": "Tech"})

        assert store.state.categories[0]["name"] == "Tech"


class TestFetching:
    async def test_fetch_posts(self, store, fake_api):
        pagination = {"currentPage": 1, "totalPages": 1, "totalPosts": 1, "hasNext": False, "hasPrev": False}
        fake_api.list_posts.return_value = PostPage(items=[post("p7")], pagination=pagination)

        await store.fetch_posts(page=1, limit=10, category="c1")

        fake_api.list_posts.assert_awaited_once_with(1, 10, "c1")
        assert store.state.posts == (post("p7"),)
        assert store.state.pagination == pagination
        assert store.state.loading is False

    async def test_fetch_error_is_recorded_not_raised(self, store, fake_api):
        fake_api.list_posts.side_effect = ApiError("Server Error", 500)

        await store.fetch_posts()

        assert store.state.error == "Server Error"
        assert store.state.loading is False
        assert len(store.state.posts) == 2

    async def test_search_clears_pagination(self, fake_api):
        store = Store(fake_api, StoreState(pagination={"currentPage": 1}))
        fake_api.search_posts.return_value = []

        await store.search_posts("zebra")

        assert store.state.posts == ()
        assert store.state.pagination is None

    async def test_fetch_post_refreshes_cached_copy(self, store, fake_api):
        fake_api.get_post.return_value = {**post("p2"), "viewCount": 3}

        fetched = await store.fetch_post("p2")

        assert fetched["viewCount"] == 3
        assert store.state.posts[1]["viewCount"] == 3
        assert store.state.loading is False

    async def test_fetch_post_clears_previous_error(self, fake_api):
        store = Store(fake_api, StoreState(posts=(post("p1"),), error="Server Error"))
        fake_api.get_post.return_value = post("p1")

        await store.fetch_post("p1")

        assert store.state.error is None

    async def test_fetch_categories(self, fake_api):
        store = Store(fake_api)
        fake_api.list_categories.return_value = [CATEGORY]

        await store.fetch_categories()

        assert store.state.categories == (CATEGORY,)


class TestAuth:
    async def test_login_and_logout(self, store, fake_api):
        fake_api.login.return_value = {"user": {"id": "u1", "name": "Alice"}, "token": "t"}

        await store.login("alice@example.com", "secret123")
        assert store.state.user == {"id": "u1", "name": "Alice"}

        store.logout()
        fake_api.logout.assert_called_once_with()
        assert store.state.user is None

    async def test_failed_login(self, store, fake_api):
        fake_api.login.side_effect = ApiError("Invalid credentials", 401)

        with pytest.raises(ApiError):
            await store.login("alice@example.com", "bad")

        assert store.state.error == "Invalid credentials"
        assert store.state.user is None

    async def test_load_current_user_without_token(self, store, fake_api):
        assert await store.load_current_user() is None
        fake_api.me.assert_not_called()


def test_unsubscribe(fake_api):
    store = Store(fake_api)
    calls = []
    unsubscribe = store.subscribe(calls.append)

    store.dispatch(Action(type=ActionType.SET_LOADING, payload=True))
    unsubscribe()
    store.dispatch(Action(type=ActionType.SET_LOADING, payload=False))

    assert len(calls) == 1


def test_create_store_injects_client(fake_api):
    assert create_store(fake_api).api is fake_api

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from app.client.api import DEFAULT_ERROR, ApiError, BlogApiClient

logger = logging.getLogger(__name__)

TEMP_PREFIX = "temp-"


class ActionType(str, Enum):
    SET_LOADING = "SET_LOADING"
    SET_ERROR = "SET_ERROR"
    CLEAR_ERROR = "CLEAR_ERROR"
    SET_POSTS = "SET_POSTS"
    SET_PAGINATION = "SET_PAGINATION"
    ADD_POST = "ADD_POST"
    REPLACE_POST = "REPLACE_POST"
    UPDATE_POST = "UPDATE_POST"
    DELETE_POST = "DELETE_POST"
    RESTORE_POST = "RESTORE_POST"
    SET_CATEGORIES = "SET_CATEGORIES"
    ADD_CATEGORY = "ADD_CATEGORY"
    REPLACE_CATEGORY = "REPLACE_CATEGORY"
    UPDATE_CATEGORY = "UPDATE_CATEGORY"
    DELETE_CATEGORY = "DELETE_CATEGORY"
    RESTORE_CATEGORY = "RESTORE_CATEGORY"
    SET_USER = "SET_USER"
    LOGOUT = "LOGOUT"


class Action(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ActionType
    payload: Any = None


class StoreState(BaseModel):
    """Снимок состояния клиента. Каждое действие создает новый снимок."""
    model_config = ConfigDict(frozen=True)

    posts: Tuple[Dict[str, Any], ...] = ()
    categories: Tuple[Dict[str, Any], ...] = ()
    pagination: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None
    loading: bool = False
    error: Optional[str] = None


def _replace(items: Tuple[Dict, ...], item_id: str, item: Dict) -> Tuple[Dict, ...]:
    return tuple(item if existing.get("id") == item_id else existing for existing in items)


def _remove(items: Tuple[Dict, ...], item_id: str) -> Tuple[Dict, ...]:
    return tuple(existing for existing in items if existing.get("id") != item_id)


def _insert(items: Tuple[Dict, ...], index: int, item: Dict) -> Tuple[Dict, ...]:
    if any(existing.get("id") == item.get("id") for existing in items):
        return items
    index = min(index, len(items))
    return items[:index] + (item,) + items[index:]


def _locate(items: Tuple[Dict, ...], item_id: str) -> Tuple[int, Optional[Dict]]:
    for index, existing in enumerate(items):
        if existing.get("id") == item_id:
            return index, existing
    return -1, None


def reduce(state: StoreState, action: Action) -> StoreState:
    """Чистая функция: (состояние, действие) -> новое состояние."""
    kind, payload = action.type, action.payload

    if kind == ActionType.SET_LOADING:
        return state.model_copy(update={"loading": bool(payload)})
    if kind == ActionType.SET_ERROR:
        return state.model_copy(update={"error": payload, "loading": False})
    if kind == ActionType.CLEAR_ERROR:
        return state.model_copy(update={"error": None})
    if kind == ActionType.SET_POSTS:
        return state.model_copy(update={"posts": tuple(payload), "loading": False, "error": None})
    if kind == ActionType.SET_PAGINATION:
        return state.model_copy(update={"pagination": payload})
    if kind == ActionType.ADD_POST:
        return state.model_copy(update={"posts": (payload,) + state.posts})
    if kind == ActionType.REPLACE_POST:
        return state.model_copy(update={"posts": _replace(state.posts, payload["id"], payload["item"])})
    if kind == ActionType.UPDATE_POST:
        return state.model_copy(update={"posts": _replace(state.posts, payload["id"], payload)})
    if kind == ActionType.DELETE_POST:
        return state.model_copy(update={"posts": _remove(state.posts, payload)})
    if kind == ActionType.RESTORE_POST:
        return state.model_copy(update={"posts": _insert(state.posts, payload["index"], payload["item"])})
    if kind == ActionType.SET_CATEGORIES:
        return state.model_copy(update={"categories": tuple(payload), "loading": False, "error": None})
    if kind == ActionType.ADD_CATEGORY:
        return state.model_copy(update={"categories": state.categories + (payload,)})
    if kind == ActionType.REPLACE_CATEGORY:
        return state.model_copy(
            update={"categories": _replace(state.categories, payload["id"], payload["item"])}
        )
    if kind == ActionType.UPDATE_CATEGORY:
        return state.model_copy(update={"categories": _replace(state.categories, payload["id"], payload)})
    if kind == ActionType.DELETE_CATEGORY:
        return state.model_copy(update={"categories": _remove(state.categories, payload)})
    if kind == ActionType.RESTORE_CATEGORY:
        return state.model_copy(
            update={"categories": _insert(state.categories, payload["index"], payload["item"])}
        )
    if kind == ActionType.SET_USER:
        return state.model_copy(update={"user": payload})
    if kind == ActionType.LOGOUT:
        return state.model_copy(update={"user": None})

    return state


_POSTS = ("posts", ActionType.DELETE_POST, ActionType.UPDATE_POST, ActionType.RESTORE_POST)
_CATEGORIES = ("categories", ActionType.DELETE_CATEGORY, ActionType.UPDATE_CATEGORY, ActionType.RESTORE_CATEGORY)

# (коллекция, удаление, замена, вставка на место)
_UNDO_TARGETS = {
    ActionType.ADD_POST: _POSTS,
    ActionType.UPDATE_POST: _POSTS,
    ActionType.DELETE_POST: _POSTS,
    ActionType.ADD_CATEGORY: _CATEGORIES,
    ActionType.UPDATE_CATEGORY: _CATEGORIES,
    ActionType.DELETE_CATEGORY: _CATEGORIES,
}


def undo_action(prior: StoreState, tentative: Optional[Action]) -> Optional[Action]:
    """Действие, отменяющее одно оптимистичное изменение, примененное к снимку prior."""
    if tentative is None or tentative.type not in _UNDO_TARGETS:
        return None
    field, delete_kind, update_kind, restore_kind = _UNDO_TARGETS[tentative.type]

    if tentative.type in (ActionType.ADD_POST, ActionType.ADD_CATEGORY):
        return Action(type=delete_kind, payload=tentative.payload["id"])

    deleting = tentative.type in (ActionType.DELETE_POST, ActionType.DELETE_CATEGORY)
    item_id = tentative.payload if deleting else tentative.payload["id"]
    index, item = _locate(getattr(prior, field), item_id)
    if item is None:
        return None
    if deleting:
        return Action(type=restore_kind, payload={"index": index, "item": item})
    return Action(type=update_kind, payload=item)


def settle(
    prior: StoreState,
    tentative: Optional[Action],
    current: StoreState,
    confirmed: Optional[Action] = None,
    error: Optional[str] = None
) -> StoreState:
    """
    Завершение оптимистичного изменения.

    prior - снимок до изменения, tentative - само изменение,
    current - состояние на момент ответа сервера. За время запроса могли
    завершиться другие изменения, поэтому при ошибке откатывается только
    tentative, а не весь снимок. При успехе к current применяется
    подтвержденное сервером действие.
    """
    if error is not None:
        undo = undo_action(prior, tentative)
        if undo is not None:
            current = reduce(current, undo)
        return reduce(current, Action(type=ActionType.SET_ERROR, payload=error))
    if confirmed is None:
        return current
    return reduce(current, confirmed)


def _temp_id() -> str:
    return f"{TEMP_PREFIX}{uuid.uuid4().hex}"


Listener = Callable[[StoreState], None]


class Store:
    """Контейнер состояния: меняется только через dispatch и асинхронные действия."""

    def __init__(self, api: BlogApiClient, state: Optional[StoreState] = None):
        self.api = api
        self._state = state or StoreState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> StoreState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: StoreState) -> StoreState:
        if state is not self._state:
            self._state = state
            for listener in list(self._listeners):
                listener(state)
        return self._state

    def dispatch(self, action: Action) -> StoreState:
        return self._commit(reduce(self._state, action))

    async def _optimistic(
        self,
        tentative: Optional[Action],
        request: Callable[[], Awaitable[Any]],
        confirm: Callable[[Any], Optional[Action]]
    ) -> Any:
        prior = self._state
        if tentative is not None:
            self.dispatch(tentative)

        try:
            result = await request()
            confirmed = confirm(result)
        except Exception as exc:
            message = exc.message if isinstance(exc, ApiError) else DEFAULT_ERROR
            logger.info("Reverting optimistic %s: %s", tentative.type.value if tentative else "change", exc)
            self._commit(settle(prior, tentative, self._state, error=message))
            raise

        self._commit(settle(prior, tentative, self._state, confirmed=confirmed))
        return result

    def _find_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self._state.posts if p.get("id") == post_id), None)

    def _find_category(self, category_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not category_id:
            return None
        return next((c for c in self._state.categories if c.get("id") == category_id), None)

    def _category_ref(self, category_id: Optional[str]) -> Optional[Dict[str, Any]]:
        category = self._find_category(category_id)
        if category is None:
            return None
        return {"id": category["id"], "name": category["name"], "slug": category.get("slug")}

    # Посты

    async def fetch_posts(self, page: int = 1, limit: int = 10, category: Optional[str] = None) -> None:
        self.dispatch(Action(type=ActionType.SET_LOADING, payload=True))
        try:
            result = await self.api.list_posts(page, limit, category)
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            return
        self.dispatch(Action(type=ActionType.SET_POSTS, payload=result.items))
        self.dispatch(Action(type=ActionType.SET_PAGINATION, payload=result.pagination))

    async def search_posts(self, query: str) -> None:
        self.dispatch(Action(type=ActionType.SET_LOADING, payload=True))
        try:
            posts = await self.api.search_posts(query)
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            return
        self.dispatch(Action(type=ActionType.SET_POSTS, payload=posts))
        # У результатов поиска нет страниц
        self.dispatch(Action(type=ActionType.SET_PAGINATION, payload=None))

    async def fetch_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        self.dispatch(Action(type=ActionType.SET_LOADING, payload=True))
        try:
            post = await self.api.get_post(post_id)
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            return None
        if self._find_post(post_id) is not None:
            self.dispatch(Action(type=ActionType.UPDATE_POST, payload=post))
        self.dispatch(Action(type=ActionType.CLEAR_ERROR))
        self.dispatch(Action(type=ActionType.SET_LOADING, payload=False))
        return post

    async def create_post(self, post_data: Dict[str, Any]) -> Dict[str, Any]:
        temp_id = _temp_id()
        user = self._state.user or {}
        temp_post = {
            **post_data,
            "id": temp_id,
            "category": self._category_ref(post_data.get("category")),
            "author": {"id": user.get("id"), "name": user.get("name", "You")},
            "comments": [],
            "viewCount": 0,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }

        return await self._optimistic(
            Action(type=ActionType.ADD_POST, payload=temp_post),
            lambda: self.api.create_post(post_data),
            lambda created: Action(type=ActionType.REPLACE_POST, payload={"id": temp_id, "item": created}),
        )

    async def update_post(self, post_id: str, post_data: Dict[str, Any]) -> Dict[str, Any]:
        current = self._find_post(post_id)
        tentative = None
        if current is not None:
            optimistic_post = {**current, **post_data}
            if "category" in post_data:
                optimistic_post["category"] = self._category_ref(post_data["category"]) or current.get("category")
            tentative = Action(type=ActionType.UPDATE_POST, payload=optimistic_post)

        return await self._optimistic(
            tentative,
            lambda: self.api.update_post(post_id, post_data),
            lambda updated: Action(type=ActionType.UPDATE_POST, payload=updated),
        )

    async def delete_post(self, post_id: str) -> None:
        await self._optimistic(
            Action(type=ActionType.DELETE_POST, payload=post_id),
            lambda: self.api.delete_post(post_id),
            lambda _: None,
        )

    async def add_comment(self, post_id: str, content: str, author: Optional[str] = None) -> Dict[str, Any]:
        try:
            comment = await self.api.add_comment(post_id, content, author)
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            raise

        post = self._find_post(post_id)
        if post is not None:
            updated = {**post, "comments": list(post.get("comments") or []) + [comment]}
            self.dispatch(Action(type=ActionType.UPDATE_POST, payload=updated))
        return comment

    # Категории

    async def fetch_categories(self) -> None:
        self.dispatch(Action(type=ActionType.SET_LOADING, payload=True))
        try:
            categories = await self.api.list_categories()
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            return
        self.dispatch(Action(type=ActionType.SET_CATEGORIES, payload=categories))

    async def create_category(self, category_data: Dict[str, Any]) -> Dict[str, Any]:
        temp_id = _temp_id()
        return await self._optimistic(
            Action(type=ActionType.ADD_CATEGORY, payload={**category_data, "id": temp_id}),
            lambda: self.api.create_category(category_data),
            lambda created: Action(type=ActionType.REPLACE_CATEGORY, payload={"id": temp_id, "item": created}),
        )

    async def update_category(self, category_id: str, category_data: Dict[str, Any]) -> Dict[str, Any]:
        current = self._find_category(category_id)
        tentative = None
        if current is not None:
            tentative = Action(type=ActionType.UPDATE_CATEGORY, payload={**current, **category_data})

        return await self._optimistic(
            tentative,
            lambda: self.api.update_category(category_id, category_data),
            lambda updated: Action(type=ActionType.UPDATE_CATEGORY, payload=updated),
        )

    async def delete_category(self, category_id: str) -> None:
        await self._optimistic(
            Action(type=ActionType.DELETE_CATEGORY, payload=category_id),
            lambda: self.api.delete_category(category_id),
            lambda _: None,
        )

    # Авторизация

    async def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        try:
            result = await self.api.register(name, email, password)
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            raise
        self.dispatch(Action(type=ActionType.SET_USER, payload=result["user"]))
        return result

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        try:
            result = await self.api.login(email, password)
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            raise
        self.dispatch(Action(type=ActionType.SET_USER, payload=result["user"]))
        return result

    async def load_current_user(self) -> Optional[Dict[str, Any]]:
        if not self.api.token:
            return None
        try:
            user = await self.api.me()
        except ApiError as exc:
            self.dispatch(Action(type=ActionType.SET_ERROR, payload=exc.message))
            return None
        self.dispatch(Action(type=ActionType.SET_USER, payload=user))
        return user

    def logout(self) -> None:
        self.api.logout()
        self.dispatch(Action(type=ActionType.LOGOUT))


def create_store(api: Optional[BlogApiClient] = None, **client_options) -> Store:
    """Точка сборки: клиент API передается в хранилище явно."""
    if api is None:
        api = BlogApiClient(**client_options)
    return Store(api)

"""
Client-side state for a UI: an immutable ``AppState``, a pure ``reduce``
function and a small ``Store`` that applies dispatched actions and notifies
subscribers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

import httpx

from client.api import ApiError, AssetFlowClient
from models import Announcement, Asset, Department, Notification, PendingUpdate

logger = logging.getLogger(__name__)

SET_LOADING = "SET_LOADING"
SET_ERROR = "SET_ERROR"
SET_DEPARTMENTS = "SET_DEPARTMENTS"
SET_ASSETS = "SET_ASSETS"
ADD_ASSET = "ADD_ASSET"
UPDATE_ASSET = "UPDATE_ASSET"
REMOVE_ASSET = "REMOVE_ASSET"
SET_PENDING_UPDATES = "SET_PENDING_UPDATES"
SET_NOTIFICATIONS = "SET_NOTIFICATIONS"
MARK_NOTIFICATION_READ = "MARK_NOTIFICATION_READ"
SET_ANNOUNCEMENTS = "SET_ANNOUNCEMENTS"
TOGGLE_SIDEBAR = "TOGGLE_SIDEBAR"
SET_SIDEBAR_OPEN = "SET_SIDEBAR_OPEN"


@dataclass(frozen=True)
class Action:
    type: str
    payload: Any = None


@dataclass(frozen=True)
class AppState:
    loading: bool = False
    error: Optional[str] = None
    departments: tuple[Department, ...] = ()
    assets: tuple[Asset, ...] = ()
    pending_updates: tuple[PendingUpdate, ...] = ()
    notifications: tuple[Notification, ...] = ()
    announcements: tuple[Announcement, ...] = ()
    sidebar_open: bool = True

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.is_read)


def _replace_asset(assets: tuple[Asset, ...], updated: Asset) -> tuple[Asset, ...]:
    return tuple(updated if a.id == updated.id else a for a in assets)


def reduce(state: AppState, action: Action) -> AppState:
    t, p = action.type, action.payload

    if t == SET_LOADING:
        return replace(state, loading=bool(p))
    if t == SET_ERROR:
        return replace(state, error=p)
    if t == SET_DEPARTMENTS:
        return replace(state, departments=tuple(p))
    if t == SET_ASSETS:
        return replace(state, assets=tuple(p))
    if t == ADD_ASSET:
        return replace(state, assets=(p,) + state.assets)
    if t == UPDATE_ASSET:
        return replace(state, assets=_replace_asset(state.assets, p))
    if t == REMOVE_ASSET:
        return replace(state, assets=tuple(a for a in state.assets if a.id != p))
    if t == SET_PENDING_UPDATES:
        return replace(state, pending_updates=tuple(p))
    if t == SET_NOTIFICATIONS:
        return replace(state, notifications=tuple(p))
    if t == MARK_NOTIFICATION_READ:
        return replace(
            state,
            notifications=tuple(
                n.model_copy(update={"is_read": True}) if n.id == p else n
                for n in state.notifications
            ),
        )
    if t == SET_ANNOUNCEMENTS:
        return replace(state, announcements=tuple(p))
    if t == TOGGLE_SIDEBAR:
        return replace(state, sidebar_open=not state.sidebar_open)
    if t == SET_SIDEBAR_OPEN:
        return replace(state, sidebar_open=bool(p))
    return state


class Store:
    def __init__(self, state: Optional[AppState] = None):
        self._state = state or AppState()
        self._listeners: list[Callable[[AppState], None]] = []

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def subscribe(self, listener: Callable[[AppState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


def load_initial_data(store: Store, api: AssetFlowClient, *, limit: int = 100) -> bool:
    """Fetch departments and the first page of assets into ``store``."""
    store.dispatch(Action(SET_LOADING, True))
    try:
        departments = api.list_departments()
        page = api.list_assets(limit=limit)
    except (ApiError, httpx.HTTPError) as e:
        logger.warning("initial load failed: %s", e)
        store.dispatch(Action(SET_ERROR, str(e) or "Failed to fetch data"))
        store.dispatch(Action(SET_LOADING, False))
        return False

    store.dispatch(Action(SET_DEPARTMENTS, departments))
    store.dispatch(Action(SET_ASSETS, page.assets))
    store.dispatch(Action(SET_ERROR, None))
    store.dispatch(Action(SET_LOADING, False))
    return True

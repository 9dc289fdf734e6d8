"""Client-side view cache and its typed invalidation events.

The cache holds query results keyed by tuples such as
``("edited-images", project_id, user_id)``. Mutations are synchronous and run on
the event loop thread, so they never interleave. Refetches of observed keys are
scheduled as background tasks after invalidation.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

import structlog

logger = structlog.get_logger()

CacheKey = tuple[str, ...]
Fetcher = Callable[[], Awaitable[Any]]

EDITED_IMAGES = "edited-images"
GENERATED_VIDEOS = "generated-videos"
SIGNED_URL_KEY: CacheKey = ("signed-url",)


def make_key(*parts: Any) -> CacheKey:
    """Build a cache key, normalizing UUIDs and other values to strings."""
    return tuple(str(part) for part in parts)


def project_list_key(entity: str, project_id: str, user_id: str) -> CacheKey:
    return make_key(entity, project_id, user_id)


def lineage_list_key(entity: str, lineage_id: UUID, user_id: str) -> CacheKey:
    return make_key(entity, "lineage", lineage_id, user_id)


def timelines_key(project_id: str, user_id: str) -> CacheKey:
    return make_key("timelines", project_id, user_id)


def timeline_key(lineage_id: UUID, user_id: str) -> CacheKey:
    return make_key("timeline", lineage_id, user_id)


@dataclass(frozen=True)
class CacheEvent:
    """Structured notice that records of one entity type changed in a project."""

    entity_type: str
    project_id: str
    record_id: Optional[UUID] = None
    lineage_id: Optional[UUID] = None


EventCallback = Callable[[CacheEvent], None]


@dataclass
class _Subscription:
    callback: EventCallback
    entity_type: Optional[str] = None
    project_id: Optional[str] = None

    def matches(self, event: CacheEvent) -> bool:
        if self.entity_type is not None and self.entity_type != event.entity_type:
            return False
        if self.project_id is not None and self.project_id != event.project_id:
            return False
        return True


class CacheEventBus:
    """Typed publish/subscribe channel owned by the cache layer."""

    def __init__(self):
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self,
        callback: EventCallback,
        entity_type: str | None = None,
        project_id: str | None = None,
    ) -> Callable[[], None]:
        """Register a callback, optionally filtered by entity type and project.

        Returns:
            Function that removes the subscription
        """
        subscription = _Subscription(callback, entity_type, project_id)
        self._subscriptions.append(subscription)

        def _unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return _unsubscribe

    def publish(self, event: CacheEvent) -> int:
        """Deliver an event to every matching subscriber.

        A failing subscriber is logged and does not stop delivery to the rest.

        Returns:
            Number of subscribers the event was delivered to
        """
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(
                    "cache.subscriber_failed",
                    entity_type=event.entity_type,
                    project_id=event.project_id,
                )
                continue
            delivered += 1
        return delivered


@dataclass
class _Entry:
    data: Any
    stale: bool = False


@dataclass
class ViewCache:
    """In-memory query cache with optimistic updates and prefix invalidation."""

    events: CacheEventBus = field(default_factory=CacheEventBus)
    _entries: dict[CacheKey, _Entry] = field(default_factory=dict)
    _observers: dict[CacheKey, Fetcher] = field(default_factory=dict)
    _refetches: set[asyncio.Task] = field(default_factory=set)
    _in_flight: dict[CacheKey, asyncio.Task] = field(default_factory=dict)
    _generations: dict[CacheKey, int] = field(default_factory=dict)

    def get(self, key: CacheKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def contains(self, key: CacheKey) -> bool:
        return key in self._entries

    def set(self, key: CacheKey, data: Any) -> None:
        self._entries[key] = _Entry(data=data)

    def is_stale(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.stale

    def prepend(self, key: CacheKey, item: Any) -> bool:
        """Insert ``item`` at the head of a cached list.

        Keys that were never fetched are left alone; the next read fetches them.

        Returns:
            True if the cached list was updated
        """
        entry = self._entries.get(key)
        if entry is None or not isinstance(entry.data, list):
            return False
        entry.data = [item, *entry.data]
        return True

    def observe(self, key: CacheKey, fetcher: Fetcher) -> None:
        """Mark a key as actively displayed; invalidation refetches it in the background."""
        self._observers[key] = fetcher

    def unobserve(self, key: CacheKey) -> None:
        self._observers.pop(key, None)

    def invalidate(self, prefix: CacheKey) -> list[CacheKey]:
        """Mark every key starting with ``prefix`` stale.

        Each matched key moves to a new generation, so a refetch started before
        this call can no longer store its result. Keys with an active observer
        have that refetch cancelled and a new one scheduled in the background.

        Returns:
            Keys that matched the prefix
        """
        candidates = set(self._entries) | set(self._observers)
        matched = [key for key in candidates if key[: len(prefix)] == prefix]
        for key in matched:
            entry = self._entries.get(key)
            if entry is not None:
                entry.stale = True
            self._generations[key] = self._generations.get(key, 0) + 1
            if key in self._observers:
                self._schedule_refetch(key)
        return matched

    async def refetch(self, key: CacheKey, fetcher: Fetcher | None = None) -> Any:
        """Fetch fresh data for a key and store it.

        The result is stored only if the key was not invalidated while fetching;
        otherwise it is returned but the entry stays stale.

        Raises:
            KeyError: If no fetcher is given and the key has no observer
        """
        fetcher = fetcher or self._observers[key]
        generation = self._generations.get(key, 0)
        data = await fetcher()
        if self._generations.get(key, 0) != generation:
            logger.debug("cache.refetch_discarded", key=key)
            return data
        self.set(key, data)
        return data

    async def wait_for_refetches(self) -> None:
        """Wait until all background refetches scheduled so far have finished."""
        while self._refetches:
            # Cancelled refetches surface as CancelledError results
            await asyncio.gather(*list(self._refetches), return_exceptions=True)

    def _schedule_refetch(self, key: CacheKey) -> None:
        previous = self._in_flight.get(key)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.get_running_loop().create_task(self._background_refetch(key))
        self._in_flight[key] = task
        self._refetches.add(task)
        task.add_done_callback(lambda done: self._forget_refetch(key, done))

    def _forget_refetch(self, key: CacheKey, task: asyncio.Task) -> None:
        self._refetches.discard(task)
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _background_refetch(self, key: CacheKey) -> None:
        try:
            await self.refetch(key)
        except Exception:
            # Entry stays stale; the next read retries
            logger.warning("cache.refetch_failed", key=key, exc_info=True)

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from trip_planner.core.config import get_settings
from trip_planner.core.exceptions import InvalidCoordinateError, TransportError
from trip_planner.services.geocoding import SearchHit, TextSearchProvider
from trip_planner.services.geometry import Coordinate

logger = logging.getLogger(__name__)

SEARCH_UNAVAILABLE_MESSAGE = "Location search is unavailable right now. Please try again."


def normalize_query(raw_text: str) -> str:
    return raw_text.strip().casefold()


@dataclass(frozen=True, slots=True)
class Suggestion:
    id: str
    display_label: str
    primary_label: str
    coordinate: Coordinate
    category: str

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "Suggestion":
        primary = hit.display_label.split(",", 1)[0].strip()
        return cls(
            id=hit.id,
            display_label=hit.display_label,
            primary_label=primary or hit.display_label,
            coordinate=Coordinate(lat=hit.lat, lon=hit.lon),
            category=hit.category,
        )


@dataclass(frozen=True, slots=True)
class SuggestionState:
    suggestions: tuple[Suggestion, ...] = ()
    is_loading: bool = False
    error: str | None = None


class SuggestionCache:
    """Bounded query -> suggestions store with strict FIFO eviction.

    Reads never refresh an entry's position; only insertion order decides what
    goes first when the cache is full. There is no expiry.
    """

    def __init__(self, capacity: int = 50) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[str, tuple[Suggestion, ...]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_query(key) in self._entries

    def get(self, key: str) -> tuple[Suggestion, ...] | None:
        return self._entries.get(normalize_query(key))

    def put(self, key: str, suggestions: Sequence[Suggestion]) -> None:
        normalized = normalize_query(key)
        if normalized in self._entries:
            # replacing keeps the original insertion slot
            self._entries[normalized] = tuple(suggestions)
            return
        while len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Suggestion cache eviction", extra={"key": evicted})
        self._entries[normalized] = tuple(suggestions)


class SuggestionFetcher:
    """Debounced, cancellable, cache-backed location suggestions for one text input.

    Call :meth:`on_query_changed` on every keystroke from inside the running
    event loop. Only the most recent debounce timer fires and only the most
    recent request may publish; a superseded request is cancelled, which also
    releases its connection. Listeners receive a fresh :class:`SuggestionState`
    on every change.
    """

    def __init__(
        self,
        provider: TextSearchProvider,
        *,
        cache: SuggestionCache | None = None,
        debounce_ms: int | None = None,
        min_chars: int | None = None,
        limit: int | None = None,
        on_change: Callable[[SuggestionState], None] | None = None,
    ) -> None:
        settings = get_settings()
        self.provider = provider
        self.cache = cache if cache is not None else SuggestionCache(settings.suggest_cache_capacity)
        self.debounce_ms = settings.suggest_debounce_ms if debounce_ms is None else debounce_ms
        self.min_chars = settings.suggest_min_chars if min_chars is None else min_chars
        self.limit = settings.suggest_limit if limit is None else limit
        self.on_change = on_change

        self._state = SuggestionState()
        self._pending_timer: asyncio.TimerHandle | None = None
        self._pending_query: str | None = None
        self._in_flight: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> SuggestionState:
        return self._state

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return self._state.suggestions

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def closed(self) -> bool:
        return self._closed

    def find(self, suggestion_id: str) -> Suggestion | None:
        for suggestion in self._state.suggestions:
            if suggestion.id == suggestion_id:
                return suggestion
        return None

    def on_query_changed(self, raw_text: str) -> None:
        if self._closed:
            return
        if len(normalize_query(raw_text)) < self.min_chars:
            self._disarm()
            self._cancel_in_flight()
            self._publish(SuggestionState())
            return
        self._arm(raw_text)

    def clear(self) -> None:
        """Drop pending work and published suggestions, e.g. after one is accepted."""
        self.on_query_changed("")

    def close(self) -> None:
        if self._closed:
            return
        self._disarm()
        self._cancel_in_flight()
        self._closed = True

    async def drain(self) -> None:
        """Wait until no timer is armed and no request is outstanding."""
        while not self._closed:
            if self._pending_timer is not None:
                await asyncio.sleep(self.debounce_ms / 1000)
            elif self._in_flight is not None and not self._in_flight.done():
                await asyncio.wait([self._in_flight])
            else:
                return

    def _arm(self, raw_text: str) -> None:
        self._disarm()
        loop = asyncio.get_running_loop()
        self._pending_query = raw_text
        self._pending_timer = loop.call_later(self.debounce_ms / 1000, self._fire)

    def _disarm(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
        self._pending_timer = None
        self._pending_query = None

    def _cancel_in_flight(self) -> None:
        task = self._in_flight
        self._in_flight = None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Superseded suggestion request cancelled")

    def _fire(self) -> None:
        raw_text = self._pending_query
        self._pending_timer = None
        self._pending_query = None
        if raw_text is None or self._closed:
            return

        key = normalize_query(raw_text)
        self._cancel_in_flight()

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Suggestion cache hit", extra={"query": key})
            self._publish(SuggestionState(suggestions=cached))
            return

        self._publish(replace(self._state, is_loading=True, error=None))
        self._in_flight = asyncio.create_task(self._fetch(raw_text.strip(), key))

    async def _fetch(self, query: str, key: str) -> None:
        try:
            hits = await self.provider.search(query, limit=self.limit)
        except TransportError as exc:
            logger.warning(
                "Suggest provider failed",
                extra={"provider": self.provider.__class__.__name__, "query": query, "error": exc.message},
            )
            self._publish(SuggestionState(error=SEARCH_UNAVAILABLE_MESSAGE))
            return
        except Exception as exc:
            logger.warning(
                "Suggest provider raised unexpectedly",
                extra={"provider": self.provider.__class__.__name__, "query": query, "error": str(exc)},
            )
            self._publish(SuggestionState(error=SEARCH_UNAVAILABLE_MESSAGE))
            return

        try:
            suggestions = tuple(Suggestion.from_hit(hit) for hit in hits[: self.limit])
        except InvalidCoordinateError as exc:
            # out-of-range coordinates make the whole payload malformed
            logger.warning(
                "Suggest provider returned a malformed hit",
                extra={"provider": self.provider.__class__.__name__, "query": query, "error": str(exc)},
            )
            self._publish(SuggestionState(error=SEARCH_UNAVAILABLE_MESSAGE))
            return
        self.cache.put(key, suggestions)
        self._publish(SuggestionState(suggestions=suggestions))

    def _publish(self, state: SuggestionState) -> None:
        if self._closed:
            return
        self._state = state
        if self.on_change is not None:
            self.on_change(state)

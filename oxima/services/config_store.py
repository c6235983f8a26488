import asyncio
import copy
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set

from ..core.config import Config
from ..core.errors import (
    ConfigKeyNotFoundError,
    ConfigLoadError,
    ConfigNotLoadedError,
    ConfigValueTypeError,
)
from ..core.http import fetch_document
from ..core.nested_map import MISSING, get_nested, set_nested, split_key_path
from ..core.reactive import Subscription, ValueStream


logger = logging.getLogger(__name__)

PropertyTree = Dict[str, Any]
Fetcher = Callable[[str], Awaitable[bytes | str]]


def _detached(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return copy.deepcopy(value)
    return value


class KeyWatch(ValueStream):
    """Value stream bound to one key path of a ``ConfigStore``.

    The store keeps the watch registered while it has subscribers and drops
    it when the last one unsubscribes.
    """

    def __init__(self, store: "ConfigStore", key: str, default: Any = None):
        super().__init__(distinct=True)
        self._store = store
        self.key = key
        self.default = default

    def subscribe(self, callback: Callable[[Any], None]) -> Subscription:
        if self.subscriber_count == 0:
            self._store._attach(self)
        inner = super().subscribe(callback)
        return Subscription(lambda: self._release(inner))

    def _release(self, inner: Subscription) -> None:
        inner.unsubscribe()
        if self.subscriber_count == 0:
            self._store._detach(self)


class ConfigStore:
    """Owns the properties tree loaded from a JSON document.

    The document is fetched once; concurrent ``load`` callers share the same
    in-flight fetch. Reads before the first successful load raise
    ``ConfigNotLoadedError`` whether or not a default is supplied.
    """

    def __init__(self, default_source: Optional[str] = None, fetcher: Optional[Fetcher] = None):
        self._default_source = default_source or Config.PROPERTIES_PATH
        self._fetcher: Fetcher = fetcher or fetch_document
        self._tree: PropertyTree = {}
        self._loaded = False
        self._source: Optional[str] = None
        self._inflight: Optional[asyncio.Future] = None
        self._inflight_source: Optional[str] = None
        self._waiters = 0
        self._watches: Set[KeyWatch] = set()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def source(self) -> Optional[str]:
        """Source of the tree currently in effect, None before the first load."""
        return self._source

    async def load(self, source: Optional[str] = None) -> PropertyTree:
        """Load the properties document unless it is already loaded.

        Raises ``ConfigLoadError`` on fetch or parse failure; the store stays
        not loaded and a later call retries.
        """
        if self._loaded:
            return self.all()
        await self._join_load(source or self._default_source)
        return self.all()

    async def reload(self, source: Optional[str] = None) -> PropertyTree:
        """Fetch the document again and replace the tree wholesale.

        On failure the previous tree stays in effect.
        """
        await self._join_load(source or self._source or self._default_source)
        return self.all()

    async def _join_load(self, source: str) -> None:
        inflight = self._inflight
        if inflight is None:
            inflight = asyncio.ensure_future(self._run_load(source))
            self._inflight = inflight
            self._inflight_source = source
        elif source != self._inflight_source:
            logger.warning(f"Load of {source} joined in-flight load of {self._inflight_source}")

        self._waiters += 1
        try:
            await asyncio.shield(inflight)
        except asyncio.CancelledError:
            # Only the last remaining caller may abandon the shared fetch
            if self._waiters == 1 and not inflight.done():
                logger.info(f"Cancelling load of {self._inflight_source}: no callers left")
                inflight.cancel()
                self._inflight = None
                self._inflight_source = None
            raise
        finally:
            self._waiters -= 1

    async def _run_load(self, source: str) -> PropertyTree:
        try:
            try:
                raw = await self._fetcher(source)
            except Exception as e:
                logger.error(f"Failed to load properties file {source}: {e}")
                raise ConfigLoadError(source, str(e)) from e

            try:
                tree = json.loads(raw)
            except ValueError as e:
                logger.error(f"Failed to parse properties file {source}: {e}")
                raise ConfigLoadError(source, f"invalid JSON: {e}") from e

            if not isinstance(tree, dict):
                logger.error(f"Properties file {source} is not a JSON object")
                raise ConfigLoadError(source, "document root must be an object")

            self._tree = tree
            self._source = source
            self._loaded = True
            logger.info(f"Loaded properties from {source}")
            self._refresh_watches()
            return tree
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None
                self._inflight_source = None

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise ConfigNotLoadedError()

    def get(self, key: str, default: Any = MISSING, *, expected_type: Optional[type] = None) -> Any:
        """Get a property value by dot-separated key.

        Returns ``default`` when the key resolves to nothing and a default was
        given, otherwise raises ``ConfigKeyNotFoundError``. With
        ``expected_type`` a found value of another type raises
        ``ConfigValueTypeError``.
        """
        self._require_loaded()
        value = get_nested(self._tree, key)
        if value is MISSING:
            if default is MISSING:
                raise ConfigKeyNotFoundError(key)
            return default
        if expected_type is not None and not isinstance(value, expected_type):
            raise ConfigValueTypeError(key, expected_type, value)
        return _detached(value)

    def has(self, key: str) -> bool:
        self._require_loaded()
        return get_nested(self._tree, key) is not MISSING

    def set(self, key: str, value: Any) -> None:
        self._require_loaded()
        set_nested(self._tree, key, _detached(value))
        self._refresh_watches()

    def update(self, entries: Mapping[str, Any]) -> None:
        """Apply several ``set`` operations, notifying watchers once."""
        self._require_loaded()
        for key in entries:
            split_key_path(key)
        for key, value in entries.items():
            set_nested(self._tree, key, _detached(value))
        self._refresh_watches()

    def all(self) -> PropertyTree:
        """Return a deep copy of all properties."""
        self._require_loaded()
        return copy.deepcopy(self._tree)

    def watch(self, key: str, default: Any = None) -> KeyWatch:
        """Stream the value at ``key``; missing keys resolve to ``default``.

        The current value is replayed on subscribe once the store is loaded.
        Updates flow until every subscription to the stream is unsubscribed.
        """
        split_key_path(key)
        watch = KeyWatch(self, key, default)
        if self._loaded:
            self._emit(watch)
        return watch

    def _attach(self, watch: KeyWatch) -> None:
        self._watches.add(watch)
        # Catch up on changes made while the watch had no subscribers
        if self._loaded:
            self._emit(watch)

    def _detach(self, watch: KeyWatch) -> None:
        self._watches.discard(watch)

    def _refresh_watches(self) -> None:
        for watch in list(self._watches):
            self._emit(watch)

    def _emit(self, watch: KeyWatch) -> None:
        value = get_nested(self._tree, watch.key)
        watch.emit(watch.default if value is MISSING else _detached(value))

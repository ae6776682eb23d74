"""
Cached fetches shared by every binding.

A fetch is identified by a ``QueryKey`` (entity type, tenant id, scope, params). Entries move
``idle -> loading -> success | error`` and go back to ``loading`` on the next access after a
refetch or an invalidation. Invalidation is coarse: every entry of an entity type is marked
stale, whatever its params.
"""
import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from cachetools import TTLCache

from fleetdesk.config import settings
from fleetdesk.core.errors import Result, ServiceError
from fleetdesk.core.logging_config import get_logger

logger = get_logger(__name__)

Loader = Callable[[], Awaitable[Result]]


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryKey:
    entity: str
    tenant_id: Optional[str]
    scope: str = "list"
    params: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def build(cls, entity: str, tenant_id: Optional[str], scope: str = "list", **params: Any) -> "QueryKey":
        return cls(entity, tenant_id, scope, tuple(sorted(params.items())))


@dataclass
class QueryEntry:
    key: QueryKey
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    count: Optional[int] = None
    error: Optional[ServiceError] = None
    stale: bool = False
    generation: int = 0
    fetch_count: int = 0
    updated_at: Optional[float] = None
    task: Optional[asyncio.Future] = field(default=None, repr=False)
    task_generation: int = -1

    @property
    def is_loading(self) -> bool:
        return self.status is QueryStatus.LOADING

    @property
    def is_fresh(self) -> bool:
        return self.status is QueryStatus.SUCCESS and not self.stale


class QueryClient:
    """Owns the cache table; nothing else writes to it."""

    def __init__(self, maxsize: Optional[int] = None, ttl: Optional[float] = None):
        self._entries: TTLCache = TTLCache(
            maxsize=maxsize or settings.QUERY_CACHE_MAXSIZE,
            ttl=ttl or settings.QUERY_CACHE_TTL_SECONDS,
        )
        self._generations: Dict[str, int] = defaultdict(int)

    def entry(self, key: QueryKey) -> QueryEntry:
        """Current state of ``key``; an idle entry when nothing has been fetched yet."""
        return self._entries.get(key) or QueryEntry(key)

    def entries(self, entity: Optional[str] = None) -> List[QueryEntry]:
        return [entry for key, entry in list(self._entries.items()) if entity is None or key.entity == entity]

    def generation(self, entity: str) -> int:
        return self._generations[entity]

    async def fetch(self, key: QueryKey, loader: Loader, *, force: bool = False) -> Result:
        """
        Cached result for ``key``, loading it through ``loader`` when missing, stale or failed.

        Identical concurrent fetches share one in-flight load, unless an invalidation
        happened after that load started.
        """
        generation = self._generations[key.entity]
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryEntry(key)
            self._entries[key] = entry

        if not force and entry.is_fresh and entry.generation == generation:
            logger.debug(f"[QueryClient] hit {key}")
            return Result.success(entry.data, count=entry.count)

        in_flight = entry.task
        if in_flight is not None and not in_flight.done() and entry.task_generation == generation:
            logger.debug(f"[QueryClient] joining in-flight load {key}")
            return await asyncio.shield(in_flight)

        logger.debug(f"[QueryClient] miss {key}")
        entry.status = QueryStatus.LOADING
        task = asyncio.ensure_future(self._load(entry, loader, generation))
        entry.task = task
        entry.task_generation = generation
        return await asyncio.shield(task)

    async def refetch(self, key: QueryKey, loader: Loader) -> Result:
        return await self.fetch(key, loader, force=True)

    async def _load(self, entry: QueryEntry, loader: Loader, generation: int) -> Result:
        try:
            result = await loader()
        except ServiceError as exc:
            result = Result.failure(exc)
        except Exception as exc:
            logger.exception(f"[QueryClient] loader for {entry.key} raised")
            result = Result.failure(ServiceError.unknown(str(exc)))

        if entry.task is asyncio.current_task():
            entry.task = None
        elif entry.task is not None or entry.generation > generation:
            # superseded by a load started later
            return result

        entry.fetch_count += 1
        entry.generation = generation
        entry.updated_at = time.monotonic()
        entry.stale = generation != self._generations[entry.key.entity]
        if result.ok:
            entry.status = QueryStatus.SUCCESS
            entry.data = result.data
            entry.count = result.count
            entry.error = None
        else:
            entry.status = QueryStatus.ERROR
            entry.data = None
            entry.count = None
            entry.error = result.error
        return result

    def invalidate(self, *entities: str) -> None:
        """Mark every cached fetch of ``entities`` stale, whatever its params or tenant."""
        targets = set(entities)
        for entity in targets:
            self._generations[entity] += 1
        stale = 0
        for key, entry in list(self._entries.items()):
            if key.entity in targets:
                entry.stale = True
                stale += 1
        logger.debug(f"[QueryClient] invalidated {sorted(targets)} ({stale} entries)")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        counts: Dict[str, int] = defaultdict(int)
        for key in list(self._entries.keys()):
            counts[key.entity] += 1
        return dict(counts)


def freeze_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Hashable copies of binding params (lists become tuples)."""
    frozen = {}
    for name, value in params.items():
        if isinstance(value, (list, set)):
            value = tuple(value)
        elif isinstance(value, dict):
            value = tuple(sorted(value.items()))
        frozen[name] = value
    return frozen


def merge_entities(*groups: Iterable[str]) -> Tuple[str, ...]:
    seen: List[str] = []
    for group in groups:
        for entity in group:
            if entity not in seen:
                seen.append(entity)
    return tuple(seen)

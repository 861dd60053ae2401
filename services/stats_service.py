"""
Statistics service.

Validates the scope, serves bundles from the TTL cache and computes them
on a miss. Concurrent misses for the same key share one computation.
Owns its cache and the background sweep that evicts expired entries.
"""

import asyncio
import logging
import threading
import time
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from config import Settings
from database.connection import get_collection
from services.stats_cache import DEFAULT_TTL_SECONDS, TTLCache
from services.stats_dimensions import ENTITY_SETS, EntitySet
from services.stats_pipeline import build_pipeline
from services.stats_postprocess import annotate
from utils.errors import DatabaseUnavailableError, StatsComputationError
from utils.scope import validate_scope

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 600.0


class StatsService:
    """
    Cached statistics for one entity set.

    Request flow: validate scope, then return the cached bundle unless a
    refresh is forced, otherwise compute, store and return. A failed
    computation raises and leaves the cache untouched.
    """

    def __init__(
        self,
        entity: EntitySet,
        collection_getter: Callable[[], Optional[Collection]],
        ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            entity: Dimension table for the entity set
            collection_getter: Returns the MongoDB collection, or None when the database is down
            ttl: Cache lifetime of a bundle in seconds
            sweep_interval: Seconds between background sweeps
            clock: Wall-clock source shared with the cache
        """
        self.entity = entity
        self.cache = TTLCache(ttl=ttl, clock=clock)
        self.sweep_interval = sweep_interval
        self._collection_getter = collection_getter
        self._inflight: Dict[str, Future] = {}
        self._inflight_lock = threading.Lock()
        self._sweep_task: Optional[asyncio.Task] = None

    def cache_key(self, scope: ObjectId) -> str:
        return f"{self.entity.name}:{scope}"

    def get_stats(self, scope: Optional[str], refresh: bool = False) -> Dict[str, Any]:
        """
        Return the stats bundle for a scope.

        Args:
            scope: Raw project identifier from the request
            refresh: Skip the cache lookup and recompute, never joining
                a computation that started earlier

        Raises:
            InvalidScopeError: Before touching the cache or the database
            StatsComputationError: If the aggregation fails
            DatabaseUnavailableError: If there is no database connection
        """
        scope_id = validate_scope(scope)
        key = self.cache_key(scope_id)

        if refresh:
            logger.info("Forced refresh of %s", key)
        else:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Stats cache hit for %s", key)
                return cached
            logger.debug("Stats cache miss for %s", key)

        return self._compute_shared(key, scope_id, fresh=refresh)

    def _compute_shared(self, key: str, scope_id: ObjectId, fresh: bool = False) -> Dict[str, Any]:
        # Only the future registered in _inflight may write the cache.
        # Invalidation and forced refresh unregister it, so a computation
        # that started before them finishes without storing its result.
        with self._inflight_lock:
            future = None if fresh else self._inflight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[key] = future

        if not owner:
            logger.debug("Joining in-flight computation for %s", key)
            return future.result()

        try:
            bundle = self.compute(scope_id)
        except Exception as exc:
            with self._inflight_lock:
                if self._inflight.get(key) is future:
                    del self._inflight[key]
            future.set_exception(exc)
            raise

        with self._inflight_lock:
            if self._inflight.get(key) is future:
                self.cache.set(key, bundle)
                del self._inflight[key]
            else:
                logger.debug("Discarding %s computed before invalidation", key)
        future.set_result(bundle)
        return bundle

    def compute(self, scope_id: ObjectId) -> Dict[str, Any]:
        """Run the aggregation for one scope and shape the result."""
        collection = self._collection_getter()
        if collection is None:
            raise DatabaseUnavailableError()

        started = time.perf_counter()
        try:
            results = list(collection.aggregate(build_pipeline(self.entity, scope_id)))
        except PyMongoError as exc:
            logger.exception("Aggregation failed for %s stats (scope %s)", self.entity.name, scope_id)
            raise StatsComputationError(
                f"Failed to compute {self.entity.name} statistics."
            ) from exc

        bundle = annotate(self.entity, results[0] if results else None)
        logger.info(
            "Computed %s stats for scope %s (%d documents) in %.3fs",
            self.entity.name, scope_id, bundle["total"], time.perf_counter() - started,
        )
        return bundle

    def invalidate(self, scope: Optional[str]) -> bool:
        """Drop the cached bundle for one scope. The next GET recomputes."""
        key = self.cache_key(validate_scope(scope))
        with self._inflight_lock:
            self._inflight.pop(key, None)
            removed = self.cache.invalidate(key)
        logger.info("Invalidated %s (%s)", key, "removed" if removed else "not cached")
        return removed

    def invalidate_all(self) -> int:
        with self._inflight_lock:
            self._inflight.clear()
            count = self.cache.invalidate_all()
        logger.info("Cleared %s stats cache (%d entries)", self.entity.name, count)
        return count

    def cache_info(self, scope: Optional[str]) -> Dict[str, Any]:
        """Report whether a scope is cached and for how long, without touching the entry."""
        entry = self.cache.peek(self.cache_key(validate_scope(scope)))
        if entry is None:
            return {"cached": False}
        return {
            "cached": True,
            "expires_in": int(self.cache.remaining(entry)),
            "expires_at": datetime.fromtimestamp(entry.expires_at, tz=timezone.utc).isoformat(),
        }

    # === Background sweep ===

    async def start(self) -> None:
        """Start the periodic sweep on the running event loop. Idempotent."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(
            "Started %s stats cache sweep every %ss", self.entity.name, self.sweep_interval
        )

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to exit. Idempotent."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped %s stats cache sweep", self.entity.name)

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.cache.sweep()


def build_stats_services(settings: Settings, clock: Callable[[], float] = time.time) -> Dict[str, StatsService]:
    """
    Construct one service per entity set from the application settings.

    Returns:
        dict: Entity set name -> StatsService
    """
    return {
        name: StatsService(
            entity,
            collection_getter=lambda collection=entity.collection: get_collection(collection),
            ttl=settings.stats_cache_ttl_seconds,
            sweep_interval=settings.stats_cache_sweep_interval_seconds,
            clock=clock,
        )
        for name, entity in ENTITY_SETS.items()
    }

"""Pronoun directory: cached, ordered multi-source resolution."""

import asyncio
import logging
import time
from typing import Sequence

from ..logging import JSONLLogger
from ..pronouns import UNSPECIFIED, normalize_label
from .cache import PronounCache
from .sources import PronounSource

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class PronounDirectory:
    """Resolves person ids to normalized pronoun labels.

    All lookups go through the cache owned by this directory. Sources are
    tried sequentially in the order given, each bounded by its own timeout;
    the first reply that is not ``unspecified`` wins and is cached. Negative
    results are never cached so later calls retry.
    """

    def __init__(
        self,
        sources: Sequence[PronounSource] | None = None,
        cache: PronounCache | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.sources: list[PronounSource] = list(sources or [])
        self.cache = cache or PronounCache()
        self.timeout = timeout
        self.event_logger = event_logger
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def get_lock(self, person_id: str) -> asyncio.Lock:
        """Get the lock for a person id."""
        if person_id not in self._locks:
            self._locks[person_id] = asyncio.Lock()
        return self._locks[person_id]

    async def resolve(
        self,
        person_id: str,
        sources: Sequence[PronounSource] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Resolve a person's pronoun label.

        Args:
            person_id: The person to look up.
            sources: Ordered sources to try. Defaults to the directory's own.
            timeout: Per-source timeout in seconds.

        Returns:
            The normalized label, or ``unspecified`` if no source had one.
        """
        cached = self.cache.get(person_id)
        if cached is not None:
            self._log_cache_hit(person_id, cached.label, cached.source)
            return cached.label

        lock = self.get_lock(person_id)
        self._lock_users[person_id] = self._lock_users.get(person_id, 0) + 1
        try:
            async with lock:
                # Another task may have resolved while we waited.
                cached = self.cache.get(person_id)
                if cached is not None:
                    self._log_cache_hit(person_id, cached.label, cached.source)
                    return cached.label
                return await self._resolve_uncached(
                    person_id,
                    self.sources if sources is None else list(sources),
                    self.timeout if timeout is None else timeout,
                )
        finally:
            self._release_lock(person_id)

    def _release_lock(self, person_id: str) -> None:
        """Drop the person's lock once no task is using it."""
        remaining = self._lock_users.get(person_id, 1) - 1
        if remaining > 0:
            self._lock_users[person_id] = remaining
            return
        self._lock_users.pop(person_id, None)
        self._locks.pop(person_id, None)

    def _log_cache_hit(self, person_id: str, label: str, source: str | None) -> None:
        if self.event_logger:
            self.event_logger.log_resolution(person_id, label, source=source, cached=True)

    async def _resolve_uncached(
        self,
        person_id: str,
        sources: list[PronounSource],
        timeout: float,
    ) -> str:
        for source in sources:
            start = time.monotonic()
            try:
                raw = await asyncio.wait_for(source.fetch(person_id), timeout=timeout)
            except asyncio.TimeoutError:
                self._source_failed(person_id, source.name, f"timed out after {timeout}s")
                continue
            except Exception as e:
                self._source_failed(person_id, source.name, str(e))
                continue

            label = normalize_label(raw)
            if label == UNSPECIFIED:
                logger.debug("Source %s has no label for %s", source.name, person_id)
                continue

            self.cache.put(person_id, label, source=source.name)
            if self.event_logger:
                self.event_logger.log_resolution(
                    person_id,
                    label,
                    source=source.name,
                    duration_ms=(time.monotonic() - start) * 1000,
                )
            return label

        return UNSPECIFIED

    def _source_failed(self, person_id: str, source: str, error: str) -> None:
        logger.warning("Pronoun lookup for %s via %s failed: %s", person_id, source, error)
        if self.event_logger:
            self.event_logger.log_source_failure(person_id, source, error)

    def clear_cache(self) -> int:
        """Clear the label cache. Returns how many records were dropped."""
        return self.cache.clear()

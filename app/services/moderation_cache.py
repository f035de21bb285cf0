"""In-process cache of moderation verdicts keyed by normalized text."""

import asyncio
import hashlib
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from app.core.metrics import CACHE_LOOKUPS
from app.schemas.moderation import ModerationVerdict

logger = logging.getLogger(__name__)


class ModerationCache:
    """Memoizes verdicts for ``ttl_seconds`` from the moment they are stored.

    Unbounded apart from an opportunistic sweep: once the cache grows past
    ``sweep_threshold`` entries, every expired entry is dropped in one pass.
    Concurrent lookups of the same text share one in-flight computation.
    Not shared between processes and empty after a restart.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        sweep_threshold: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._entries: Dict[str, Tuple[ModerationVerdict, float]] = {}
        self._in_flight: Dict[str, asyncio.Future] = {}

    @staticmethod
    def text_hash(text: str) -> str:
        return hashlib.sha256(text.strip().lower().encode("utf-8")).hexdigest()

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, cached_at: float, now: float) -> bool:
        return now - cached_at < self.ttl_seconds

    def get(self, text: str) -> Optional[ModerationVerdict]:
        entry = self._entries.get(self.text_hash(text))
        if entry is None:
            return None
        verdict, cached_at = entry
        if not self._is_fresh(cached_at, self._clock()):
            return None
        return verdict

    def set(self, text: str, verdict: ModerationVerdict) -> None:
        self._entries[self.text_hash(text)] = (verdict, self._clock())
        if len(self._entries) > self.sweep_threshold:
            self.sweep()

    def sweep(self) -> int:
        now = self._clock()
        expired = [
            key for key, (_, cached_at) in self._entries.items()
            if not self._is_fresh(cached_at, now)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Moderation cache sweep evicted %d entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_compute(
        self,
        text: str,
        compute: Callable[[], Awaitable[ModerationVerdict]],
    ) -> ModerationVerdict:
        cached = self.get(text)
        if cached is not None:
            CACHE_LOOKUPS.labels(result="hit").inc()
            logger.debug("Moderation cache HIT hash=%s", self.text_hash(text)[:16])
            return cached

        key = self.text_hash(text)
        pending = self._in_flight.get(key)
        if pending is not None:
            CACHE_LOOKUPS.labels(result="coalesced").inc()
            return await asyncio.shield(pending)

        CACHE_LOOKUPS.labels(result="miss").inc()
        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            verdict = await compute()
        except Exception as e:
            future.set_exception(e)
            # mark retrieved so a failure with no waiters is not reported twice
            future.exception()
            raise
        else:
            self.set(text, verdict)
            future.set_result(verdict)
            return verdict
        finally:
            if not future.done():
                future.cancel()
            del self._in_flight[key]


class CachedToxicityScorer:
    """Scorer front-end that consults the cache before calling the provider."""

    def __init__(self, scorer, cache: ModerationCache):
        self.scorer = scorer
        self.cache = cache

    async def score(self, text: str) -> ModerationVerdict:
        return await self.cache.get_or_compute(text, lambda: self.scorer.score(text))

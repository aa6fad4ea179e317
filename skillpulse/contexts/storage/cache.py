"""
Redis cache of per-profession skill snapshots.

ProfessionCache stores the latest ProfessionDetail of every profession as JSON
under profession:<id>:skills with an expiry. CacheWriter performs those writes
on a background worker so neither a run nor a read-back request ever waits
for the cache. Cache failures are logged, never raised to the submitter.
"""

import json
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import redis
from loguru import logger

from skillpulse.contexts.scraping.schema import ProfessionDetail

KEY_TEMPLATE = "profession:{}:skills"
DEFAULT_TTL_SECONDS = 30 * 24 * 3600
DEFAULT_WRITE_TIMEOUT = 10.0


class ProfessionCache:
    def __init__(self, client: "redis.Redis", ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(
        cls,
        url: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        socket_timeout: float = DEFAULT_WRITE_TIMEOUT,
    ) -> "ProfessionCache":
        """
        Connect to Redis.

        Args:
            url: redis:// or rediss:// URL (REDIS_URL)
            ttl_seconds: Expiry of each snapshot
            socket_timeout: Upper bound on one cache round trip
        """
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        return cls(client, ttl_seconds=ttl_seconds)

    @staticmethod
    def key(profession_id: uuid.UUID) -> str:
        return KEY_TEMPLATE.format(profession_id)

    def save(self, detail: ProfessionDetail) -> None:
        payload = json.dumps(detail.to_dict(), ensure_ascii=False)
        self.client.setex(self.key(detail.profession_id), self.ttl_seconds, payload)

    def get(self, profession_id: uuid.UUID) -> Optional[ProfessionDetail]:
        """
        Returns:
            The cached snapshot, or None on a miss

        Raises:
            redis.RedisError: Connection or timeout problems
            ValueError: The stored value is not a valid snapshot
        """
        raw = self.client.get(self.key(profession_id))
        if raw is None:
            return None
        try:
            return ProfessionDetail.from_dict(json.loads(raw))
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed cache entry for {profession_id}: {e}") from e


class CacheWriter:
    """
    Fire-and-forget snapshot writes on a single background worker.

    submit() returns at once. close(wait=True) drains queued writes;
    close(wait=False) drops whatever has not started yet.
    """

    def __init__(self, cache: ProfessionCache):
        self.cache = cache
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cache-writer")
        self._closed = False

    def submit(self, detail: ProfessionDetail) -> Optional[Future]:
        if self._closed:
            logger.warning(f"Cache writer closed, dropping snapshot for {detail.profession_name}")
            return None
        future = self._executor.submit(self.cache.save, detail)
        future.add_done_callback(lambda f: self._log_result(f, detail))
        return future

    @staticmethod
    def _log_result(future: Future, detail: ProfessionDetail) -> None:
        if future.cancelled():
            logger.debug(f"[{detail.profession_name}] Cache write abandoned")
            return
        error = future.exception()
        if error is not None:
            logger.error(f"[{detail.profession_name}] Failed to save cache: {error}")
        else:
            logger.debug(f"[{detail.profession_name}] Cache saved")

    def close(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self) -> "CacheWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Drain on a clean exit, abandon pending writes when unwinding an error
        self.close(wait=exc_type is None)

"""
Read-back of a profession's latest skill profile.

The cache is consulted first. On a miss the snapshot is assembled from the
latest scraping session in storage and handed to the CacheWriter so the next
request is served from the cache.
"""

import uuid

from loguru import logger

from skillpulse.contexts.scraping.schema import ProfessionDetail
from skillpulse.contexts.storage.cache import CacheWriter, ProfessionCache
from skillpulse.contexts.storage.database import DatabaseWrapper, ProfessionNotFound


class ProfessionDetailProvider:
    def __init__(
        self,
        db: DatabaseWrapper,
        cache: ProfessionCache = None,
        cache_writer: CacheWriter = None,
    ):
        self.db = db
        self.cache = cache
        self.cache_writer = cache_writer

    def _from_cache(self, profession_id: uuid.UUID):
        if self.cache is None:
            return None
        try:
            cached = self.cache.get(profession_id)
        except Exception as e:
            logger.debug(f"Cache miss for {profession_id}: {e}")
            return None
        if cached is not None:
            logger.debug(f"Cache hit for {profession_id}")
        return cached

    def profession_detail(self, profession_id: uuid.UUID) -> ProfessionDetail:
        """
        Latest skill profile of a profession.

        Raises:
            ProfessionNotFound: If the profession does not exist or has no
                                statistics in the latest scraping session
        """
        cached = self._from_cache(profession_id)
        if cached is not None:
            return cached

        profession = self.db.get_profession(profession_id)
        if profession is None:
            raise ProfessionNotFound(f"profession {profession_id} not found")

        session = self.db.get_latest_session()
        stat = self.db.get_stat(profession_id, session.id) if session is not None else None
        if stat is None:
            raise ProfessionNotFound(f"no statistics for profession '{profession.name}' in the latest session")

        detail = ProfessionDetail(
            profession_id=profession.id,
            profession_name=profession.name,
            scraped_at=session.scraped_at.isoformat(),
            vacancy_count=stat.vacancy_count,
            formal_skills=self.db.get_formal_skills(profession_id, session.id),
            extracted_skills=self.db.get_extracted_skills(profession_id, session.id),
        )

        if self.cache_writer is not None:
            self.cache_writer.submit(detail)
        return detail

"""
Scraping run orchestration.

One run:
- loads the active professions from storage (fatal on error)
- opens a scraping session, or synthesizes one for a dry run
- scrapes every profession independently: metadata, result pages, vacancy details
- aggregates formal and extracted skill counts
- persists the statistics (persisted runs only) and refreshes the cache

Per-profession failures are logged and reported; they never abort the run.
"""

import math
import os
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger
from tqdm import tqdm

from skillpulse.contexts.extraction.skills import SkillExtractor
from skillpulse.contexts.scraping.hh import HHClient
from skillpulse.contexts.scraping.ratelimit import TokenBucket
from skillpulse.contexts.scraping.requests import RetryingFetcher, RetryPolicy
from skillpulse.contexts.scraping.schema import (
    OUTCOME_COMPLETED,
    OUTCOME_FAILED,
    OUTCOME_NO_RESULTS,
    Profession,
    ProfessionOutcome,
    RunReport,
    ScrapingSession,
    VacancyRecord,
)
from skillpulse.contexts.scraping.token import AccessTokenManager
from skillpulse.utils.context import Cancelled, RunContext
from skillpulse.utils.partial import gather_partial

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))


def setup_logger(log_dir: Path = LOGS_PATH) -> Path:
    """
    Configure loguru to write to timestamped log file.

    Args:
        log_dir: Directory for log files (default: LOGS_PATH from environment)

    Returns:
        Path to the created log file
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"pipeline_{timestamp}.txt"

    logger.remove()
    logger.add(log_file, format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {thread.name} | {message}")
    # Console output goes through tqdm so progress bars are not torn apart
    logger.add(
        lambda msg: tqdm.write(msg, end=""),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}\n",
        level="INFO",
    )

    return log_file


def _get_required_env(key: str) -> str:
    try:
        return os.environ[key]
    except KeyError:
        raise EnvironmentError(
            f"Required environment variable '{key}' not found. "
            f"Ensure .env file exists and contains {key}."
        )


class ScrapeOrchestrator:
    """
    Runs the scrape-extract-persist pipeline over all active professions.

    Args:
        client: hh.ru API client
        db: Storage collaborator (see storage.DatabaseWrapper)
        cache_writer: Optional background cache writer; snapshots are submitted
                      and never waited for
        page_size: Vacancies per result page
        max_pages: Upper bound on result pages fetched per profession
        profession_timeout: Seconds allowed for one profession, None for no limit
        profession_workers: Professions processed concurrently
        extractor: Free-text skill extractor
        progress: Show a tqdm bar over vacancy detail fetches
    """

    def __init__(
        self,
        client: HHClient,
        db,
        cache_writer=None,
        page_size: int = 100,
        max_pages: int = 20,
        profession_timeout: Optional[float] = 480.0,
        profession_workers: int = 1,
        extractor: SkillExtractor = None,
        progress: bool = False,
    ):
        if profession_workers < 1:
            raise ValueError("profession_workers must be at least 1")
        self.client = client
        self.db = db
        self.cache_writer = cache_writer
        self.page_size = page_size
        self.max_pages = max_pages
        self.profession_timeout = profession_timeout
        self.profession_workers = profession_workers
        self.extractor = extractor or SkillExtractor()
        self.progress = progress

    def run(self, ctx: RunContext, persist: bool = True) -> RunReport:
        """
        Execute one pipeline run.

        Args:
            ctx: Run context; cancelling it stops every in-flight profession
            persist: Write statistics to storage. A dry run only refreshes the cache.

        Returns:
            RunReport with one outcome per profession, in profession order

        Raises:
            Exception: Whatever storage raised while loading the professions or
                       creating the session. Nothing else escapes a run.
        """
        start_time = time.time()

        professions = self.db.get_active_professions()
        if persist:
            session = self.db.create_scraping_session()
            logger.info(f"Created scraping session {session.id}")
        else:
            session = ScrapingSession.synthetic()
            logger.info(f"Dry run: statistics will not be persisted (session {session.id})")

        report = RunReport(session=session, persisted=persist)
        if not professions:
            logger.warning("No active professions to scrape")
            return report

        logger.info(
            f"Scraping {len(professions)} profession(s) with {self.profession_workers} worker(s): "
            f"{', '.join(p.name for p in professions)}"
        )

        with ThreadPoolExecutor(
            max_workers=self.profession_workers, thread_name_prefix="profession"
        ) as pool:
            futures = [
                pool.submit(self._process_profession, ctx, profession, session, persist)
                for profession in professions
            ]
            try:
                for future in futures:
                    report.outcomes.append(future.result())
            except BaseException:
                # Interrupted while waiting: stop the workers before the pool joins them
                ctx.cancel()
                raise

        elapsed = time.time() - start_time
        logger.info(
            f"Run complete: {report.count(OUTCOME_COMPLETED)}/{len(professions)} professions completed, "
            f"{report.count(OUTCOME_NO_RESULTS)} with no results, "
            f"{report.count(OUTCOME_FAILED)} failed ({elapsed:.1f}s)"
        )
        return report

    def _process_profession(
        self,
        ctx: RunContext,
        profession: Profession,
        session: ScrapingSession,
        persist: bool,
    ) -> ProfessionOutcome:
        tag = f"[{profession.name}]"
        start_time = time.time()
        outcome = ProfessionOutcome(profession=profession, status=OUTCOME_FAILED)

        with ctx.child(self.profession_timeout) as profession_ctx:
            try:
                self._scrape(profession_ctx, profession, outcome)
            except Cancelled as e:
                outcome.errors.append(f"cancelled: {e}")
                logger.error(f"{tag} Cancelled: {e} ({time.time() - start_time:.1f}s)")
                return outcome
            except Exception as e:
                outcome.errors.append(f"failed: {e}")
                logger.error(f"{tag} Failed: {e} ({time.time() - start_time:.1f}s)")
                return outcome

        if persist:
            self._persist(session, outcome)
        if self.cache_writer is not None:
            self.cache_writer.submit(outcome.detail(session))

        logger.success(
            f"{tag} {outcome.status}: {outcome.vacancy_count} vacancies, "
            f"{len(outcome.formal_skills)} formal / {len(outcome.extracted_skills)} extracted skills "
            f"({time.time() - start_time:.1f}s)"
        )
        return outcome

    def _page_count(self, found: int) -> int:
        return min(math.ceil(found / self.page_size), self.max_pages)

    def _scrape(self, ctx: RunContext, profession: Profession, outcome: ProfessionOutcome) -> None:
        """Fill outcome in place. Raises only for a failed metadata fetch or cancellation."""
        tag = f"[{profession.name}]"
        query = profession.vacancy_query

        meta = self.client.count(ctx, query)
        if meta.found == 0:
            logger.warning(f"{tag} No vacancies found for query '{query}'")
            outcome.status = OUTCOME_NO_RESULTS
            return

        pages = self._page_count(meta.found)
        logger.info(f"{tag} {meta.found} vacancies found, fetching {pages} page(s)")

        listed = gather_partial(range(pages), lambda page: self.client.page_ids(ctx, query, page))
        for page, error in listed.errors:
            outcome.errors.append(f"page {page}: {error}")
            logger.warning(f"{tag} Skipping page {page}: {error}")

        # Result pages can shift while we paginate; count each vacancy once
        vacancy_ids = list(dict.fromkeys(vid for ids in listed.values for vid in ids))

        with tqdm(
            vacancy_ids,
            desc=profession.name,
            unit="vacancy",
            leave=False,
            disable=not self.progress or self.profession_workers > 1,
        ) as items:
            fetched = gather_partial(items, lambda vid: self.client.vacancy(ctx, vid))
        for vacancy_id, error in fetched.errors:
            outcome.errors.append(f"vacancy {vacancy_id}: {error}")
            logger.warning(f"{tag} Skipping vacancy {vacancy_id}: {error}")

        vacancies: List[VacancyRecord] = fetched.values
        formal = Counter(skill for vacancy in vacancies for skill in vacancy.skills)

        outcome.status = OUTCOME_COMPLETED
        outcome.vacancy_count = len(vacancies)
        outcome.formal_skills = dict(formal)
        outcome.extracted_skills = self.extractor.extract_many(
            (vacancy.description for vacancy in vacancies), formal
        )

        if fetched.errors:
            logger.info(f"{tag} Fetched {len(vacancies)}/{fetched.attempted} vacancies")

    def _persist(self, session: ScrapingSession, outcome: ProfessionOutcome) -> None:
        """Three independent writes: a failure in one does not prevent the others."""
        tag = f"[{outcome.profession.name}]"
        profession_id = outcome.profession.id
        writes = [
            ("stat", lambda: self.db.save_stat(session.id, profession_id, outcome.vacancy_count)),
            ("formal skills", lambda: self.db.save_formal_skills(session.id, profession_id, outcome.formal_skills)),
            ("extracted skills", lambda: self.db.save_extracted_skills(session.id, profession_id, outcome.extracted_skills)),
        ]
        for name, write in writes:
            try:
                write()
            except Exception as e:
                outcome.errors.append(f"saving {name} failed: {e}")
                logger.error(f"{tag} Failed to save {name}: {e}")


def build_orchestrator(config, db, cache_writer=None) -> ScrapeOrchestrator:
    """
    Wire the token manager, limiter, fetcher and client from config and environment.

    Args:
        config: Pipeline DictConfig (see config/pipeline.yaml)
        db: Storage collaborator
        cache_writer: Optional CacheWriter

    Raises:
        EnvironmentError: If HH_CLIENT_ID, HH_CLIENT_SECRET or HH_USER_AGENT is missing
    """
    user_agent = _get_required_env("HH_USER_AGENT")
    timeout = (float(config.hh.connect_timeout), float(config.hh.read_timeout))

    tokens = AccessTokenManager(
        client_id=_get_required_env("HH_CLIENT_ID"),
        client_secret=_get_required_env("HH_CLIENT_SECRET"),
        user_agent=user_agent,
        token_url=config.hh.token_url,
        min_refresh_interval=float(config.token.min_refresh_interval),
        timeout=timeout,
        access_token=os.getenv("HH_ACCESS_TOKEN") or None,
    )
    limiter = TokenBucket(
        capacity=int(config.rate_limit.capacity),
        refill_rate=float(config.rate_limit.refill_rate),
    )
    fetcher = RetryingFetcher(
        tokens,
        limiter,
        policy=RetryPolicy.from_config(config.retry),
        user_agent=user_agent,
        timeout=timeout,
    )
    client = HHClient(
        fetcher,
        base_url=config.hh.base_url,
        area=config.hh.area,
        page_size=int(config.hh.page_size),
    )

    profession_timeout = config.pipeline.profession_timeout
    return ScrapeOrchestrator(
        client,
        db,
        cache_writer=cache_writer,
        page_size=int(config.hh.page_size),
        max_pages=int(config.hh.max_pages),
        profession_timeout=float(profession_timeout) if profession_timeout else None,
        profession_workers=int(config.pipeline.profession_workers),
        progress=bool(config.pipeline.progress),
    )

"""
Vacancy scraping domain.

Authenticated, rate-limited access to the hh.ru vacancy API and the
orchestration of a full scrape-extract-persist run.
"""

from skillpulse.contexts.scraping.hh import HHClient
from skillpulse.contexts.scraping.orchestration import (
    ScrapeOrchestrator,
    build_orchestrator,
    setup_logger,
)
from skillpulse.contexts.scraping.ratelimit import TokenBucket
from skillpulse.contexts.scraping.requests import (
    FetchFailed,
    RetryingFetcher,
    RetryPolicy,
    classify_http_outcome,
)
from skillpulse.contexts.scraping.schema import (
    OUTCOME_COMPLETED,
    OUTCOME_FAILED,
    OUTCOME_NO_RESULTS,
    Profession,
    ProfessionDetail,
    ProfessionOutcome,
    RunReport,
    ScrapingSession,
    SkillCount,
    Stat,
    VacancyRecord,
)
from skillpulse.contexts.scraping.token import AccessTokenManager, AuthFailure

__all__ = [
    # Orchestration (primary interface)
    "ScrapeOrchestrator",
    "build_orchestrator",
    "setup_logger",
    # Upstream access
    "AccessTokenManager",
    "AuthFailure",
    "TokenBucket",
    "RetryingFetcher",
    "RetryPolicy",
    "FetchFailed",
    "classify_http_outcome",
    "HHClient",
    # Records
    "Profession",
    "ScrapingSession",
    "VacancyRecord",
    "SkillCount",
    "Stat",
    "ProfessionDetail",
    "ProfessionOutcome",
    "RunReport",
    "OUTCOME_COMPLETED",
    "OUTCOME_NO_RESULTS",
    "OUTCOME_FAILED",
]

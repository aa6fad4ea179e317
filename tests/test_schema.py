"""Domain records."""

import uuid
from datetime import datetime, timezone

from skillpulse.contexts.scraping.schema import (
    OUTCOME_COMPLETED,
    ProfessionDetail,
    ProfessionOutcome,
    ScrapingSession,
    SkillCount,
    sort_skill_counts,
)

from conftest import make_profession


def test_sort_skill_counts_orders_by_count_then_name():
    ordered = sort_skill_counts({"b": 2, "a": 2, "c": 5, "d": 1})

    assert ordered == [SkillCount("c", 5), SkillCount("a", 2), SkillCount("b", 2), SkillCount("d", 1)]


def test_synthetic_sessions_are_unique_and_not_persisted():
    first, second = ScrapingSession.synthetic(), ScrapingSession.synthetic()

    assert first.id != second.id
    assert not first.persisted
    assert first.scraped_at.tzinfo is not None


def test_outcome_detail_snapshot():
    profession = make_profession("SRE")
    session = ScrapingSession(id=uuid.uuid4(), scraped_at=datetime(2026, 10, 15, 3, 0, tzinfo=timezone.utc))
    outcome = ProfessionOutcome(
        profession=profession,
        status=OUTCOME_COMPLETED,
        vacancy_count=4,
        formal_skills={"linux": 1, "kubernetes": 3},
        extracted_skills={"linux": 2},
    )

    detail = outcome.detail(session)

    assert detail.profession_name == "SRE"
    assert detail.scraped_at == "2026-10-15T03:00:00+00:00"
    assert [s.skill for s in detail.formal_skills] == ["kubernetes", "linux"]
    assert ProfessionDetail.from_dict(detail.to_dict()) == detail

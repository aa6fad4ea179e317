"""
Domain records shared by the scraping and storage contexts.

Professions and sessions come from storage; vacancy records exist only while a
profession is being processed; ProfessionDetail is the denormalized snapshot
written to the cache after each profession.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

OUTCOME_COMPLETED = "completed"
OUTCOME_NO_RESULTS = "no_results"
OUTCOME_FAILED = "failed"


@dataclass(frozen=True)
class Profession:
    """An admin-configured search query tracked over time."""

    id: uuid.UUID
    name: str
    vacancy_query: str
    is_active: bool = True


@dataclass(frozen=True)
class ScrapingSession:
    """Identity stamped on every row written by one pipeline run."""

    id: uuid.UUID
    scraped_at: datetime
    persisted: bool = True

    @classmethod
    def synthetic(cls) -> "ScrapingSession":
        """Session for a dry run: never written to storage."""
        return cls(id=uuid.uuid4(), scraped_at=datetime.now(timezone.utc), persisted=False)


@dataclass
class VacancyRecord:
    id: str
    description: str = ""
    skills: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchMeta:
    found: int
    pages: int


@dataclass(frozen=True)
class SkillCount:
    skill: str
    count: int


@dataclass(frozen=True)
class Stat:
    profession_id: uuid.UUID
    session_id: uuid.UUID
    vacancy_count: int


def sort_skill_counts(counts: Mapping[str, int]) -> List[SkillCount]:
    """Skill counts by descending count, ties broken by skill name."""
    return [
        SkillCount(skill=skill, count=count)
        for skill, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


@dataclass
class ProfessionDetail:
    """Latest skill profile of one profession, as served from the cache."""

    profession_id: uuid.UUID
    profession_name: str
    scraped_at: str
    vacancy_count: int
    formal_skills: List[SkillCount] = field(default_factory=list)
    extracted_skills: List[SkillCount] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "profession_id": str(self.profession_id),
            "profession_name": self.profession_name,
            "scraped_at": self.scraped_at,
            "vacancy_count": self.vacancy_count,
            "formal_skills": [{"skill": s.skill, "count": s.count} for s in self.formal_skills],
            "extracted_skills": [{"skill": s.skill, "count": s.count} for s in self.extracted_skills],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProfessionDetail":
        return cls(
            profession_id=uuid.UUID(data["profession_id"]),
            profession_name=data["profession_name"],
            scraped_at=data["scraped_at"],
            vacancy_count=int(data["vacancy_count"]),
            formal_skills=[SkillCount(**s) for s in data.get("formal_skills") or []],
            extracted_skills=[SkillCount(**s) for s in data.get("extracted_skills") or []],
        )


@dataclass
class ProfessionOutcome:
    """What processing one profession produced during a run."""

    profession: Profession
    status: str
    vacancy_count: int = 0
    formal_skills: Dict[str, int] = field(default_factory=dict)
    extracted_skills: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def detail(self, session: ScrapingSession) -> ProfessionDetail:
        return ProfessionDetail(
            profession_id=self.profession.id,
            profession_name=self.profession.name,
            scraped_at=session.scraped_at.isoformat(),
            vacancy_count=self.vacancy_count,
            formal_skills=sort_skill_counts(self.formal_skills),
            extracted_skills=sort_skill_counts(self.extracted_skills),
        )


@dataclass
class RunReport:
    session: ScrapingSession
    persisted: bool
    outcomes: List[ProfessionOutcome] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def outcome_for(self, profession_id: uuid.UUID) -> Optional[ProfessionOutcome]:
        for outcome in self.outcomes:
            if outcome.profession.id == profession_id:
                return outcome
        return None

"""
hh.ru vacancy API client.

Three request shapes, all routed through the RetryingFetcher:
- search metadata: how many vacancies match a query
- search page: the vacancy ids on one result page
- vacancy detail: description and key skills of one vacancy
"""

from typing import List

from bs4 import BeautifulSoup

from skillpulse.contexts.scraping.requests import RetryingFetcher
from skillpulse.contexts.scraping.schema import SearchMeta, VacancyRecord
from skillpulse.utils.context import RunContext

DEFAULT_AREA = "113"  # Russia


def html_to_text(html: str) -> str:
    """hh.ru descriptions are HTML fragments; keep only the text."""
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


def normalize_skill(name: str) -> str:
    return " ".join((name or "").split()).lower()


class HHClient:
    def __init__(
        self,
        fetcher: RetryingFetcher,
        base_url: str = "https://api.hh.ru",
        area: str = DEFAULT_AREA,
        page_size: int = 100,
    ):
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")
        self.area = str(area)
        self.page_size = page_size

    def _search_params(self, query: str, page: int) -> dict:
        return {
            "text": query,
            "search_field": "name",
            "per_page": self.page_size,
            "page": page,
            "area": self.area,
        }

    def count(self, ctx: RunContext, query: str) -> SearchMeta:
        data = self.fetcher.get_json(ctx, f"{self.base_url}/vacancies", params=self._search_params(query, 0))
        return SearchMeta(found=int(data.get("found") or 0), pages=int(data.get("pages") or 0))

    def page_ids(self, ctx: RunContext, query: str, page: int) -> List[str]:
        data = self.fetcher.get_json(ctx, f"{self.base_url}/vacancies", params=self._search_params(query, page))
        return [str(item["id"]) for item in data.get("items") or [] if item.get("id")]

    def vacancy(self, ctx: RunContext, vacancy_id: str) -> VacancyRecord:
        data = self.fetcher.get_json(ctx, f"{self.base_url}/vacancies/{vacancy_id}")
        skills = [normalize_skill(s.get("name")) for s in data.get("key_skills") or []]
        return VacancyRecord(
            id=str(vacancy_id),
            description=html_to_text(data.get("description") or ""),
            skills=[s for s in skills if s],
        )

"""Shared fakes: scripted HTTP session, manual clock, in-memory storage and redis."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

import pytest
import requests

from skillpulse.contexts.scraping.schema import (
    Profession,
    ScrapingSession,
    SkillCount,
    Stat,
    sort_skill_counts,
)
from skillpulse.contexts.storage.database import (
    ProfessionAlreadyExists,
    ProfessionNotFound,
    validate_profession_input,
)
from skillpulse.utils.context import RunContext


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder(RunContext):
    """RunContext whose sleeps advance a fake clock instead of blocking."""

    def __init__(self, clock: FakeClock = None):
        super().__init__()
        self.clock = clock
        self.sleeps = []

    def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        self.sleeps.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """
    Scripted stand-in for requests.Session.

    Each entry of `script` is a FakeResponse or an exception instance; the last
    entry repeats once the script runs out.
    """

    def __init__(self, script=None, post_script=None):
        self.headers = {}
        self.script = list(script or [])
        self.post_script = list(post_script or [])
        self.calls = []
        self.posts = []

    @staticmethod
    def _next(script):
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": dict(headers or {}), **kwargs})
        return self._next(self.script)

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers})
        return self._next(self.post_script)


class FakeTokens:
    """Token manager double: hands out tok-1, tok-2, ... after each invalidation."""

    def __init__(self):
        self.generation = 1
        self.invalidated = []

    def get_token(self, ctx) -> str:
        return f"tok-{self.generation}"

    def mark_invalid(self, token=None) -> None:
        self.invalidated.append(token)
        if token == f"tok-{self.generation}":
            self.generation += 1


class FakeLimiter:
    def __init__(self):
        self.admitted = 0

    def acquire(self, ctx) -> None:
        ctx.raise_if_cancelled()
        self.admitted += 1


class FakeDatabase:
    """In-memory storage collaborator with optional injected failures."""

    def __init__(self, professions=None, fail_on=()):
        self.professions = list(professions or [])
        self.fail_on = set(fail_on)
        self.sessions = []
        self.stats = {}
        self.formal = {}
        self.extracted = {}

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} unavailable")

    def ensure_schema(self):
        pass

    def get_active_professions(self):
        self._maybe_fail("get_active_professions")
        return [p for p in self.professions if p.is_active]

    def get_all_professions(self):
        return sorted(self.professions, key=lambda p: p.name)

    def get_profession(self, profession_id):
        return next((p for p in self.professions if p.id == profession_id), None)

    def _check_name_free(self, name, profession_id=None):
        if any(p.name == name and p.id != profession_id for p in self.professions):
            raise ProfessionAlreadyExists(f"profession '{name}' already exists")

    def _replace(self, profession):
        self.professions = [profession if p.id == profession.id else p for p in self.professions]
        return profession

    def add_profession(self, name, vacancy_query):
        name, vacancy_query = validate_profession_input(name, vacancy_query)
        self._check_name_free(name)
        profession = Profession(id=uuid.uuid4(), name=name, vacancy_query=vacancy_query)
        self.professions.append(profession)
        return profession

    def update_profession(self, profession_id, name=None, vacancy_query=None):
        current = self.get_profession(profession_id)
        if current is None:
            raise ProfessionNotFound(f"profession {profession_id} not found")
        name, vacancy_query = validate_profession_input(
            current.name if name is None else name,
            current.vacancy_query if vacancy_query is None else vacancy_query,
        )
        self._check_name_free(name, profession_id)
        return self._replace(replace(current, name=name, vacancy_query=vacancy_query))

    def set_profession_active(self, profession_id, active):
        current = self.get_profession(profession_id)
        if current is None:
            raise ProfessionNotFound(f"profession {profession_id} not found")
        return self._replace(replace(current, is_active=active))

    def create_scraping_session(self):
        self._maybe_fail("create_scraping_session")
        session = ScrapingSession(id=uuid.uuid4(), scraped_at=datetime.now(timezone.utc))
        self.sessions.append(session)
        return session

    def get_latest_session(self):
        return self.sessions[-1] if self.sessions else None

    def save_stat(self, session_id, profession_id, vacancy_count):
        self._maybe_fail("save_stat")
        self.stats[(profession_id, session_id)] = vacancy_count

    def save_formal_skills(self, session_id, profession_id, counts):
        self._maybe_fail("save_formal_skills")
        self.formal[(profession_id, session_id)] = dict(counts)

    def save_extracted_skills(self, session_id, profession_id, counts):
        self._maybe_fail("save_extracted_skills")
        self.extracted[(profession_id, session_id)] = dict(counts)

    def get_stat(self, profession_id, session_id):
        count = self.stats.get((profession_id, session_id))
        if count is None:
            return None
        return Stat(profession_id=profession_id, session_id=session_id, vacancy_count=count)

    def get_formal_skills(self, profession_id, session_id):
        return sort_skill_counts(self.formal.get((profession_id, session_id), {}))

    def get_extracted_skills(self, profession_id, session_id):
        return sort_skill_counts(self.extracted.get((profession_id, session_id), {}))


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.store = {}
        self.ttls = {}
        self.fail = fail

    def setex(self, key, ttl, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.store[key] = value
        self.ttls[key] = ttl

    def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.store.get(key)


class RecordingCacheWriter:
    def __init__(self):
        self.submitted = []

    def submit(self, detail):
        self.submitted.append(detail)


def make_profession(name: str, query: str = None) -> Profession:
    return Profession(id=uuid.uuid4(), name=name, vacancy_query=query or name)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder(clock):
    return SleepRecorder(clock)


@pytest.fixture
def transport_error():
    return requests.ConnectionError("connection reset")

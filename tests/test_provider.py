"""Cache-first read-back of a profession's latest skill profile."""

import uuid

import pytest

from skillpulse.contexts.storage.cache import ProfessionCache
from skillpulse.contexts.storage.provider import ProfessionDetailProvider, ProfessionNotFound

from conftest import FakeDatabase, FakeRedis, RecordingCacheWriter, make_profession


@pytest.fixture
def seeded_db():
    profession = make_profession("QA engineer", "qa")
    db = FakeDatabase([profession])
    old = db.create_scraping_session()
    db.save_stat(old.id, profession.id, 5)
    latest = db.create_scraping_session()
    db.save_stat(latest.id, profession.id, 8)
    db.save_formal_skills(latest.id, profession.id, {"selenium": 3, "sql": 5, "api": 3})
    db.save_extracted_skills(latest.id, profession.id, {"sql": 7})
    return db, profession, latest


def test_assembles_detail_from_latest_session_and_refills_cache(seeded_db):
    db, profession, latest = seeded_db
    cache_writer = RecordingCacheWriter()
    provider = ProfessionDetailProvider(db, cache=ProfessionCache(FakeRedis()), cache_writer=cache_writer)

    detail = provider.profession_detail(profession.id)

    assert detail.vacancy_count == 8
    assert detail.scraped_at == latest.scraped_at.isoformat()
    assert [(s.skill, s.count) for s in detail.formal_skills] == [("sql", 5), ("api", 3), ("selenium", 3)]
    assert [(s.skill, s.count) for s in detail.extracted_skills] == [("sql", 7)]
    assert cache_writer.submitted == [detail]


def test_cache_hit_skips_storage(seeded_db):
    db, profession, _ = seeded_db
    cache = ProfessionCache(FakeRedis())
    cached = ProfessionDetailProvider(db).profession_detail(profession.id)
    cache.save(cached)
    db.stats.clear()

    assert ProfessionDetailProvider(db, cache=cache).profession_detail(profession.id) == cached


def test_unavailable_cache_falls_back_to_storage(seeded_db):
    db, profession, _ = seeded_db
    provider = ProfessionDetailProvider(db, cache=ProfessionCache(FakeRedis(fail=True)))

    assert provider.profession_detail(profession.id).vacancy_count == 8


def test_unknown_profession_raises(seeded_db):
    db, _, _ = seeded_db

    with pytest.raises(ProfessionNotFound):
        ProfessionDetailProvider(db).profession_detail(uuid.uuid4())


def test_profession_without_statistics_raises():
    profession = make_profession("Designer")
    db = FakeDatabase([profession])

    with pytest.raises(ProfessionNotFound):
        ProfessionDetailProvider(db).profession_detail(profession.id)

    db.create_scraping_session()
    with pytest.raises(ProfessionNotFound):
        ProfessionDetailProvider(db).profession_detail(profession.id)


def test_profession_not_found_is_a_lookup_error():
    assert issubclass(ProfessionNotFound, LookupError)

"""Unit tests for n-gram skill extraction."""

import pytest

from skillpulse.contexts.extraction import InvalidInput, SkillExtractor, extract_skills
from skillpulse.contexts.extraction.skills import normalize_text


def test_extract_skills_is_case_insensitive():
    assert extract_skills("GO", {"go": 1}, 1) == {"go": 1}


def test_extract_skills_strips_punctuation():
    result = extract_skills("We need: Go, Python!", {"go": 1, "python": 1}, 1)

    assert result == {"go": 1, "python": 1}


def test_extract_skills_keeps_compound_tokens():
    whitelist = {"c++": 1, "c": 1, "c#": 1}

    assert extract_skills("Strong C++ background", whitelist, 1) == {"c++": 1}
    assert extract_skills("C# and .NET", whitelist, 1) == {"c#": 1}


def test_extract_skills_counts_overlapping_ngrams():
    whitelist = {"machine learning": 1, "learning": 1, "machine": 1}

    result = extract_skills("Machine learning, deep learning", whitelist, 2)

    assert result == {"machine learning": 1, "machine": 1, "learning": 2}


def test_extract_skills_drops_sentence_final_period():
    result = extract_skills("Experience with Docker. Kubernetes.", {"docker": 1, "kubernetes": 1}, 1)

    assert result == {"docker": 1, "kubernetes": 1}


def test_extract_skills_only_returns_whitelisted_keys():
    whitelist = {"sql": 3, "python": 5, "airflow": 1}
    text = "Python and SQL, more SQL; Spark is a plus. Python python"

    result = extract_skills(text, whitelist, 3)

    assert set(result) <= set(whitelist)
    assert result == {"python": 3, "sql": 2}


def test_extract_skills_window_longer_than_text():
    assert extract_skills("rest api", {"rest api": 1}, 3) == {"rest api": 1}


@pytest.mark.parametrize(
    "text, whitelist, max_ngram",
    [
        ("", {"go": 1}, 1),
        ("go", {}, 1),
        ("go", {"go": 1}, 0),
        ("go", {"go": 1}, -2),
    ],
)
def test_extract_skills_rejects_invalid_input(text, whitelist, max_ngram):
    with pytest.raises(InvalidInput):
        extract_skills(text, whitelist, max_ngram)


def test_invalid_input_is_a_value_error():
    assert issubclass(InvalidInput, ValueError)


def test_normalize_text_collapses_whitespace_and_symbols():
    assert normalize_text("  Node.js / CI/CD\n(REST)  ") == "node.js / ci/cd rest"


def test_normalize_text_keeps_cyrillic_and_splits_on_non_ascii_digits():
    assert normalize_text("Опыт с Python³ и SQL①") == "опыт с python и sql"


def test_extract_skills_treats_superscript_digits_as_separators():
    assert extract_skills("python2²", {"python2": 1}, 1) == {"python2": 1}


def test_extract_many_sums_and_skips_empty_descriptions():
    extractor = SkillExtractor()
    whitelist = {"python": 2, "sql": 1}

    result = extractor.extract_many(["Python, SQL", "", "python"], whitelist)

    assert result == {"python": 2, "sql": 1}


def test_extract_many_with_empty_whitelist_returns_nothing():
    assert SkillExtractor().extract_many(["python"], {}) == {}

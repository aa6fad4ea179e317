"""
N-gram skill extraction from free text.

A vacancy description is matched against a whitelist of known skills (the
formal skill tags collected for the same profession). Every window of 1 to
max_ngram consecutive tokens is compared with the whitelist, so "machine
learning" and "learning" are both counted when both are whitelisted.
"""

import re
from collections import Counter
from typing import Dict, Iterable

# Anything other than letters, digits, whitespace and . + # - / becomes a
# space, keeping tokens such as "c++", "c#", "asp.net", "node.js", "ci/cd".
UNWANTED_CHARS_RE = re.compile(r"[^\w\s.+#\-/]|_")
# Non-ASCII word characters: kept only when they are letters, so "²" or "①"
# split a token the way punctuation does.
NON_ASCII_WORD_RE = re.compile(r"[^\W\x00-\x7f]")
WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_MAX_NGRAM = 3


class InvalidInput(ValueError):
    """Raised for arguments the extractor cannot work with."""


def _letter_or_space(match: re.Match) -> str:
    char = match.group()
    return char if char.isalpha() else " "


def normalize_text(text: str) -> str:
    text = UNWANTED_CHARS_RE.sub(" ", text.lower())
    text = NON_ASCII_WORD_RE.sub(_letter_or_space, text)
    return WHITESPACE_RE.sub(" ", text).strip()


def extract_skills(text: str, whitelist, max_ngram: int) -> Dict[str, int]:
    """
    Count whitelisted skills mentioned in text.

    Args:
        text: Free text to analyse (e.g. a vacancy description)
        whitelist: Known skills, lower-case; any container supporting `in` and len()
                   (a dict or Counter of formal skills works as is)
        max_ngram: Longest phrase, in tokens, to look up

    Returns:
        Mapping skill -> number of matching windows. Only observed skills are present.

    Raises:
        InvalidInput: If text or whitelist is empty, or max_ngram is not positive

    Example:
        >>> extract_skills("We need: Go, Python!", {"go": 1, "python": 1}, 1)
        {'go': 1, 'python': 1}
    """
    if not text:
        raise InvalidInput("text cannot be empty")
    if not whitelist:
        raise InvalidInput("whitelist cannot be empty")
    if max_ngram <= 0:
        raise InvalidInput("max_ngram must be positive")

    words = normalize_text(text).split()

    found: Counter = Counter()
    n = len(words)
    for i in range(n):
        for j in range(1, min(max_ngram, n - i) + 1):
            ngram = " ".join(words[i:i + j])
            if ngram.endswith("."):
                ngram = ngram[:-1]
            if ngram in whitelist:
                found[ngram] += 1

    return dict(found)


class SkillExtractor:
    """extract_skills() bound to a fixed n-gram window."""

    def __init__(self, max_ngram: int = DEFAULT_MAX_NGRAM):
        if max_ngram <= 0:
            raise InvalidInput("max_ngram must be positive")
        self.max_ngram = max_ngram

    def extract(self, text: str, whitelist) -> Dict[str, int]:
        return extract_skills(text, whitelist, self.max_ngram)

    def extract_many(self, texts: Iterable[str], whitelist) -> Dict[str, int]:
        """Sum skill counts over many texts, skipping empty ones."""
        total: Counter = Counter()
        if not whitelist:
            return {}
        for text in texts:
            if not text:
                continue
            total.update(self.extract(text, whitelist))
        return dict(total)

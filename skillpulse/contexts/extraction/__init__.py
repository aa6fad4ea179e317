"""
Skill extraction domain.

Turns free-text vacancy descriptions into skill counts.
"""

from skillpulse.contexts.extraction.skills import (
    DEFAULT_MAX_NGRAM,
    InvalidInput,
    SkillExtractor,
    extract_skills,
)

__all__ = [
    "DEFAULT_MAX_NGRAM",
    "InvalidInput",
    "SkillExtractor",
    "extract_skills",
]

"""
Lexical helpers shared by the aggregation stages.

Term lists are matched as whole words/phrases, case-insensitively, so a short
term such as "art" never fires inside "artery" or "heart". Compiled patterns
are cached per term tuple; configuration tuples are immutable, so the cache
never goes stale.
"""

from __future__ import annotations

import re
from functools import lru_cache

from rapidfuzz.distance import Levenshtein

_TOKEN_PATTERN = re.compile(r"\b\w{3,}\b")
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_DOI_PREFIXES = ("https://doi.org/", "http://doi.org/", "https://dx.doi.org/", "http://dx.doi.org/", "doi:")


@lru_cache(maxsize=256)
def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(term.lower())}(?!\w)")


def contains_term(text: str, term: str) -> bool:
    """Whole-word/phrase containment on already lower-cased text."""
    return _term_pattern(term).search(text) is not None


def matched_terms(text: str, terms: tuple[str, ...]) -> list[str]:
    """Return the terms (in list order) that occur in lower-cased ``text``."""
    return [term for term in terms if contains_term(text, term)]


def any_term(text: str, terms: tuple[str, ...]) -> bool:
    return any(contains_term(text, term) for term in terms)


@lru_cache(maxsize=256)
def _prefix_pattern(trigger: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(trigger.lower())}")


def mentions(text: str, trigger: str) -> bool:
    """Word-prefix containment, so "neuro" matches "neurological" and "statin" matches "statins"."""
    return _prefix_pattern(trigger).search(text) is not None


def tokenize(text: str, stop_words: frozenset[str] = frozenset()) -> list[str]:
    """Lower-cased word tokens of at least three characters, stop words removed."""
    return [t for t in _TOKEN_PATTERN.findall(text.lower()) if t not in stop_words]


def normalize_title(title: str) -> str:
    """Case-fold, strip punctuation and collapse whitespace."""
    title = _NON_WORD.sub(" ", title.casefold())
    return _WHITESPACE.sub(" ", title).strip()


def title_similarity(a: str, b: str) -> float:
    """
    Normalized Levenshtein similarity of two titles after normalization.

    1 - distance / len(longer). Empty titles never match anything.
    """
    na, nb = normalize_title(a), normalize_title(b)
    if not na or not nb:
        return 0.0
    return Levenshtein.normalized_similarity(na, nb)


def normalize_doi(doi: str | None) -> str | None:
    """Strip resolver prefixes and case-fold; DOIs are case-insensitive."""
    if not doi:
        return None
    doi = doi.strip()
    lowered = doi.lower()
    for prefix in _DOI_PREFIXES:
        if lowered.startswith(prefix):
            doi = doi[len(prefix) :]
            break
    doi = doi.strip().lower()
    return doi or None


def normalize_pmid(pmid: str | None) -> str | None:
    if not pmid:
        return None
    pmid = str(pmid).strip().rstrip("/")
    if "/" in pmid:
        pmid = pmid.rsplit("/", 1)[-1]
    return pmid or None

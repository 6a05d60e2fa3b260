"""
QueryExpander - Derive variants, domain tags and per-provider queries.

Turns the raw user query into an ExpandedQuery that the orchestrator,
classifier and scorer all share:

1. Normalization and keyword extraction (stop words removed)
2. Domain tags (oncology, cardiology, ..., general-medicine fallback)
3. Topic profiles (hypertension, covid, ...) that drive classifier bonuses
4. Semantic variants (synonym substitution + study-design suffixes)

Each provider receives a query shaped for its search syntax (QueryStyle),
and the gap-fill round uses a broadened core-keyword query.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from literature_aggregator.shared.exceptions import InvalidQueryError

from .config import AggregationConfig, TopicProfile
from .text_matching import contains_term, mentions, tokenize

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class QueryStyle(Enum):
    """
    How a provider wants its query shaped.

    BOOLEAN_SYNONYMS: Base query AND a topic synonym OR-group
        - Example: 'covid fatigue AND (covid OR "long covid" OR ...)'
    MESH_TERMS: Base query OR controlled-vocabulary terms OR first variant
        - Example: 'tumor hypoxia OR (Neoplasms[MeSH]) OR (tumor hypoxia systematic review)'
        - Multi-word headings are quoted: '"Cardiovascular Diseases"[MeSH]'
    NATURAL_LANGUAGE: The normalized query, untouched
    KEYWORDS: Significant keywords only (field-search APIs)
    """

    BOOLEAN_SYNONYMS = "boolean_synonyms"
    MESH_TERMS = "mesh_terms"
    NATURAL_LANGUAGE = "natural_language"
    KEYWORDS = "keywords"


@dataclass(frozen=True, slots=True)
class ExpandedQuery:
    """Result of query expansion, shared read-only by all pipeline stages."""

    original: str
    normalized: str
    keywords: tuple[str, ...]
    variants: tuple[str, ...]
    domain_tags: tuple[str, ...]
    topics: tuple[TopicProfile, ...] = ()

    @property
    def lowered(self) -> str:
        return self.normalized.lower()

    @property
    def topic_names(self) -> tuple[str, ...]:
        return tuple(t.name for t in self.topics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "normalized": self.normalized,
            "keywords": list(self.keywords),
            "variants": list(self.variants),
            "domain_tags": list(self.domain_tags),
            "topics": list(self.topic_names),
        }


def _or_group(terms: tuple[str, ...]) -> str:
    quoted = [f'"{t}"' if " " in t else t for t in terms]
    return f"({' OR '.join(quoted)})"


class QueryExpander:
    """
    Expands a raw query using the static configuration.

    Example:
        >>> expander = QueryExpander(AggregationConfig.default())
        >>> expanded = expander.expand("Does breastfeeding reduce childhood asthma?")
        >>> expanded.domain_tags
        ('general-medicine',)
        >>> expanded.topic_names
        ('breastfeeding',)
    """

    def __init__(self, config: AggregationConfig) -> None:
        self._config = config

    def expand(self, query: str) -> ExpandedQuery:
        if not isinstance(query, str):
            raise InvalidQueryError(query, f"expected text, got {type(query).__name__}")
        normalized = _WHITESPACE.sub(" ", query).strip()
        if not normalized:
            raise InvalidQueryError(query)

        lowered = normalized.lower()
        keywords = tuple(dict.fromkeys(tokenize(normalized, self._config.stop_words)))
        expanded = ExpandedQuery(
            original=query,
            normalized=normalized,
            keywords=keywords,
            variants=self._generate_variants(normalized),
            domain_tags=self._identify_domains(lowered),
            topics=self._detect_topics(lowered),
        )
        logger.debug(
            f"Expanded query {normalized!r}: tags={expanded.domain_tags}, "
            f"topics={expanded.topic_names}, {len(expanded.variants)} variants"
        )
        return expanded

    def _identify_domains(self, lowered: str) -> tuple[str, ...]:
        tags = [
            tag
            for tag, triggers in self._config.domain_tag_triggers
            if any(mentions(lowered, trigger) for trigger in triggers)
        ]
        return tuple(tags) if tags else (self._config.default_domain_tag,)

    def _detect_topics(self, lowered: str) -> tuple[TopicProfile, ...]:
        return tuple(
            topic for topic in self._config.topics if any(mentions(lowered, trigger) for trigger in topic.triggers)
        )

    def _generate_variants(self, query: str) -> tuple[str, ...]:
        lowered = query.lower()
        variants = [query]

        for pattern, replacement in self._config.variant_substitutions:
            if re.search(pattern, query, flags=re.IGNORECASE):
                variants.append(re.sub(pattern, replacement, query, flags=re.IGNORECASE))

        for trigger, addition in self._config.variant_additions:
            if contains_term(lowered, trigger):
                variants.append(f"{query} {addition}")

        for suffix in self._config.variant_suffixes:
            variants.append(f"{query} {suffix}")

        return tuple(dict.fromkeys(variants))

    # =========================================================================
    # Provider query shaping
    # =========================================================================

    def core_query(self, expanded: ExpandedQuery) -> str:
        """At most ``core_keyword_limit`` significant keywords; the normalized query if none."""
        core = expanded.keywords[: self._config.core_keyword_limit]
        return " ".join(core) if core else expanded.normalized

    def build_provider_query(self, expanded: ExpandedQuery, style: QueryStyle) -> str:
        """Shape the base query for one provider's search syntax."""
        if style is QueryStyle.BOOLEAN_SYNONYMS:
            synonyms = expanded.topics[0].synonyms if expanded.topics else self._config.general_synonyms
            return f"{expanded.normalized} AND {_or_group(synonyms)}"

        if style is QueryStyle.MESH_TERMS:
            mesh_lookup = dict(self._config.domain_tag_mesh_terms)
            mesh_terms = tuple(
                term for tag in expanded.domain_tags for term in mesh_lookup.get(tag, ())
            )[: self._config.mesh_term_limit]
            parts = [expanded.normalized]
            if mesh_terms:
                # MeSH entries carry their own field tags and quoting
                parts.append(f"({' OR '.join(mesh_terms)})")
            if len(expanded.variants) > 1:
                parts.append(f"({expanded.variants[1]})")
            return " OR ".join(parts)

        if style is QueryStyle.KEYWORDS:
            return " ".join(expanded.keywords) if expanded.keywords else expanded.normalized

        return expanded.normalized

    def build_broadened_query(self, expanded: ExpandedQuery, style: QueryStyle) -> str:
        """Broader query for the gap-fill round."""
        core = self.core_query(expanded)
        if style in (QueryStyle.BOOLEAN_SYNONYMS, QueryStyle.MESH_TERMS):
            groups = " AND ".join(_or_group(group) for group in self._config.broadening_groups)
            return f"{core} AND {groups}"
        return core

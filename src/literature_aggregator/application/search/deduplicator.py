"""
Deduplicator - Merge records that describe the same work.

Matching priority:
1. DOI (normalized, case-folded) - exact
2. PMID - exact
3. Normalized title similarity >= threshold (default 0.95)

Clustering runs in two passes:

    Pass 1  Union-Find over identifier keys
            records sharing a DOI or a PMID end up in one cluster,
            transitively only through shared keys
    Pass 2  Title matching between clusters
            clusters are visited in source-preference order and compared
            against the representatives of clusters accepted so far; a
            title match never chains through a third record

The representative of each cluster is chosen by the source-preference list
(unknown sources last), then by higher composite score, then by a stable
lexical key, so the result does not depend on the order records arrived in.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from literature_aggregator.domain.entities import CanonicalRecord, ScoredRecord

from .text_matching import normalize_doi, normalize_pmid, normalize_title, title_similarity

if TYPE_CHECKING:
    from .config import AggregationConfig

logger = logging.getLogger(__name__)


@dataclass
class DedupStats:
    """Statistics from one deduplication run."""

    input_count: int = 0
    unique_count: int = 0
    merged_by_doi: int = 0
    merged_by_pmid: int = 0
    merged_by_title: int = 0

    @property
    def duplicates_removed(self) -> int:
        return self.input_count - self.unique_count

    def to_dict(self) -> dict[str, int]:
        return {
            "input_count": self.input_count,
            "unique_count": self.unique_count,
            "duplicates_removed": self.duplicates_removed,
            "merged_by_doi": self.merged_by_doi,
            "merged_by_pmid": self.merged_by_pmid,
            "merged_by_title": self.merged_by_title,
        }


@dataclass(frozen=True, slots=True)
class DedupResult:
    canonical: tuple[CanonicalRecord, ...]
    stats: DedupStats


# =============================================================================
# Union-Find over identifier keys
# =============================================================================


class UnionFind:
    """Disjoint set union with path compression and union by rank."""

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        """Find root with path compression."""
        if self.parent[x] != x:
            self.parent[x] = self.find(self.parent[x])
        return self.parent[x]

    def union(self, x: int, y: int) -> bool:
        """Union by rank. Returns True if x and y were in different sets."""
        px, py = self.find(x), self.find(y)
        if px == py:
            return False
        if self.rank[px] < self.rank[py]:
            px, py = py, px
        self.parent[py] = px
        if self.rank[px] == self.rank[py]:
            self.rank[px] += 1
        return True


@dataclass
class _Cluster:
    members: list[ScoredRecord]
    representative: ScoredRecord
    dois: set[str] = field(default_factory=set)
    pmids: set[str] = field(default_factory=set)

    def to_canonical(self) -> CanonicalRecord:
        return CanonicalRecord(
            representative=self.representative,
            dois=frozenset(self.dois),
            pmids=frozenset(self.pmids),
            sources=tuple(dict.fromkeys(m.source for m in self.members)),
            member_count=len(self.members),
        )


class Deduplicator:
    """
    Collapse ScoredRecords into CanonicalRecords.

    Example:
        >>> dedup = Deduplicator(AggregationConfig.default())
        >>> result = dedup.dedupe(scored_records)
        >>> result.stats.merged_by_doi
        2
    """

    def __init__(self, config: AggregationConfig) -> None:
        self._config = config

    def preference_key(self, record: ScoredRecord) -> tuple[Any, ...]:
        """Lower sorts first: preferred source, higher score, then a stable lexical key."""
        return (
            self._config.source_rank(record.source),
            -record.composite_score,
            normalize_title(record.title),
            normalize_doi(record.doi) or "",
            normalize_pmid(record.pmid) or "",
        )

    def dedupe(self, records: Sequence[ScoredRecord]) -> DedupResult:
        stats = DedupStats(input_count=len(records))
        if not records:
            return DedupResult(canonical=(), stats=stats)

        dois = [normalize_doi(r.doi) for r in records]
        pmids = [normalize_pmid(r.pmid) for r in records]

        # Pass 1: identifier keys
        uf = UnionFind(len(records))
        for keys, counter in ((dois, "merged_by_doi"), (pmids, "merged_by_pmid")):
            first_seen: dict[str, int] = {}
            for i, key in enumerate(keys):
                if key is None:
                    continue
                if key in first_seen:
                    if uf.union(first_seen[key], i):
                        setattr(stats, counter, getattr(stats, counter) + 1)
                else:
                    first_seen[key] = i

        groups: dict[int, list[int]] = {}
        for i in range(len(records)):
            groups.setdefault(uf.find(i), []).append(i)

        key_clusters = [self._build_cluster(indices, records, dois, pmids) for indices in groups.values()]
        key_clusters.sort(key=lambda c: self.preference_key(c.representative))

        # Pass 2: titles, against accepted representatives only
        clusters: list[_Cluster] = []
        for candidate in key_clusters:
            match = self._find_title_match(candidate.representative, clusters)
            if match is None:
                clusters.append(candidate)
                continue
            match.members.extend(candidate.members)
            match.dois |= candidate.dois
            match.pmids |= candidate.pmids
            stats.merged_by_title += 1

        stats.unique_count = len(clusters)
        logger.debug(
            f"Deduplicated {stats.input_count} records into {stats.unique_count} "
            f"(doi={stats.merged_by_doi}, pmid={stats.merged_by_pmid}, title={stats.merged_by_title})"
        )
        return DedupResult(canonical=tuple(c.to_canonical() for c in clusters), stats=stats)

    def _build_cluster(
        self,
        indices: list[int],
        records: Sequence[ScoredRecord],
        dois: list[str | None],
        pmids: list[str | None],
    ) -> _Cluster:
        members = [records[i] for i in indices]
        return _Cluster(
            members=members,
            representative=min(members, key=self.preference_key),
            dois={dois[i] for i in indices if dois[i]},
            pmids={pmids[i] for i in indices if pmids[i]},
        )

    def _find_title_match(self, record: ScoredRecord, clusters: list[_Cluster]) -> _Cluster | None:
        best: _Cluster | None = None
        best_similarity = 0.0
        for cluster in clusters:
            similarity = title_similarity(record.title, cluster.representative.title)
            if similarity >= self._config.title_similarity_threshold and similarity > best_similarity:
                best, best_similarity = cluster, similarity
        return best

    def conflicts(self, a: CanonicalRecord, b: CanonicalRecord) -> bool:
        """True if two canonical records share an identifier or a near-identical title."""
        if a.dois & b.dois or a.pmids & b.pmids:
            return True
        return title_similarity(a.title, b.title) >= self._config.title_similarity_threshold

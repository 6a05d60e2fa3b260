"""
ResultFinalizer - Fixed-size output through progressive relaxation.

State machine (terminates as soon as the target count is reached):

    STRICT ──▶ DROP_HARD_EXCLUSIONS ──▶ BROADEN_POOL ──▶ LAST_RESORT ──▶ done
      L0               L1                    L2               L3

    L0  admitted by the classifier, no hard-exclusion pattern, not blacklisted
    L1  admitted, matched only a hard-exclusion pattern; needs title + author
    L2  not admitted, but mentions a generic domain term
    L3  anything else with a title that is not blacklisted

Each level only fills the shortfall, in composite-score order, and never
removes a record chosen by an earlier level. A candidate that shares an
identifier or a near-identical title with an already selected record is
skipped. Running out of levels with a short list is a terminal state, not an
error.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from .deduplicator import Deduplicator
from .text_matching import any_term, normalize_title

if TYPE_CHECKING:
    from literature_aggregator.domain.entities import CanonicalRecord

    from .config import AggregationConfig

logger = logging.getLogger(__name__)


class RelaxationLevel(IntEnum):
    """Admission levels, from strict to last resort."""

    STRICT = 0
    DROP_HARD_EXCLUSIONS = 1
    BROADEN_POOL = 2
    LAST_RESORT = 3


def next_level(level: RelaxationLevel) -> RelaxationLevel | None:
    """Transition function; None once LAST_RESORT is exhausted."""
    if level is RelaxationLevel.LAST_RESORT:
        return None
    return RelaxationLevel(level + 1)


@dataclass(frozen=True, slots=True)
class FinalizeResult:
    """Selected records (descending composite score) and how they were reached."""

    selected: tuple[CanonicalRecord, ...]
    level_used: RelaxationLevel
    target_count: int
    added_per_level: tuple[tuple[RelaxationLevel, int], ...] = ()

    @property
    def insufficient(self) -> bool:
        return len(self.selected) < self.target_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected": len(self.selected),
            "level_used": int(self.level_used),
            "target_count": self.target_count,
            "added_per_level": {level.name.lower(): added for level, added in self.added_per_level},
        }


class ResultFinalizer:
    """Applies the relaxation state machine to deduplicated records."""

    def __init__(self, config: AggregationConfig, deduplicator: Deduplicator | None = None) -> None:
        self._config = config
        self._deduplicator = deduplicator or Deduplicator(config)
        self._predicates: dict[RelaxationLevel, Callable[[CanonicalRecord], bool]] = {
            RelaxationLevel.STRICT: self._strict,
            RelaxationLevel.DROP_HARD_EXCLUSIONS: self._hard_excluded_only,
            RelaxationLevel.BROADEN_POOL: self._broadened,
            RelaxationLevel.LAST_RESORT: self._last_resort,
        }

    # =========================================================================
    # Level predicates
    # =========================================================================

    def is_hard_excluded(self, record: CanonicalRecord) -> bool:
        return any_term(record.text.lower(), self._config.hard_exclusion_patterns)

    def is_blacklisted(self, record: CanonicalRecord) -> bool:
        return any_term(record.text.lower(), self._config.always_exclude)

    def _strict(self, record: CanonicalRecord) -> bool:
        return record.admitted and not self.is_hard_excluded(record) and not self.is_blacklisted(record)

    def _hard_excluded_only(self, record: CanonicalRecord) -> bool:
        return (
            record.admitted
            and self.is_hard_excluded(record)
            and not self.is_blacklisted(record)
            and bool(record.title.strip())
            and len(record.authors) > 0
        )

    def _broadened(self, record: CanonicalRecord) -> bool:
        return (
            not record.admitted
            and bool(record.title.strip())
            and any_term(record.text.lower(), self._config.generic_domain_terms)
            and not self.is_blacklisted(record)
        )

    def _last_resort(self, record: CanonicalRecord) -> bool:
        return bool(record.title.strip()) and not self.is_blacklisted(record)

    def candidates(self, records: Sequence[CanonicalRecord], level: RelaxationLevel) -> list[CanonicalRecord]:
        """Records admissible at ``level`` in ranking order."""
        predicate = self._predicates[level]
        return [r for r in sorted(records, key=self._rank_key) if predicate(r)]

    # =========================================================================
    # State machine
    # =========================================================================

    def finalize(self, records: Sequence[CanonicalRecord], target_count: int) -> FinalizeResult:
        selected: list[CanonicalRecord] = []
        added_per_level: list[tuple[RelaxationLevel, int]] = []
        level: RelaxationLevel | None = RelaxationLevel.STRICT
        level_used = RelaxationLevel.STRICT

        while level is not None:
            level_used = level
            added = self._fill(self.candidates(records, level), selected, target_count)
            added_per_level.append((level, added))
            logger.debug(f"Relaxation {level.name}: +{added} (now {len(selected)}/{target_count})")
            if len(selected) >= target_count:
                break
            level = next_level(level)

        selected.sort(key=self._rank_key)
        return FinalizeResult(
            selected=tuple(selected),
            level_used=level_used,
            target_count=target_count,
            added_per_level=tuple(added_per_level),
        )

    def _fill(
        self,
        candidates: list[CanonicalRecord],
        selected: list[CanonicalRecord],
        target_count: int,
    ) -> int:
        added = 0
        for candidate in candidates:
            if len(selected) >= target_count:
                break
            if any(candidate is s for s in selected):
                continue
            if any(self._deduplicator.conflicts(candidate, s) for s in selected):
                continue
            selected.append(candidate)
            added += 1
        return added

    @staticmethod
    def _rank_key(record: CanonicalRecord) -> tuple[Any, ...]:
        return (-record.composite_score, normalize_title(record.title), record.source)

"""
SourceOrchestrator - Concurrent fan-out to provider adapters.

Round 1 invokes every enabled provider at once and waits for all of them to
settle. Each call runs inside its own failure boundary with a time budget:
an error, timeout or malformed payload contributes zero records and is
recorded as a ProviderOutcome, never raised.

Gated providers only run when the query (or its domain tags) matches their
precondition, e.g. the regulatory database only for drug, device or safety
questions.

Round 2 (gap-fill) runs at most once: when the primary provider returned too
few records or the total is below the minimum, the secondary providers are
queried again with a broadened query.

Architecture Decision:
    The orchestrator knows nothing about HTTP. Providers are any object
    implementing ProviderAdapter; the concrete clients live in
    infrastructure/sources.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from literature_aggregator.domain.entities import ProviderOutcome, RawRecord
from literature_aggregator.shared.async_utils import run_with_timeout
from literature_aggregator.shared.exceptions import ParseError

from .query_expander import ExpandedQuery, QueryExpander, QueryStyle
from .text_matching import any_term

if TYPE_CHECKING:
    from .config import AggregationConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Provider contract
# =============================================================================


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Options passed to every adapter call."""

    max_results: int
    domain_hints: tuple[str, ...] = ()


class ProviderAdapter(Protocol):
    """A literature source: send a query, get normalized records back or raise."""

    name: str

    async def search(self, query: str, options: SearchOptions) -> list[RawRecord]: ...


class ProviderRole(Enum):
    """
    Role of a provider in orchestration.

    PRIMARY: Its record count decides whether gap-fill is needed
    SECONDARY: Re-queried with a broadened query during gap-fill
    STANDARD: Queried once, never re-queried
    """

    PRIMARY = "primary"
    SECONDARY = "secondary"
    STANDARD = "standard"


@dataclass(frozen=True, slots=True)
class ProviderSpec:
    """Registration of one adapter with its query style, role and gate."""

    adapter: ProviderAdapter
    style: QueryStyle = QueryStyle.NATURAL_LANGUAGE
    role: ProviderRole = ProviderRole.STANDARD
    gate_terms: tuple[str, ...] = ()
    gate_domains: frozenset[str] = frozenset()
    max_results: int | None = None

    @property
    def name(self) -> str:
        return self.adapter.name

    @property
    def gated(self) -> bool:
        return bool(self.gate_terms or self.gate_domains)

    def is_enabled_for(self, expanded: ExpandedQuery) -> bool:
        """Gate check; ungated providers always run."""
        if not self.gated:
            return True
        if any_term(expanded.lowered, self.gate_terms):
            return True
        return bool(self.gate_domains.intersection(expanded.domain_tags))


@dataclass(frozen=True, slots=True)
class GatherResult:
    """Everything the orchestrator collected for one request."""

    records: tuple[RawRecord, ...]
    outcomes: tuple[ProviderOutcome, ...]
    skipped: tuple[str, ...] = ()
    gap_fill_triggered: bool = False
    queries: dict[str, str] = field(default_factory=dict)

    @property
    def providers_queried(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(o.name for o in self.outcomes))

    @property
    def providers_failed(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(o.name for o in self.outcomes if not o.succeeded))

    def count_for(self, name: str) -> int:
        return sum(o.record_count for o in self.outcomes if o.name == name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_count": len(self.records),
            "providers_queried": list(self.providers_queried),
            "providers_failed": list(self.providers_failed),
            "skipped": list(self.skipped),
            "gap_fill_triggered": self.gap_fill_triggered,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


# =============================================================================
# Orchestrator
# =============================================================================


class SourceOrchestrator:
    """
    Runs provider adapters concurrently with failure isolation and gap-fill.

    Example:
        >>> orchestrator = SourceOrchestrator(specs, config, QueryExpander(config))
        >>> gathered = await orchestrator.gather(expanded)
        >>> gathered.providers_failed
        ('openalex',)
    """

    def __init__(
        self,
        providers: Sequence[ProviderSpec],
        config: AggregationConfig,
        expander: QueryExpander,
    ) -> None:
        self._providers = tuple(providers)
        self._config = config
        self._expander = expander

    @property
    def providers(self) -> tuple[ProviderSpec, ...]:
        return self._providers

    async def gather(self, expanded: ExpandedQuery) -> GatherResult:
        active: list[ProviderSpec] = []
        skipped: list[str] = []
        for spec in self._providers:
            if spec.name in self._config.disabled_providers or not spec.is_enabled_for(expanded):
                skipped.append(spec.name)
            else:
                active.append(spec)
        if skipped:
            logger.debug(f"Skipped providers: {', '.join(skipped)}")

        queries: dict[str, str] = {}
        outcomes, records = await self._run_round(active, expanded, gap_fill=False, queries=queries)

        gap_fill_triggered = False
        if self._needs_gap_fill(active, outcomes, len(records)):
            secondary = [s for s in active if s.role is ProviderRole.SECONDARY]
            if secondary:
                gap_fill_triggered = True
                logger.info(
                    f"Gap-fill: {len(records)} records after first round, "
                    f"re-querying {', '.join(s.name for s in secondary)}"
                )
                more_outcomes, more_records = await self._run_round(
                    secondary, expanded, gap_fill=True, queries=queries
                )
                outcomes.extend(more_outcomes)
                records.extend(more_records)

        return GatherResult(
            records=tuple(records),
            outcomes=tuple(outcomes),
            skipped=tuple(skipped),
            gap_fill_triggered=gap_fill_triggered,
            queries=queries,
        )

    def _needs_gap_fill(
        self,
        active: Sequence[ProviderSpec],
        outcomes: Sequence[ProviderOutcome],
        total: int,
    ) -> bool:
        if total < self._config.gap_fill_min_total:
            return True
        primary = {s.name for s in active if s.role is ProviderRole.PRIMARY}
        if not primary:
            return False
        primary_count = sum(o.record_count for o in outcomes if o.name in primary)
        return primary_count < self._config.gap_fill_primary_min

    async def _run_round(
        self,
        specs: Sequence[ProviderSpec],
        expanded: ExpandedQuery,
        *,
        gap_fill: bool,
        queries: dict[str, str],
    ) -> tuple[list[ProviderOutcome], list[RawRecord]]:
        tasks = []
        for spec in specs:
            if gap_fill:
                query = self._expander.build_broadened_query(expanded, spec.style)
                max_results = self._config.gap_fill_max_results
            else:
                query = self._expander.build_provider_query(expanded, spec.style)
                max_results = spec.max_results or self._config.provider_max_results
            queries[f"{spec.name}:gap_fill" if gap_fill else spec.name] = query
            options = SearchOptions(max_results=max_results, domain_hints=expanded.domain_tags)
            tasks.append(self._call(spec, query, options, gap_fill=gap_fill))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: list[ProviderOutcome] = []
        records: list[RawRecord] = []
        for spec, result in zip(specs, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(f"{spec.name}: unexpected orchestration error: {result!r}")
                outcomes.append(ProviderOutcome(name=spec.name, error=repr(result), gap_fill=gap_fill))
                continue
            outcome, provider_records = result
            outcomes.append(outcome)
            records.extend(provider_records)
        return outcomes, records

    async def _call(
        self,
        spec: ProviderSpec,
        query: str,
        options: SearchOptions,
        *,
        gap_fill: bool,
    ) -> tuple[ProviderOutcome, list[RawRecord]]:
        """Invoke one adapter inside its failure boundary."""
        logger.debug(f"{spec.name}: query={query!r} max_results={options.max_results}")
        start = time.perf_counter()
        try:
            payload, elapsed_ms = await run_with_timeout(
                spec.adapter.search(query, options),
                self._config.provider_timeout,
                source=spec.name,
            )
            records = self._tag_records(spec.name, payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning(f"{spec.name} failed after {elapsed_ms:.0f}ms: {e}")
            return (
                ProviderOutcome(
                    name=spec.name,
                    elapsed_ms=elapsed_ms,
                    error=str(e) or type(e).__name__,
                    gap_fill=gap_fill,
                ),
                [],
            )

        logger.debug(f"{spec.name}: {len(records)} records in {elapsed_ms:.0f}ms")
        return (
            ProviderOutcome(name=spec.name, record_count=len(records), elapsed_ms=elapsed_ms, gap_fill=gap_fill),
            records,
        )

    @staticmethod
    def _tag_records(name: str, payload: Any) -> list[RawRecord]:
        """Validate an adapter payload and stamp each record with the provider name.

        Records with wrongly typed fields are dropped one by one; the rest of
        the payload is kept.
        """
        if not isinstance(payload, (list, tuple)):
            raise ParseError(f"expected a list of records, got {type(payload).__name__}", source=name)
        records: list[RawRecord] = []
        for item in payload:
            if not isinstance(item, RawRecord):
                raise ParseError(f"expected RawRecord, got {type(item).__name__}", source=name)
            problem = _malformed_field(item)
            if problem:
                logger.warning(f"{name}: dropping malformed record ({problem})")
                continue
            records.append(item if item.source == name else dataclasses.replace(item, source=name))
        return records


def _malformed_field(record: RawRecord) -> str | None:
    """Name the first field whose runtime type does not match RawRecord."""
    if not isinstance(record.title, str):
        return f"title is {type(record.title).__name__}"
    for attr in ("abstract", "venue"):
        if not isinstance(getattr(record, attr), str):
            return f"{attr} is {type(getattr(record, attr)).__name__}"
    for attr in ("doi", "pmid", "url"):
        value = getattr(record, attr)
        if value is not None and not isinstance(value, str):
            return f"{attr} is {type(value).__name__}"
    for attr in ("year", "citation_count"):
        value = getattr(record, attr)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            return f"{attr} is {type(value).__name__}"
    if not isinstance(record.authors, tuple) or not all(isinstance(a, str) for a in record.authors):
        return "authors is not a tuple of str"
    return None

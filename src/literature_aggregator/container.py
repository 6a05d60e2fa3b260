"""
Application DI Container (dependency-injector).

Centralizes creation of the configuration, the provider adapters and the
pipeline stages.

Usage::

    from literature_aggregator.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict({
        "email": "user@example.com",
        "api_key": None,
        "provider_timeout": 15,
    })

    pipeline = container.pipeline()

    # In tests, override any provider:
    container.provider_specs.override(providers.Object([fake_spec]))
"""

from __future__ import annotations

import logging
import os
from typing import Any

from dependency_injector import containers, providers

from literature_aggregator.application.search import (
    AggregationConfig,
    AggregationPipeline,
    CompositeScorer,
    Deduplicator,
    LexicalRelevanceClassifier,
    QueryExpander,
    ResultFinalizer,
    SourceOrchestrator,
)
from literature_aggregator.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable -> config key
ENV_VARS = {
    "NCBI_EMAIL": "email",
    "NCBI_API_KEY": "api_key",
    "SEMANTIC_SCHOLAR_API_KEY": "semantic_scholar_api_key",
    "CROSSREF_EMAIL": "crossref_email",
    "OPENFDA_API_KEY": "openfda_api_key",
    "AGGREGATOR_PROVIDER_TIMEOUT": "provider_timeout",
    "AGGREGATOR_DISABLED_PROVIDERS": "disabled_providers",
    "AGGREGATOR_TARGET_COUNT": "target_count",
}


def _create_config(
    provider_timeout: Any = None,
    disabled_providers: Any = None,
    target_count: Any = None,
) -> AggregationConfig:
    """Build the validated AggregationConfig from loosely typed settings."""
    changes: dict[str, Any] = {}
    try:
        if provider_timeout not in (None, ""):
            changes["provider_timeout"] = float(provider_timeout)
        if target_count not in (None, ""):
            changes["default_target_count"] = int(target_count)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e

    if disabled_providers:
        if isinstance(disabled_providers, str):
            disabled_providers = disabled_providers.split(",")
        changes["disabled_providers"] = frozenset(p.strip() for p in disabled_providers if p.strip())

    config = AggregationConfig.default()
    return config.with_overrides(**changes) if changes else config


def _create_pubmed(email: str | None, api_key: str | None) -> object:
    """Lazy factory for PubMedClient (avoids importing Bio at module load)."""
    from literature_aggregator.infrastructure.sources import PubMedClient

    return PubMedClient(email=email or None, api_key=api_key or None)


def _create_semantic_scholar(api_key: str | None) -> object:
    from literature_aggregator.infrastructure.sources import SemanticScholarClient

    return SemanticScholarClient(api_key=api_key or None)


def _create_europe_pmc() -> object:
    from literature_aggregator.infrastructure.sources import EuropePMCClient

    return EuropePMCClient()


def _create_crossref(email: str | None) -> object:
    from literature_aggregator.infrastructure.sources import CrossRefClient

    return CrossRefClient(email=email or None)


def _create_openalex(email: str | None) -> object:
    from literature_aggregator.infrastructure.sources import OpenAlexClient

    return OpenAlexClient(email=email or None)


def _create_openfda(api_key: str | None) -> object:
    from literature_aggregator.infrastructure.sources import OpenFDAClient

    return OpenFDAClient(api_key=api_key or None)


def _create_provider_specs(config: AggregationConfig, **adapters: Any) -> list:
    from literature_aggregator.infrastructure.sources import build_default_provider_specs

    return build_default_provider_specs(config, **adapters)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the literature aggregator.

    Manages creation and lifecycle of:
    - ``aggregation_config``: validated static configuration
    - one singleton per provider adapter (each owns an HTTP client)
    - the pipeline stages and ``pipeline`` itself
    """

    config = providers.Configuration()

    aggregation_config = providers.Singleton(
        _create_config,
        provider_timeout=config.provider_timeout,
        disabled_providers=config.disabled_providers,
        target_count=config.target_count,
    )

    # Provider adapters
    pubmed = providers.Singleton(_create_pubmed, email=config.email, api_key=config.api_key)
    semantic_scholar = providers.Singleton(_create_semantic_scholar, api_key=config.semantic_scholar_api_key)
    europe_pmc = providers.Singleton(_create_europe_pmc)
    crossref = providers.Singleton(_create_crossref, email=config.crossref_email)
    openalex = providers.Singleton(_create_openalex, email=config.email)
    openfda = providers.Singleton(_create_openfda, api_key=config.openfda_api_key)

    provider_specs = providers.Singleton(
        _create_provider_specs,
        aggregation_config,
        pubmed=pubmed,
        semantic_scholar=semantic_scholar,
        europe_pmc=europe_pmc,
        crossref=crossref,
        openalex=openalex,
        openfda=openfda,
    )

    # Pipeline stages
    expander = providers.Singleton(QueryExpander, aggregation_config)
    orchestrator = providers.Singleton(SourceOrchestrator, provider_specs, aggregation_config, expander)
    classifier = providers.Singleton(LexicalRelevanceClassifier, aggregation_config)
    scorer = providers.Singleton(CompositeScorer, aggregation_config)
    deduplicator = providers.Singleton(Deduplicator, aggregation_config)
    finalizer = providers.Singleton(ResultFinalizer, aggregation_config, deduplicator)

    pipeline = providers.Singleton(
        AggregationPipeline,
        config=aggregation_config,
        expander=expander,
        orchestrator=orchestrator,
        classifier=classifier,
        scorer=scorer,
        deduplicator=deduplicator,
        finalizer=finalizer,
    )


def from_env(environ: dict[str, str] | None = None) -> ApplicationContainer:
    """Create a container populated from environment variables (see ENV_VARS)."""
    environ = os.environ if environ is None else environ
    container = ApplicationContainer()
    container.config.from_dict({key: environ.get(var) for var, key in ENV_VARS.items()})
    if not environ.get("NCBI_EMAIL"):
        logger.warning("NCBI_EMAIL is not set; NCBI asks clients to identify themselves")
    return container


async def close_adapters(container: ApplicationContainer) -> None:
    """Close the HTTP clients of every adapter the container has created."""
    for spec in container.provider_specs():
        close = getattr(spec.adapter, "close", None)
        if close is not None:
            await close()


__all__ = ["ApplicationContainer", "close_adapters", "from_env"]

"""
Command-line entry point: python -m literature_aggregator "question" [-n 10]

Prints the AggregationResult as JSON on stdout. Provider credentials are
read from the environment (NCBI_EMAIL, NCBI_API_KEY, ...).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from literature_aggregator.container import ApplicationContainer, close_adapters, from_env
from literature_aggregator.shared.exceptions import AggregatorError, ValidationError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="literature-aggregator",
        description="Aggregate biomedical literature for a research question",
    )
    parser.add_argument("query", help="Natural-language research question")
    parser.add_argument("-n", "--target-count", type=int, default=None, help="Number of results (default: 10)")
    parser.add_argument("--timeout", type=float, default=None, help="Per-provider time budget in seconds")
    parser.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="PROVIDER",
        help="Skip a provider (repeatable), e.g. --disable openfda",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


async def _run(container: ApplicationContainer, query: str, target_count: int | None) -> dict:
    try:
        result = await container.pipeline().run_aggregation(query, target_count)
        return result.to_dict()
    finally:
        await close_adapters(container)


def main(argv: list[str] | None = None) -> int:
    """Run one aggregation from the command line."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        container = from_env()
        if args.timeout is not None:
            container.config.provider_timeout.from_value(args.timeout)
        if args.disable:
            container.config.disabled_providers.from_value(",".join(args.disable))
        output = asyncio.run(_run(container, args.query, args.target_count))
    except ValidationError as e:
        logger.error(str(e))
        print(json.dumps(e.to_dict(), indent=args.indent))
        return 2
    except AggregatorError as e:
        logger.error(f"Aggregation failed: {e}")
        print(json.dumps(e.to_dict(), indent=args.indent))
        return 1

    print(json.dumps(output, indent=args.indent, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Application entry point for the GitHub deployment statistics tool."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from .cli import parse_args
from .config import Config, load_config
from .errors import ApiError, AuthenticationError, ConfigurationError
from .github_client import GitHubClient
from .latency import aggregate, fetch_deployments, partition
from .models import Deployment, DeploymentStats
from .stats import generate_report

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG when ``verbose`` is set."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _groups(config: Config, deployments: Sequence[Deployment]) -> List[Tuple[Optional[str], List[Deployment]]]:
    """Label the deployment groups to report: one unlabelled group without a cutoff."""
    split = partition(deployments, config.cutoff)
    if config.cutoff is None:
        return [(None, split.before)]
    return [("old", split.before), ("new", split.at_or_after)]


async def run(config: Config) -> str:
    """Fetch deployments, aggregate latencies per group and render the report."""
    async with GitHubClient(config=config) as client:
        deployments = await fetch_deployments(
            client,
            config.environment,
            total_deployments=config.total_deployments,
        )

        summaries: List[DeploymentStats] = []
        for label, group in _groups(config, deployments):
            summaries.append(await aggregate(client, group, group=label))

    return generate_report(
        environment=config.environment,
        fetched=len(deployments),
        groups=summaries,
    )


def orchestrate_deployment_stats(argv: Optional[Sequence[str]] = None) -> int:
    """Run the tool end to end and translate failures into an exit status.

    Returns:
        ``0`` on success, ``1`` on any configuration, authentication, API or
        unexpected error.
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        config = load_config(
            owner=args.owner,
            repo=args.repo,
            environment=args.environment,
            cutoff=args.cutoff,
            total_deployments=args.deployments,
            max_concurrency=args.max_concurrency,
        )

        report = asyncio.run(run(config))
    except ConfigurationError as exc:
        print(f"ERROR: Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except AuthenticationError as exc:
        print(f"ERROR: Authentication failed: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except ApiError as exc:
        print(f"ERROR: GitHub API error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except Exception as exc:
        logger.debug("Unexpected failure", exc_info=True)
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print(report)
    return EXIT_SUCCESS


def main() -> None:
    """Console script entry point."""
    sys.exit(orchestrate_deployment_stats())


if __name__ == "__main__":
    main()

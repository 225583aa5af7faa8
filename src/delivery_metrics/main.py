"""Entry point for the GitHub delivery metrics generator."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from .cli import parse_args
from .collector import collect_delivery_metrics, collect_devex_metrics, collect_team_metrics
from .config import load_config, parse_file_patterns
from .errors import ApiError, AuthenticationError, ConfigurationError
from .github_client import GitHubClient
from .stats import generate_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4
EXIT_DELIVERY_FAILED = 5


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    if is_dataclass(value):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def write_metrics_file(path: str, document: Dict[str, Any]) -> str:
    """Write the metrics document as indented JSON, creating parent directories."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(document, handle, indent=2, default=_json_default)

    logger.info("Metrics written", extra={"path": path})
    return path


def orchestrate_metrics_generation() -> int:
    """Run the end-to-end metrics workflow and map failures to exit codes.

    Exit codes:
        0 success, 1 unexpected error, 2 configuration error,
        3 authentication error, 4 GitHub API error,
        5 delivery metrics could not be computed.
    """
    try:
        args = parse_args()
        logging.basicConfig(
            level=getattr(logging, args.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        config = load_config(
            args.repo,
            pr_number=args.pr_number,
            output_path=args.output_path,
            enable_deployment_frequency=args.deployment_frequency,
            enable_lead_time=args.lead_time,
            enable_pr_size=args.pr_size,
            enable_pr_maturity=args.pr_maturity,
            enable_team_metrics=args.team_metrics,
            include_merge_commits=args.include_merge_commits,
            max_releases=args.max_releases,
            max_tags=args.max_tags,
            files_to_ignore=parse_file_patterns(args.files_to_ignore),
            ignore_line_deletions=args.ignore_line_deletions,
            ignore_file_deletions=args.ignore_file_deletions,
            time_period=args.time_period,
        )
        client = GitHubClient(config=config)

        print(f"Collecting metrics for repository '{config.repository}'...")

        delivery = None
        if config.needs_delivery_metrics:
            delivery = collect_delivery_metrics(
                client,
                config.options,
                deployment_frequency=config.enable_deployment_frequency,
                lead_time=config.enable_lead_time,
            )

        devex = None
        if config.needs_devex_metrics and config.pr_number is not None:
            devex = collect_devex_metrics(
                client,
                config.pr_number,
                config.options,
                pr_size=config.enable_pr_size,
                pr_maturity=config.enable_pr_maturity,
            )

        team = None
        if config.enable_team_metrics:
            team = collect_team_metrics(client, config.options, delivery=delivery)

        document: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc),
            "repository": config.repository,
            "delivery": delivery,
            "devex": devex,
            "team": team,
        }
        write_metrics_file(config.output_path, document)

        print(
            generate_report(
                repository=config.repository,
                delivery=delivery,
                devex=devex,
                team=team,
            )
        )

        if delivery is not None and delivery.error:
            logger.warning("Metrics collection completed with error: %s", delivery.error)
            return EXIT_DELIVERY_FAILED
        return EXIT_OK
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        logger.error("Authentication error: %s", exc)
        return EXIT_AUTHENTICATION
    except ApiError as exc:
        logger.error("GitHub API error: %s", exc)
        return EXIT_API
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error while generating metrics")
        return EXIT_UNEXPECTED


def main() -> None:
    raise SystemExit(orchestrate_metrics_generation())


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Command-line trigger for the anime deduplication engine.

Usage Examples:

    # Report the duplicate groups a run would merge
    python scripts/run_deduplication.py preview --limit 20

    # Dry run: identify groups, write nothing
    python scripts/run_deduplication.py run --dry-run

    # Merge the first 10 groups
    python scripts/run_deduplication.py run --limit-groups 10

    # Undo every merge of one run
    python scripts/run_deduplication.py restore dedup:1700000000000

    # Prepare a fetched batch for insertion
    python scripts/run_deduplication.py prepare --file ./data/fetched_batch.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from anime_dedup import DeduplicationError, DeduplicationService
from anime_dedup.repository import create_repository
from common.config import Settings, get_settings
from pydantic import BaseModel

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> DeduplicationService:
    """Create the repository and service for the configured database."""
    repository = create_repository(
        settings.database.database_url,
        echo=settings.database.echo,
        create_schema=settings.database.create_schema,
    )
    return DeduplicationService(repository, settings.dedup)


def _print(model: BaseModel | dict[str, Any]) -> None:
    if isinstance(model, BaseModel):
        print(model.model_dump_json(indent=2))
    else:
        print(json.dumps(model, indent=2, ensure_ascii=False))


def load_batch(file_path: str) -> list[Any]:
    """Load raw records from a JSON file holding a list or ``{"data": [...]}``."""
    with Path(file_path).open(encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get("data", [])
    if not isinstance(payload, list):
        raise ValueError(f"{file_path} does not contain a list of records")
    return payload


def run_command(args: argparse.Namespace, service: DeduplicationService) -> int:
    """Execute one subcommand and return the process exit code."""
    if args.command == "run":
        result = service.run_deduplication(
            dry_run=args.dry_run, limit_groups=args.limit_groups
        )
        _print(result)
        if result.failed:
            logger.warning(f"{result.failed} group(s) failed; rerun to retry them")
            return 2  # Partial failure
        return 0

    if args.command == "restore":
        _print(service.restore_batch(args.batch_id))
        return 0

    if args.command == "preview":
        groups = service.find_groups(limit=args.limit)
        _print(
            {
                "total_groups": len(groups),
                "groups": [
                    {"key": g.key, "member_ids": g.member_ids, "titles": g.titles}
                    for g in groups
                ],
            }
        )
        return 0

    if args.command == "prepare":
        report = service.prepare_incoming(load_batch(args.file))
        _print(report)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find, merge and restore duplicate anime records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run full-catalog deduplication")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Report groups without merging"
    )
    run_parser.add_argument(
        "--limit-groups", type=int, default=None, help="Process only the first N groups"
    )

    restore_parser = subparsers.add_parser("restore", help="Restore a merge batch")
    restore_parser.add_argument("batch_id", help="Batch id reported by a previous run")

    preview_parser = subparsers.add_parser("preview", help="List candidate groups")
    preview_parser.add_argument(
        "--limit", type=int, default=50, help="Maximum groups to list (default: 50)"
    )

    prepare_parser = subparsers.add_parser(
        "prepare", help="Prepare a fetched batch for insertion"
    )
    prepare_parser.add_argument(
        "--file", type=str, required=True, help="JSON file with raw anime records"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.service.log_level),
        format=settings.service.log_format,
    )

    args = build_parser().parse_args(argv)
    if args.command == "run" and args.limit_groups is not None and args.limit_groups < 1:
        logger.error("--limit-groups must be at least 1")
        sys.exit(1)

    try:
        sys.exit(run_command(args, build_service(settings)))
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Validation error: {e}")
        sys.exit(1)
    except DeduplicationError as e:
        logger.error(f"Deduplication failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Issue Rollup command line

Recompute and inspect hierarchy rollup metrics against a Jira site, and manage
the rollup field configuration.

Usage:
    issue-rollup recompute PROJ-1            # recompute one parent now
    issue-rollup event PROJ-7                # simulate an issue-updated event
    issue-rollup show PROJ-1 [--compute]     # print the stored metric
    issue-rollup config show
    issue-rollup config set --type custom --formula "IF(percentComplete >= 60, totalStoryPoints, 0)"

Environment (.env supported):
    JIRA_BASE_URL, JIRA_EMAIL, JIRA_API_TOKEN   Jira connection
    ROLLUP_STORE_PATH                           JSON store (default .tmp/rollup_store.json)
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import httpx

from rollup.collectors.hierarchy import HierarchyWalker
from rollup.collectors.jira_rest_client import get_jira_rest_client
from rollup.collectors.jira_source import JiraPropertyMirror, JiraTreeSource
from rollup.core import get_logger, log_with_context, setup_logging
from rollup.coordinator import RecomputeStatus
from rollup.domain.config import FormulaType
from rollup.secure_config import ConfigurationError, SecureConfig, get_config, validate_config_on_startup
from rollup.security import JQLValidator, ValidationError
from rollup.service import RollupService
from rollup.storage import JSONFileStore, StoreError

logger = get_logger(__name__)

TRACKER_COMMANDS = {"recompute", "event", "show"}


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(prog="issue-rollup", description="Hierarchy rollup metrics for Jira issues")

    parser.add_argument("--log-level", type=str, default="INFO", help="Log level (default: INFO)")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines on the console")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write JSON logs to this file")
    parser.add_argument("--store", type=Path, default=None, help="JSON store path (default: ROLLUP_STORE_PATH)")
    parser.add_argument("--env-file", type=Path, default=None, help="Explicit .env file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    recompute = subparsers.add_parser("recompute", help="Recompute one issue now, ignoring the debounce lock")
    recompute.add_argument("issue_key", type=str, help="Parent issue key (e.g. PROJ-1)")

    event = subparsers.add_parser("event", help="Handle a change on an issue (refreshes its ancestors)")
    event.add_argument("issue_key", type=str, help="Changed issue key (e.g. PROJ-7)")

    show = subparsers.add_parser("show", help="Print the stored metric for an issue")
    show.add_argument("issue_key", type=str, help="Parent issue key (e.g. PROJ-1)")
    show.add_argument("--compute", action="store_true", help="Compute and store the metric when none is stored")

    config = subparsers.add_parser("config", help="Show or change the rollup field configuration")
    config_commands = config.add_subparsers(dest="config_command", required=True)
    config_commands.add_parser("show", help="Print the current configuration")

    config_set = config_commands.add_parser("set", help="Validate and save a configuration")
    config_set.add_argument("--type", dest="formula_type", required=True, choices=[t.value for t in FormulaType])
    config_set.add_argument("--formula", type=str, default=None, help="Expression for the custom type")
    config_set.add_argument("--thresholds", type=float, nargs=2, metavar=("LOW", "HIGH"), default=None)
    config_set.add_argument("--max-depth", type=int, default=None, help="Levels to walk (1-5)")
    config_set.add_argument("--points-field", type=str, default=None, help="Story points field id")

    return parser.parse_args(argv)


def build_service(args: argparse.Namespace, config: SecureConfig) -> RollupService:
    """
    Wire the store, and for tracker commands the Jira adapters, into a service.

    Raises:
        ConfigurationError: If the store path or Jira settings are invalid
    """
    needs_tracker = args.command in TRACKER_COMMANDS
    if needs_tracker:
        validate_config_on_startup(["jira"], config)

    storage_config = config.get_storage_config(args.store)
    store = JSONFileStore(storage_config.path)

    if not needs_tracker:
        return RollupService(store)

    client = get_jira_rest_client(config)
    return RollupService(store, HierarchyWalker(JiraTreeSource(client)), mirror=JiraPropertyMirror(client))


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


async def run(args: argparse.Namespace, service: RollupService) -> int:
    """
    Execute the parsed command.

    Returns:
        Process exit code (0 success, 1 failure)
    """
    if args.command in TRACKER_COMMANDS:
        JQLValidator.validate_issue_key(args.issue_key)

    if args.command == "recompute":
        result = await service.force_recompute(args.issue_key)
        _print_json(result)
        return 0 if result["ok"] else 1

    if args.command == "event":
        outcome = await service.handle_issue_event({"issue": {"key": args.issue_key}})
        _print_json({key: status.value for key, status in outcome.items()})
        failed = [key for key, status in outcome.items() if status == RecomputeStatus.FAILED]
        log_with_context(logger, "info", "Issue event handled", issue_key=args.issue_key, failed=failed)
        return 1 if failed else 0

    if args.command == "show":
        if args.compute:
            value = await service.compute_field_value(args.issue_key)
            metrics = json.loads(value) if value else None
        else:
            stored = await service.get_metrics(args.issue_key)
            metrics = stored.to_dict() if stored else None

        if metrics is None:
            logger.warning(f"No metrics stored for {args.issue_key}")
            return 1
        _print_json(metrics)
        return 0

    if args.config_command == "show":
        field_config = await service.get_field_config()
        _print_json(field_config.to_dict())
        return 0

    payload = {
        "type": args.formula_type,
        "formula": args.formula,
        "thresholds": args.thresholds,
        "maxDepth": args.max_depth,
        "storyPointsField": args.points_field,
    }
    result = await service.save_field_config({k: v for k, v in payload.items() if v is not None})
    _print_json(result)
    return 0 if result["ok"] else 1


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the issue-rollup console script.

    Returns:
        Process exit code
    """
    args = parse_arguments(argv)
    setup_logging(level=args.log_level, log_file=args.log_file, json_output=args.json_logs)

    try:
        service = build_service(args, get_config(args.env_file))
        return asyncio.run(run(args, service))

    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Invalid input or configuration: {e}")
        return 1
    except StoreError as e:
        logger.error(f"Store failure: {e}")
        return 1
    except httpx.HTTPError as e:
        logger.error(f"Jira request failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

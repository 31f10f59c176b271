"""
CLI management commands for Code Explorer.

Usage:
    python -m code_explorer.cli.commands audit --limit 20
    python -m code_explorer.cli.commands generate-secret
    python -m code_explorer.cli.commands check-repo
"""
from __future__ import annotations

import argparse
import json
import logging
import secrets
import sys
from typing import Optional

from code_explorer.api.services.audit_log import JsonFileAuditStore
from code_explorer.api.services.repository_service import GitHubRepository
from code_explorer.core.exceptions import PersistenceFailure
from code_explorer.core.settings import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def cmd_audit(limit: int, path: Optional[str] = None) -> None:
    """Print the most recent durable audit entries, newest first, one JSON object per line."""
    store = JsonFileAuditStore(path or settings.audit_log_path)

    try:
        entries = store.read_recent(limit)
    except PersistenceFailure as e:
        logger.error(f"Cannot read audit log: {e}")
        sys.exit(1)

    for entry in entries:
        print(json.dumps(entry.to_json()))
    logger.info(f"{len(entries)} entries from {store.path}")


def cmd_generate_secret() -> None:
    """Print a random value suitable for SESSION_SECRET."""
    print(secrets.token_urlsafe(32))


def cmd_check_repo() -> None:
    """Check that the configured GitHub repository is reachable."""
    if not settings.github_owner or not settings.github_repo:
        logger.error("GITHUB_OWNER and GITHUB_REPO must be set")
        sys.exit(1)

    repository = GitHubRepository.from_settings(settings)
    target = f"{settings.github_owner}/{settings.github_repo}@{settings.github_branch}"
    if not repository.verify_connection():
        logger.error(f"Cannot reach {target}")
        sys.exit(1)
    logger.info(f"Repository {target} is reachable")


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Code Explorer management commands",
        prog="python -m code_explorer.cli.commands"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # audit command
    audit_parser = subparsers.add_parser(
        "audit",
        help="Show recent entries from the durable audit log"
    )
    audit_parser.add_argument("--limit", type=int, default=100, help="Number of entries (default 100)")
    audit_parser.add_argument("--path", default=None, help="Audit log file (default AUDIT_LOG_PATH)")

    # generate-secret command
    subparsers.add_parser(
        "generate-secret",
        help="Print a random SESSION_SECRET value"
    )

    # check-repo command
    subparsers.add_parser(
        "check-repo",
        help="Verify the configured GitHub repository is reachable"
    )

    args = parser.parse_args(argv)

    if args.command == "audit":
        cmd_audit(args.limit, args.path)
    elif args.command == "generate-secret":
        cmd_generate_secret()
    elif args.command == "check-repo":
        cmd_check_repo()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Pull request comment pipe CLI.

Creates a comment on the current pull request, or updates the comment left by
a previous run when COMMENT_IDENTIFIER is set.

Usage:
    pr-comment                      # Configuration from environment / .env
    pr-comment --log-level DEBUG    # Log every API request and response
"""

import argparse
import asyncio
import logging
import sys

import httpx
from pydantic import ValidationError

from .comment import get_comment_content, get_formatted_identifier
from .config import ConfigError, PipeConfig, get_config, get_settings
from .connectors.bitbucket import (
    BitbucketApiError,
    Transport,
    create_comment,
    get_existing_comment,
    update_comment,
)
from .logging_config import configure_logging

logger = logging.getLogger("pr_comment.cli")


async def run(config: PipeConfig, transport: Transport | None = None) -> str:
    """Find the identified comment, then update it or create a new one.

    Returns:
        "updated" or "created"
    """
    identifier = (
        get_formatted_identifier(config.comment.identifier)
        if config.comment.identifier
        else None
    )
    comment_id = (
        await get_existing_comment(
            config.auth, config.pr, identifier, transport=transport
        )
        if identifier
        else None
    )
    content = get_comment_content(config.comment)

    if comment_id is not None:
        await update_comment(
            config.auth, config.pr, comment_id, content, transport=transport
        )
        return "updated"

    await create_comment(config.auth, config.pr, content, transport=transport)
    return "created"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pr-comment",
        description="Create or update a Bitbucket pull request comment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration (environment variables or .env):
  BITBUCKET_USERNAME        Account username
  BITBUCKET_APP_PASSWORD    App password with pull request write scope
  BITBUCKET_PR_ID           Set by Bitbucket Pipelines in PR builds
  BITBUCKET_WORKSPACE       Set by Bitbucket Pipelines
  BITBUCKET_REPO_SLUG       Set by Bitbucket Pipelines
  CONTENT_TEXT              Comment content (takes precedence)
  CONTENT_FILE              File containing the comment content
  COMMENT_IDENTIFIER        Update the previous comment with this identifier
        """,
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override PR_COMMENT_LOG_LEVEL",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
        config = get_config()
    except (ValidationError, ConfigError) as e:
        configure_logging(level=args.log_level)
        print(f"Error: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(
        level=args.log_level or settings.pr_comment_log_level,
        log_format=settings.pr_comment_log_format,
    )

    try:
        outcome = asyncio.run(run(config))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except BitbucketApiError as e:
        logger.error(
            "bitbucket_api_error",
            extra={"status_code": e.status, "url": e.url, "detail": e.detail},
        )
        print(f"Error: Bitbucket API error {e.status}: {e.message}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        logger.error("bitbucket_transport_error", extra={"error": str(e)})
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info(
        "pr_comment_done",
        extra={"outcome": outcome, "pr_id": config.pr.id},
    )
    return 0


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()

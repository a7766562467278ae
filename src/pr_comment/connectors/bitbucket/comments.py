"""Pull request comment endpoints.

Reference: https://developer.atlassian.com/cloud/bitbucket/rest/api-group-pullrequests/
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, TypedDict

from .api import Credential, Transport, make_paginated_request, make_request

logger = logging.getLogger("pr_comment.bitbucket.comments")


@dataclass(frozen=True)
class PullRequestRef:
    """Identifies one pull request: workspace slug, repository slug and PR id."""

    workspace: str
    repository: str
    id: int

    @property
    def comments_path(self) -> str:
        return (
            f"repositories/{self.workspace}/{self.repository}"
            f"/pullrequests/{self.id}/comments"
        )


class CommentContent(TypedDict):
    html: str
    markup: Literal["markdown", "creole", "plaintext"]
    raw: str


class BitbucketPRComment(TypedDict, total=False):
    """Partial shape of a pull request comment (fields this pipe reads)."""

    type: Literal["pullrequest_comment"]
    id: int
    created_on: str
    updated_on: str
    content: CommentContent
    user: Any
    parent: Any
    deleted: bool
    pending: bool
    links: dict[str, dict[str, str]]


def _comment_body(content: str) -> str:
    return json.dumps({"content": {"raw": content}})


async def get_existing_comment(
    credential: Credential,
    pr: PullRequestRef,
    identifier_text: str,
    *,
    transport: Transport | None = None,
) -> int | None:
    """Find the first live comment whose raw content contains identifier_text.

    Stops paging as soon as a match is found.

    Returns:
        Comment id, or None if no comment matches
    """
    comments = make_paginated_request(credential, pr.comments_path, transport=transport)
    async for comment in comments:
        if comment.get("deleted"):
            continue
        raw = (comment.get("content") or {}).get("raw") or ""
        if identifier_text in raw:
            logger.info(
                "existing_comment_found",
                extra={"comment_id": comment["id"], "pr_id": pr.id},
            )
            return comment["id"]

    logger.info(
        "existing_comment_not_found",
        extra={"pr_id": pr.id, "pages_fetched": comments.pages_fetched},
    )
    return None


async def create_comment(
    credential: Credential,
    pr: PullRequestRef,
    content: str,
    *,
    transport: Transport | None = None,
) -> BitbucketPRComment:
    """Post a new comment on the pull request."""
    comment = await make_request(
        credential,
        pr.comments_path,
        method="POST",
        body=_comment_body(content),
        transport=transport,
    )
    logger.info("comment_created", extra={"pr_id": pr.id})
    return comment


async def update_comment(
    credential: Credential,
    pr: PullRequestRef,
    comment_id: int,
    content: str,
    *,
    transport: Transport | None = None,
) -> BitbucketPRComment:
    """Replace the content of an existing comment."""
    comment = await make_request(
        credential,
        f"{pr.comments_path}/{comment_id}",
        method="PUT",
        body=_comment_body(content),
        transport=transport,
    )
    logger.info("comment_updated", extra={"pr_id": pr.id, "comment_id": comment_id})
    return comment

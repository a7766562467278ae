"""Bitbucket Cloud integration package.

Provides the REST request executor, paginator and pull request comment endpoints.
"""

from .api import (
    API_BASE_URL,
    BitbucketApiError,
    Credential,
    HttpxTransport,
    PaginatedRequest,
    PaginatedResponse,
    Transport,
    TransportRequest,
    TransportResponse,
    make_paginated_request,
    make_request,
)
from .comments import (
    BitbucketPRComment,
    PullRequestRef,
    create_comment,
    get_existing_comment,
    update_comment,
)

__all__ = [
    "API_BASE_URL",
    "BitbucketApiError",
    "BitbucketPRComment",
    "Credential",
    "HttpxTransport",
    "PaginatedRequest",
    "PaginatedResponse",
    "PullRequestRef",
    "Transport",
    "TransportRequest",
    "TransportResponse",
    "create_comment",
    "get_existing_comment",
    "make_paginated_request",
    "make_request",
    "update_comment",
]

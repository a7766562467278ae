"""PR Comment - Bitbucket Pipelines pipe that posts pull request comments.

Provides:
- Bitbucket REST API request executor and paginator
- Pull request comment lookup, creation and update
- Configuration from environment variables (pydantic-settings)
- Structured logging

Python Version: 3.10+ required
"""

# Logging Configuration - configure before other imports
from .logging_config import StructuredFormatter, configure_logging

configure_logging()

from .__version__ import __version__  # noqa: E402
from .comment import get_comment_content, get_formatted_identifier  # noqa: E402
from .config import (  # noqa: E402
    CommentConfig,
    ConfigError,
    PipeConfig,
    PipeSettings,
    get_config,
    get_settings,
    reset_settings,
)
from .connectors.bitbucket import (  # noqa: E402
    BitbucketApiError,
    Credential,
    PullRequestRef,
    make_paginated_request,
    make_request,
)

__all__ = [
    "BitbucketApiError",
    "CommentConfig",
    "ConfigError",
    "Credential",
    "PipeConfig",
    "PipeSettings",
    "PullRequestRef",
    "StructuredFormatter",
    "__version__",
    "configure_logging",
    "get_comment_content",
    "get_config",
    "get_formatted_identifier",
    "get_settings",
    "make_paginated_request",
    "make_request",
    "reset_settings",
]

"""Configuration management with pydantic-settings for the PR comment pipe.

Bitbucket Pipelines exposes the pull request context (BITBUCKET_PR_ID,
BITBUCKET_WORKSPACE, BITBUCKET_REPO_SLUG) as environment variables; the pipe
user supplies credentials and the comment content the same way.

- Frozen settings (immutable after load)
- SecretStr for the app password
- Optional .env file for local runs
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .connectors.bitbucket.api import Credential
from .connectors.bitbucket.comments import PullRequestRef

logger = logging.getLogger("pr_comment.config")

__all__ = [
    "CommentConfig",
    "ConfigError",
    "Credential",
    "PipeConfig",
    "PipeSettings",
    "PullRequestRef",
    "get_config",
    "get_settings",
    "read_content_file",
    "reset_settings",
]

MISSING_PR_ID_MESSAGE = (
    "Missing required configuration variable BITBUCKET_PR_ID: "
    "This pipe can only be used in a pull request pipeline."
)
MISSING_CONTENT_MESSAGE = (
    "Comment content not provided: "
    "you must provide either CONTENT_TEXT or CONTENT_FILE."
)

_REQUIRED_VARIABLES = (
    "bitbucket_username",
    "bitbucket_app_password",
    "bitbucket_workspace",
    "bitbucket_repo_slug",
)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigError(Exception):
    """Raised when configuration cannot be turned into a runnable pipe config."""

    pass


@dataclass(frozen=True)
class CommentConfig:
    content: str
    identifier: str | None = None


@dataclass(frozen=True)
class PipeConfig:
    auth: Credential
    pr: PullRequestRef
    comment: CommentConfig


class PipeSettings(BaseSettings):
    """Raw pipe settings loaded from the environment.

    Loads from (in order of precedence):
    1. Environment variables (highest priority)
    2. .env file in the working directory
    3. Default values (lowest priority)

    Empty strings count as missing for required values. CONTENT_TEXT is the
    exception: an empty CONTENT_TEXT is valid (empty) comment content.

    Attributes:
        bitbucket_username: Account username for Basic Auth
        bitbucket_app_password: App password (stored as SecretStr)
        bitbucket_pr_id: Pull request id, set by Pipelines in PR builds
        bitbucket_workspace: Workspace slug, set by Pipelines
        bitbucket_repo_slug: Repository slug, set by Pipelines
        content_text: Comment content given inline
        content_file: Path to a file holding the comment content
        comment_identifier: Marker used to find and update a previous comment
        pr_comment_log_level: Logging level
        pr_comment_log_format: Log format (text or json)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # BITBUCKET_USERNAME = bitbucket_username
        frozen=True,  # Immutable after creation
        extra="ignore",  # Pipelines exposes many unrelated BITBUCKET_* vars
    )

    bitbucket_username: str = Field(
        default="", description="Bitbucket username for Basic Auth"
    )
    bitbucket_app_password: SecretStr = Field(
        default=SecretStr(""), description="Bitbucket app password (stored securely)"
    )
    bitbucket_pr_id: int | None = Field(
        default=None, description="Pull request id (only set in PR pipelines)"
    )
    bitbucket_workspace: str = Field(default="", description="Workspace slug")
    bitbucket_repo_slug: str = Field(default="", description="Repository slug")

    content_text: str | None = Field(
        default=None, description="Comment content (takes precedence over file)"
    )
    content_file: str | None = Field(
        default=None, description="Path to a file containing the comment content"
    )
    comment_identifier: str | None = Field(
        default=None,
        description="Identifier embedded in the comment to update it on later runs",
    )

    pr_comment_log_level: str = Field(default="INFO", description="Logging level")
    pr_comment_log_format: str = Field(
        default="text", description="Log format (text for humans, json for shipping)"
    )

    @field_validator("bitbucket_pr_id", mode="before")
    @classmethod
    def empty_pr_id_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("content_file", "comment_identifier", mode="before")
    @classmethod
    def empty_optional_is_none(cls, v):
        if isinstance(v, str) and not v:
            return None
        return v

    @field_validator("pr_comment_log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid value for PR_COMMENT_LOG_LEVEL: {v}. "
                f"Expected one of: {', '.join(sorted(_VALID_LOG_LEVELS))}."
            )
        return level

    @field_validator("pr_comment_log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        log_format = v.lower()
        if log_format not in ("text", "json"):
            raise ValueError(
                f"Invalid value for PR_COMMENT_LOG_FORMAT: {v}. "
                "Expected one of: text, json."
            )
        return log_format

    @model_validator(mode="after")
    def validate_required(self) -> "PipeSettings":
        """Fail early with the name of the first missing variable."""
        for name in _REQUIRED_VARIABLES:
            value = getattr(self, name)
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if not value:
                raise ValueError(
                    f"Missing required configuration variable: {name.upper()}"
                )

        if self.bitbucket_pr_id is None:
            raise ValueError(MISSING_PR_ID_MESSAGE)

        if self.content_text is None and self.content_file is None:
            raise ValueError(MISSING_CONTENT_MESSAGE)

        return self

    def credential(self) -> Credential:
        return Credential(
            username=self.bitbucket_username,
            password=self.bitbucket_app_password.get_secret_value(),
        )

    def pull_request(self) -> PullRequestRef:
        return PullRequestRef(
            workspace=self.bitbucket_workspace,
            repository=self.bitbucket_repo_slug,
            id=self.bitbucket_pr_id,
        )

    def comment(self) -> CommentConfig:
        """Resolve comment content; CONTENT_TEXT wins over CONTENT_FILE."""
        if self.content_text is not None:
            content = self.content_text
        else:
            content = read_content_file(self.content_file)
        return CommentConfig(content=content, identifier=self.comment_identifier)


def read_content_file(file_path: str) -> str:
    """Read a UTF-8 file, relative paths resolved against the working directory.

    Raises:
        ConfigError: If the file does not exist or cannot be read.
    """
    absolute_path = Path.cwd() / file_path
    try:
        return absolute_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(
            f"Failed to read file {absolute_path}: "
            "File does not exist or is not readable."
        ) from e


@lru_cache(maxsize=1)
def get_settings() -> PipeSettings:
    """Get the settings singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Raises:
        ValidationError: If a required value is missing or a value is invalid.
    """
    return PipeSettings()


def reset_settings() -> None:
    """Clear the cached settings. Only for use in tests."""
    get_settings.cache_clear()


def get_config() -> PipeConfig:
    """Build the full pipe configuration (credential, pull request, comment).

    Raises:
        ValidationError: If settings are missing or invalid.
        ConfigError: If CONTENT_FILE cannot be read.
    """
    settings = get_settings()
    config = PipeConfig(
        auth=settings.credential(),
        pr=settings.pull_request(),
        comment=settings.comment(),
    )
    logger.debug(
        "config_loaded",
        extra={
            "workspace": config.pr.workspace,
            "repository": config.pr.repository,
            "pr_id": config.pr.id,
            "has_identifier": config.comment.identifier is not None,
        },
    )
    return config

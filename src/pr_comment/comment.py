"""Comment content formatting."""

from .config import CommentConfig

IDENTIFIER_PREFIX = "bitbucket-pipe-pr-comment"


def get_formatted_identifier(identifier: str) -> str:
    """Format the identifier as a Markdown reference-style link definition.

    Link definitions are not rendered, so the marker stays invisible in the
    comment while remaining searchable in its raw content.
    """
    return f"\n[comment]: # ({IDENTIFIER_PREFIX}: {identifier})"


def get_comment_content(comment: CommentConfig) -> str:
    """Comment content with the identifier marker appended when one is set."""
    if not comment.identifier:
        return comment.content
    return f"{comment.content}\n{get_formatted_identifier(comment.identifier)}"

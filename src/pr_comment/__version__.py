"""Version information for the PR comment pipe.

Single source of truth for version number.
"""

__version__ = "1.1.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))

# Version history:
# 1.1.0 - Structured logging, pydantic-settings configuration
# 1.0.0 - Initial release

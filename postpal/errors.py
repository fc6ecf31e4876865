# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""PostPal error hierarchy.

    PostPalError
    ├── PostError               filesystem failures on a post unit
    │   └── InvalidPostIdError  malformed identifier in a delete batch
    └── GitError                git command failures
        └── NoChangesError      commit requested with nothing staged
"""


class PostPalError(Exception):
    """Base class for all PostPal errors."""


class PostError(PostPalError):
    """A post unit could not be read, written or removed."""


class InvalidPostIdError(PostError, ValueError):
    """A post identifier did not parse as an integer."""


class GitError(PostPalError):
    """A git command failed."""


class NoChangesError(GitError):
    """Raised by a commit when the index holds no staged changes."""

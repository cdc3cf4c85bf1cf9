from __future__ import annotations

from typing import Optional


class IssueSearchError(Exception):
    """Base class for errors raised while answering an issue search."""


class ValidationError(IssueSearchError):
    """A request parameter is malformed or not recognized.

    Surfaced to the caller as a rejected request; never retried.
    """

    def __init__(self, message: str, param: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.param = param


class IndexUnavailableError(IssueSearchError):
    """The search index timed out or failed.

    The whole request fails; no partial results or facets are returned.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

"""Exceptions raised while publishing changelists to Review Board."""

from __future__ import annotations


class ReviewboardError(Exception):
    """Base class for every failure the publisher reports per changelist."""


class ConfigurationError(ReviewboardError, ValueError):
    """Missing author/key/launcher, or an update requested without files."""


class ProtocolError(ReviewboardError):
    """post-review exited cleanly but printed no review request ID."""


class SubmissionError(ReviewboardError):
    """post-review failed and the failure could not be recovered."""

    def __init__(self, message: str, exit_code: int | None = None, error_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code
        self.error_code = error_code

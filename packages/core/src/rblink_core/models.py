"""Changelists, builds and review outcomes.

Decoupled from rblink_store: the CLI maps stored build records onto the
Build chain below before handing it to the publisher.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ActionDirective(Enum):
    """Override tokens an author can put in a change description.

    Declaration order is the scan order: when a description contains more
    than one token, the one declared first wins.
    """

    SKIP = "RB_SKIP"
    FORCE_NEW = "RB_NEW"
    FORCE_UPDATE = "RB_UPDATE"
    NONE = "RB_NONE"


@dataclass
class ChangelistEntry:
    """One submitted changelist as reported by the build host."""

    author: str
    message: str
    affected_paths: list[str] = field(default_factory=list)
    change_number: int | None = None


@dataclass(frozen=True)
class ReviewOutcome:
    """Mapping between a correlation key and the review request it produced.

    Created once per changelist that was successfully posted and attached to
    the build that posted it. Later builds look these up to decide whether to
    update an existing review request instead of creating a new one.
    """

    correlation_key: str
    change_number: int | None
    review_id: int
    author: str
    description: str = ""

    def __post_init__(self):
        if not self.correlation_key:
            raise ValueError("Correlation key cannot be empty.")
        if self.review_id is None or self.review_id <= 0:
            raise ValueError("Review request ID must be a positive integer.")
        if not self.author:
            raise ValueError("Author cannot be empty.")

    def matches(self, key: str | None) -> bool:
        return key is not None and self.correlation_key.lower() == key.lower()


@dataclass
class Build:
    """A build record and its link to the build before it.

    ``outcomes`` only ever grows: the publisher appends one ReviewOutcome per
    changelist it submits while processing this build.
    """

    number: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    changes: list[ChangelistEntry] = field(default_factory=list)
    outcomes: list[ReviewOutcome] = field(default_factory=list)
    previous: Build | None = None

    def record_outcome(self, outcome: ReviewOutcome) -> None:
        self.outcomes.append(outcome)

"""Build history data models.

Decoupled from rblink_core so the store layer can be used independently
and rblink_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class OutcomeRecord:
    """One changelist that was posted to Review Board, as persisted."""

    external_id: str
    change_number: int | None
    review_id: int
    author: str
    description: str = ""


@dataclass
class BuildRecord:
    """A publisher run for one build of a job.

    Created by the CLI layer after ReviewPublisher.perform() returns.
    The CLI maps the core Build (and its ReviewOutcomes) to a BuildRecord
    before calling store.save().
    """

    job: str
    number: int
    built_at: str  # ISO-8601 UTC timestamp
    succeeded: bool = True
    outcomes: list[OutcomeRecord] = field(default_factory=list)


def outcome_to_dict(outcome: OutcomeRecord) -> dict:
    return {
        "external_id": outcome.external_id,
        "change_number": outcome.change_number,
        "review_id": outcome.review_id,
        "author": outcome.author,
        "description": outcome.description,
    }


def outcome_from_dict(d: dict) -> OutcomeRecord:
    return OutcomeRecord(
        external_id=d.get("external_id", ""),
        change_number=d.get("change_number"),
        review_id=d.get("review_id", 0),
        author=d.get("author", ""),
        description=d.get("description", ""),
    )

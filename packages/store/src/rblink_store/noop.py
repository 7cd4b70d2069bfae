"""No-op store, the default when no store is configured.

Nothing is remembered between runs, so every correlated changelist creates
a new review request unless an earlier changelist of the same run already
created one. Using a NoOpStore rather than None lets the CLI always call
store.save() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rblink_store.base import BaseStore

if TYPE_CHECKING:
    from rblink_store.models import BuildRecord


class NoOpStore(BaseStore):
    """Silently discards all records; zero configuration required."""

    def save(self, record: BuildRecord) -> None:
        pass  # intentional no-op

    def list_builds(self, job: str) -> list[BuildRecord]:
        return []

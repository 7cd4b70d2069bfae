"""Abstract store interface.

Any storage backend for build history (Gist, SQLite, ...) implements this
interface. The CLI depends on BaseStore, not on a concrete backend, so
backends are swappable without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rblink_store.models import BuildRecord


class BaseStore(ABC):
    """Pluggable persistence layer for build history.

    Implementations must be safe to call from CI environments where no
    interactive credentials are available; all auth happens via constructor
    arguments resolved at init time.
    """

    @abstractmethod
    def save(self, record: BuildRecord) -> None:
        """Persist a build record, replacing any earlier record with the same job and number."""

    @abstractmethod
    def list_builds(self, job: str) -> list[BuildRecord]:
        """Return the builds of a job, oldest first.

        Returns an empty list if no builds exist; never raises.
        """

    def prune(self, job: str, keep: int) -> None:
        """Discard all but the ``keep`` most recent builds of a job.

        Outcomes held by discarded builds can no longer be found, so later
        changes for their keys create new review requests. Default is a no-op.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """

"""GistStore: build history shared between CI agents through a GitHub Gist.

Lets every agent building a job see the review requests the others created,
without provisioning a database. Access control is the Gist's own.

Data format: a single JSON file named `rblink_history.json` inside the Gist,
holding a JSON array of BuildRecord dicts in the order they were saved.
"""

from __future__ import annotations

import json
import logging

from rblink_store.base import BaseStore
from rblink_store.models import BuildRecord, outcome_from_dict, outcome_to_dict

logger = logging.getLogger(__name__)

_GIST_FILENAME = "rblink_history.json"


class GistStore(BaseStore):
    """Stores build history in a GitHub Gist as a JSON array.

    save() rewrites the whole file, so it suits jobs with hundreds of
    retained builds; use `keep_builds` or SQLiteStore beyond that.
    """

    def __init__(self, gist_id: str, token: str):
        try:
            from github import Github
        except ImportError:
            raise ImportError("PyGithub is required for GistStore. Install it with: pip install PyGithub")
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def save(self, record: BuildRecord) -> None:
        """Add (or replace) a build record in the Gist JSON file."""
        try:
            gist = self._get_gist()
            same = (record.job, record.number)
            records = [r for r in self._read_records(gist) if (r.get("job"), r.get("number")) != same]
            records.append(self._to_dict(record))
            self._write_records(gist, records)
        except Exception as e:
            # The review requests are already posted; losing the history only
            # means the next change for these keys opens new ones.
            logger.warning("GistStore.save() failed (%s): %s", type(e).__name__, e)
            print(f"Warning: could not persist build history to Gist ({type(e).__name__}: {e})")

    def list_builds(self, job: str) -> list[BuildRecord]:
        try:
            gist = self._get_gist()
            records = self._read_records(gist)
        except Exception as e:
            logger.warning("GistStore.list_builds() failed: %s", e)
            return []

        results = [self._from_dict(r) for r in records if r.get("job") == job]
        return sorted(results, key=lambda r: r.number)

    def prune(self, job: str, keep: int) -> None:
        try:
            gist = self._get_gist()
            records = self._read_records(gist)
            numbers = sorted((r.get("number", 0) for r in records if r.get("job") == job), reverse=True)
            dropped = set(numbers[max(keep, 0) :])
            if not dropped:
                return
            kept = [r for r in records if not (r.get("job") == job and r.get("number", 0) in dropped)]
            self._write_records(gist, kept)
        except Exception as e:
            logger.warning("GistStore.prune() failed (%s): %s", type(e).__name__, e)

    def _read_records(self, gist) -> list[dict]:
        """Read the current JSON array from the Gist file, or return []."""
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return []
        try:
            return json.loads(file_obj.content) or []
        except (json.JSONDecodeError, AttributeError):
            return []

    @staticmethod
    def _write_records(gist, records: list[dict]) -> None:
        from github import InputFileContent

        gist.edit(files={_GIST_FILENAME: InputFileContent(json.dumps(records, indent=2))})

    @staticmethod
    def _to_dict(record: BuildRecord) -> dict:
        return {
            "job": record.job,
            "number": record.number,
            "built_at": record.built_at,
            "succeeded": record.succeeded,
            "outcomes": [outcome_to_dict(o) for o in record.outcomes],
        }

    @staticmethod
    def _from_dict(d: dict) -> BuildRecord:
        return BuildRecord(
            job=d.get("job", ""),
            number=d.get("number", 0),
            built_at=d.get("built_at", ""),
            succeeded=d.get("succeeded", True),
            outcomes=[outcome_from_dict(o) for o in d.get("outcomes", [])],
        )

"""Thin client for the Review Board JSON web API.

Covers only what publishing needs: editing the draft of an existing review
request (reviewers, bugs, groups, change description), publishing it, and
looking up users and groups. Review requests themselves are created by
post-review, not through this client.

Every call is best effort. Transport errors, HTTP errors and error payloads
are logged and reported as False / None so a metadata hiccup never undoes a
review request that was already posted.
"""

from __future__ import annotations

import logging
import time

import requests

logger = logging.getLogger(__name__)

_PUBLISH_PATH = "/api/json/reviewrequests/{review_id}/publish/"
_SET_REVIEWERS_PATH = "/api/json/reviewrequests/{review_id}/draft/set/target_people/"
_SET_BUGS_PATH = "/api/json/reviewrequests/{review_id}/draft/set/bugs_closed/"
_SET_GROUPS_PATH = "/api/json/reviewrequests/{review_id}/draft/set/target_groups/"
_SET_CHANGE_DESCR_PATH = "/api/json/reviewrequests/{review_id}/draft/set/changedescription/"
_GET_USERS_PATH = "/api/json/users/"
_GET_GROUPS_PATH = "/api/json/groups/"

_QUERY_LIMIT = "150"
_STATUS_OK = "ok"


class ReviewboardClient:
    DEFAULT_TIMEOUT = 300

    def __init__(self, url: str, username: str, password: str, timeout: float = DEFAULT_TIMEOUT):
        if not url:
            raise ValueError("Review Board URL is required.")
        self.base_url = url.strip().rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.auth = (username, password)

    # ------------------------------------------------------------------ #
    # Draft edits                                                          #
    # ------------------------------------------------------------------ #

    def set_reviewers(self, review_id: int, reviewers: str) -> bool:
        """Replace the target people of a draft with a comma-separated list of usernames."""
        return self._post(_SET_REVIEWERS_PATH.format(review_id=review_id), {"value": reviewers})

    def set_bugs(self, review_id: int, bugs: str) -> bool:
        return self._post(_SET_BUGS_PATH.format(review_id=review_id), {"value": bugs})

    def set_groups(self, review_id: int, groups: str) -> bool:
        """Replace the target groups of a draft with a comma-separated list of group names."""
        return self._post(_SET_GROUPS_PATH.format(review_id=review_id), {"value": groups})

    def set_change_description(self, review_id: int, description: str) -> bool:
        """Describe the new diff on a draft that updates an existing review request."""
        return self._post(_SET_CHANGE_DESCR_PATH.format(review_id=review_id), {"value": description})

    def publish(self, review_id: int) -> bool:
        return self._post(_PUBLISH_PATH.format(review_id=review_id), {})

    # ------------------------------------------------------------------ #
    # Lookups                                                              #
    # ------------------------------------------------------------------ #

    def get_users(self, query: str = "") -> set[str]:
        """Return usernames matching ``query``. Usernames are case-sensitive."""
        payload = self._get(
            _GET_USERS_PATH,
            {"q": query, "limit": _QUERY_LIMIT, "timestamp": _timestamp(), "fullname": "0"},
        )
        if payload is None:
            logger.warning("Review Board user query for %r failed", query)
            return set()
        return {u["username"] for u in payload.get("users", []) if isinstance(u, dict) and "username" in u}

    def get_groups(self, query: str = "") -> set[str]:
        """Return group names matching ``query``. Group names are case-sensitive."""
        payload = self._get(
            _GET_GROUPS_PATH,
            {"q": query, "limit": _QUERY_LIMIT, "timestamp": _timestamp(), "displayname": "0"},
        )
        if payload is None:
            logger.warning("Review Board group query for %r failed", query)
            return set()
        return {g["name"] for g in payload.get("groups", []) if isinstance(g, dict) and "name" in g}

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------ #
    # Transport                                                            #
    # ------------------------------------------------------------------ #

    def _post(self, path: str, data: dict) -> bool:
        return self._call("POST", path, data=data) is not None

    def _get(self, path: str, params: dict) -> dict | None:
        return self._call("GET", path, params=params)

    def _call(self, method: str, path: str, **kwargs) -> dict | None:
        url = self.base_url + path
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Review Board %s %s failed: %s", method, path, e)
            return None

        if not 200 <= response.status_code < 400:
            logger.warning("Review Board %s %s returned HTTP %d", method, path, response.status_code)
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Review Board %s %s returned a non-JSON body: %s", method, path, response.text[:200])
            return None

        stat = payload.get("stat") if isinstance(payload, dict) else None
        if str(stat).strip().lower() != _STATUS_OK:
            logger.warning("Review Board %s %s returned stat=%r: %s", method, path, stat, payload)
            return None
        return payload


def _timestamp() -> str:
    # Review Board's legacy API caches query results without a cache buster.
    return str(int(time.time() * 1000))

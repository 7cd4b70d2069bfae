"""Decide what to do with a changelist: skip it, create a review, or update one."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from rblink_core.models import ActionDirective, Build

logger = logging.getLogger(__name__)

NEVER_STALE = -1


def find_previous_review(
    build: Build | None,
    key: str | None,
    stale_days: int = NEVER_STALE,
    now: datetime | None = None,
) -> int | None:
    """Walk back from ``build`` and return the review ID last recorded for ``key``.

    Only the first matching outcome of each build is considered. If it is
    stale the search moves on to the previous build rather than giving up, so
    an older, still-fresh mapping can win. The deadline is measured from the
    timestamp of the build that holds the match.
    """
    if build is None or not key:
        return None

    now = now or datetime.now(timezone.utc)
    visited = 0
    while build is not None:
        visited += 1
        for outcome in build.outcomes:
            if not outcome.matches(key):
                continue
            if stale_days == NEVER_STALE or now < build.timestamp + timedelta(days=stale_days):
                logger.debug(
                    "Found review request #%d for %s in build #%d (%d build(s) searched)",
                    outcome.review_id,
                    key,
                    build.number,
                    visited,
                )
                return outcome.review_id
            logger.debug("Review request #%d for %s in build #%d is stale", outcome.review_id, key, build.number)
            break
        build = build.previous

    return None


def resolve_directive(
    message: str | None,
    key: str | None,
    history: Build | None,
    skip_unflagged: bool = False,
    force_update_override: bool = False,
    stale_days: int = NEVER_STALE,
    now: datetime | None = None,
) -> ActionDirective:
    """Return the action requested by ``message``, falling back to policy.

    An explicit token always wins. Without one, a change that would be
    skipped by default is promoted to an update when a review already exists
    for its key, unless ``force_update_override`` demands an explicit
    RB_UPDATE.
    """
    default = ActionDirective.SKIP if skip_unflagged else ActionDirective.NONE
    if not message:
        return default

    upper = message.upper()
    for directive in ActionDirective:
        if directive.value in upper:
            return directive

    if default is ActionDirective.SKIP and not force_update_override:
        if find_previous_review(history, key, stale_days, now) is not None:
            return ActionDirective.FORCE_UPDATE
    return default

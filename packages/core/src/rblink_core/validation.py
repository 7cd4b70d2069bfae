"""Sanity checks for a publisher configuration before it is used in CI."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass

from rblink_core.config import parse_flag, split_list
from rblink_core.errors import ConfigurationError

_FLAGS = (
    "author_as_reviewer",
    "publish_reviews",
    "skip_unflagged_changes",
    "force_update_override",
    "fail_build_on_error",
)


@dataclass
class Problem:
    field: str
    message: str
    level: str = "error"  # "error" | "warning"


def validate_config(config: dict, client=None) -> list[Problem]:
    """Return every problem found in ``config``; an empty list means it is usable.

    Reviewer and group names are only checked when a ReviewboardClient is
    given, since that needs a live server.
    """
    problems: list[Problem] = []

    pattern = config.get("key_pattern")
    if pattern:
        try:
            re.compile(pattern)
        except re.error as e:
            problems.append(Problem("key_pattern", f"Regular expression is not valid: {e}"))

    stale = config.get("days_before_stale_review")
    if stale is not None:
        try:
            if int(stale) < -1:
                problems.append(Problem("days_before_stale_review", "Cannot be less than -1."))
        except (TypeError, ValueError):
            problems.append(Problem("days_before_stale_review", f"Not an integer: {stale!r}"))

    if not config.get("url"):
        problems.append(Problem("url", "Review Board URL must be supplied."))
    if not config.get("username"):
        problems.append(Problem("username", "Review Board username must be supplied."))

    cmd_path = config.get("cmd_path")
    if not cmd_path:
        problems.append(Problem("cmd_path", "Path to post-review must be supplied."))
    elif shutil.which(cmd_path) is None:
        problems.append(Problem("cmd_path", f"{cmd_path} is not an executable on this machine."))

    flags = {}
    for name in _FLAGS:
        try:
            flags[name] = parse_flag(config.get(name), name=name)
        except ConfigurationError as e:
            problems.append(Problem(name, str(e)))

    if flags.get("force_update_override") and not flags.get("skip_unflagged_changes"):
        problems.append(
            Problem(
                "force_update_override",
                "Only active when skip_unflagged_changes is enabled; this setting will be ignored.",
                level="warning",
            )
        )

    if client is not None:
        for user in split_list(config.get("default_reviewers")):
            problem = _check_name("default_reviewers", "Reviewer", user, client.get_users(user))
            if problem:
                problems.append(problem)
        for group in split_list(config.get("default_groups")):
            problem = _check_name("default_groups", "Group", group, client.get_groups(group))
            if problem:
                problems.append(problem)

    return problems


def _check_name(field: str, kind: str, name: str, matches: set[str]) -> Problem | None:
    # Review Board matches queries by prefix, so an exact, unique hit is required.
    if not matches:
        return Problem(field, f'{kind} "{name}" was not found in Review Board. Names are case-sensitive.')
    if len(matches) > 1:
        if name in matches:
            return None
        return Problem(field, f'{kind} "{name}" matched more than one entry: {", ".join(sorted(matches))}')
    if name in matches:
        return None
    return Problem(field, f'{kind} "{name}" did not match exactly. Did you mean {next(iter(matches))}?')

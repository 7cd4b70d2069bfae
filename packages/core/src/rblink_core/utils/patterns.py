"""Pattern helpers for change descriptions and post-review output."""

from __future__ import annotations

import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

# post-review prints this once a review request was created or updated:
#   Review request #36 posted.
REVIEW_ID_PATTERN = re.compile(r"[\w\s.]+#([0-9]+)[\w\s.]+")

# Failed create/update attempts report the review request ID first:
#   Error 123: Invalid 400
#   Error 42: Not Found
HTTP_ERROR_PATTERN = re.compile(r"[a-zA-Z\s]+(\d+):[a-zA-Z\s]+(\d+)?")


class ValueType(Enum):
    LONG = "long"
    STRING = "string"


_PARSERS = {
    ValueType.LONG: int,
    ValueType.STRING: str,
}


def match_pattern(
    text: str | None,
    pattern: re.Pattern,
    group: int,
    value_type: ValueType = ValueType.LONG,
):
    """Match ``pattern`` at the start of ``text`` and return one group, converted.

    Returns None when the text is blank, the pattern does not match at the
    start of the text, the group does not exist or did not take part in the
    match, or the group cannot be converted to ``value_type``.
    """
    if text is None or not text.strip():
        return None

    match = pattern.match(text)
    if match is None or pattern.groups < group:
        return None

    raw = match.group(group)
    if raw is None:
        return None
    try:
        return _PARSERS[value_type](raw)
    except ValueError:
        logger.debug("Could not convert %r to %s", raw, value_type.value)
        return None


def compile_key_pattern(expression: str | None) -> re.Pattern | None:
    """Compile the configured correlation key expression.

    The expression is wrapped in a capture group so group 1 is always the
    whole key, whether or not the expression defines groups of its own.
    Returns None for an empty or invalid expression.
    """
    if not expression:
        return None
    try:
        return re.compile(f"({expression})")
    except re.error as e:
        logger.warning("Invalid correlation key pattern %r: %s", expression, e)
        return None


def extract_key(message: str | None, pattern: re.Pattern | None) -> str | None:
    """Return the correlation key at the start of ``message``, or None."""
    if pattern is None or not message:
        return None

    subject = message.strip()
    logger.debug("Matching pattern to change description: %s -> %s", pattern.pattern, subject)
    key = match_pattern(subject, pattern, 1, ValueType.STRING)
    if key:
        logger.debug("Correlation key found in change description: %s", key)
        return key

    logger.debug("No correlation key in change description.")
    return None

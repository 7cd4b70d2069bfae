"""Review Board credential resolution with an RBTools fallback.

Resolution order (stops at first success, per value):
  1. REVIEWBOARD_USERNAME / REVIEWBOARD_PASSWORD environment variables
     (already merged into the config by load_config)
  2. `username` from .rblink.yml
  3. USERNAME / PASSWORD in ~/.reviewboardrc, the file RBTools itself reads,
     so agents that can already run post-review need no extra setup
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_RC_SETTING_RE = re.compile(r"""^\s*(USERNAME|PASSWORD)\s*=\s*(['"])(.*?)\2\s*$""", re.MULTILINE)


def read_reviewboardrc(path: str | Path | None = None) -> dict[str, str]:
    """Return the USERNAME/PASSWORD settings of an RBTools config file.

    Missing or unreadable files yield an empty dict; never raises.
    """
    if path is None:
        path = os.environ.get("RBTOOLS_CONFIG_PATH") or Path.home() / ".reviewboardrc"
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        return {}
    return {m.group(1).lower(): m.group(3) for m in _RC_SETTING_RE.finditer(text)}


def resolve_credentials(config: dict, rc_path: str | Path | None = None) -> dict:
    """Fill in ``username`` and ``password`` from ~/.reviewboardrc when still unset."""
    if config.get("username") and config.get("password"):
        return config

    rc = read_reviewboardrc(rc_path)
    for key in ("username", "password"):
        if not config.get(key) and rc.get(key):
            config[key] = rc[key]
            logger.debug("Resolved Review Board %s from .reviewboardrc.", key)
    return config

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from rblink_core.errors import ConfigurationError

DEFAULT_CONFIG: dict = {
    "url": None,
    "username": None,
    "cmd_path": "post-review",
    "scm_client": None,  # passed to post-review as --scm-client when set
    "command_timeout": 300,  # seconds; 0 or null waits forever
    "key_pattern": None,  # e.g. "[A-Z]+-[0-9]+"; None = publish nothing
    "days_before_stale_review": -1,  # -1 = never stale
    "default_reviewers": "",
    "default_groups": "",
    "author_as_reviewer": True,
    "publish_reviews": True,
    "skip_unflagged_changes": False,
    "force_update_override": False,
    "fail_build_on_error": False,
    "store": "noop",
    "store_path": ".rblink.db",
    "gist_id": None,
    "keep_builds": None,  # None = keep every build
}


def load_config(config_path: str = ".rblink.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .rblink.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Credentials never live in the YAML file
    if os.environ.get("REVIEWBOARD_USERNAME"):
        config["username"] = os.environ["REVIEWBOARD_USERNAME"]
    config["password"] = os.environ.get("REVIEWBOARD_PASSWORD")
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0", ""}


def parse_flag(value, default: bool = False, name: str = "value") -> bool:
    """Read a yes/no setting strictly; quoted YAML such as "false" means False.

    Raises ConfigurationError for anything that is not recognisably a boolean.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ConfigurationError(f"{name}: expected true or false, got {value!r}.")


def split_list(value) -> list[str]:
    """Normalise a comma-separated string (or YAML list) into a list of names."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [v.strip() for v in value if v and v.strip()]


@dataclass
class ReviewboardSettings:
    """Where Review Board lives and how post-review is run."""

    url: str | None
    username: str | None
    password: str | None
    cmd_path: str | None = "post-review"
    scm_client: str | None = None
    command_timeout: float | None = 300

    @classmethod
    def from_config(cls, config: dict) -> "ReviewboardSettings":
        return cls(
            url=config.get("url"),
            username=config.get("username"),
            password=config.get("password"),
            cmd_path=config.get("cmd_path"),
            scm_client=config.get("scm_client"),
            command_timeout=config.get("command_timeout") or None,
        )

    def is_configured(self) -> bool:
        return bool(self.url and self.cmd_path)


@dataclass
class PublisherOptions:
    """Per-job publishing policy."""

    key_pattern: str | None = None
    days_before_stale_review: int = -1
    default_reviewers: list[str] | None = None
    default_groups: list[str] | None = None
    author_as_reviewer: bool = True
    publish_reviews: bool = True
    skip_unflagged_changes: bool = False
    force_update_override: bool = False
    fail_build_on_error: bool = False

    @classmethod
    def from_config(cls, config: dict) -> "PublisherOptions":
        stale = config.get("days_before_stale_review")
        return cls(
            key_pattern=config.get("key_pattern"),
            days_before_stale_review=-1 if stale is None else int(stale),
            default_reviewers=split_list(config.get("default_reviewers")),
            default_groups=split_list(config.get("default_groups")),
            author_as_reviewer=parse_flag(config.get("author_as_reviewer"), True, "author_as_reviewer"),
            publish_reviews=parse_flag(config.get("publish_reviews"), True, "publish_reviews"),
            skip_unflagged_changes=parse_flag(config.get("skip_unflagged_changes"), False, "skip_unflagged_changes"),
            force_update_override=parse_flag(config.get("force_update_override"), False, "force_update_override"),
            fail_build_on_error=parse_flag(config.get("fail_build_on_error"), False, "fail_build_on_error"),
        )

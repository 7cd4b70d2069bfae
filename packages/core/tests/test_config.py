"""Tests for configuration loading."""

import pytest

from rblink_core.config import PublisherOptions, ReviewboardSettings, load_config, parse_flag, split_list
from rblink_core.errors import ConfigurationError


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["url"] is None
    assert config["cmd_path"] == "post-review"
    assert config["command_timeout"] == 300
    assert config["days_before_stale_review"] == -1
    assert config["author_as_reviewer"] is True
    assert config["publish_reviews"] is True
    assert config["skip_unflagged_changes"] is False
    assert config["store"] == "noop"


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".rblink.yml"
    cfg.write_text("url: https://reviews.example.com\nkey_pattern: '[A-Z]+-[0-9]+'\ndays_before_stale_review: 7\n")
    config = load_config(config_path=str(cfg))
    assert config["url"] == "https://reviews.example.com"
    assert config["key_pattern"] == "[A-Z]+-[0-9]+"
    assert config["days_before_stale_review"] == 7


def test_empty_config_file_keeps_defaults(tmp_path):
    cfg = tmp_path / ".rblink.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["cmd_path"] == "post-review"


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".rblink.yml"
    cfg.write_text("cmd_path: /usr/bin/post-review\n")
    config = load_config(config_path=str(cfg), cli_overrides={"cmd_path": "/opt/rbtools/post-review"})
    assert config["cmd_path"] == "/opt/rbtools/post-review"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".rblink.yml"
    cfg.write_text("cmd_path: /usr/bin/post-review\n")
    config = load_config(config_path=str(cfg), cli_overrides={"cmd_path": None})
    assert config["cmd_path"] == "/usr/bin/post-review"


def test_env_vars_loaded(monkeypatch, tmp_path):
    monkeypatch.setenv("REVIEWBOARD_USERNAME", "builder")
    monkeypatch.setenv("REVIEWBOARD_PASSWORD", "s3cret")
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    cfg = tmp_path / ".rblink.yml"
    cfg.write_text("username: someone-else\n")
    config = load_config(config_path=str(cfg))
    assert config["username"] == "builder"
    assert config["password"] == "s3cret"
    assert config["github_token"] == "gh-token"


def test_password_never_read_from_file(monkeypatch, tmp_path):
    monkeypatch.delenv("REVIEWBOARD_PASSWORD", raising=False)
    cfg = tmp_path / ".rblink.yml"
    cfg.write_text("password: from-file\n")
    config = load_config(config_path=str(cfg))
    assert config["password"] is None


def test_split_list():
    assert split_list("alice, bob,,carol ") == ["alice", "bob", "carol"]
    assert split_list(["alice", " bob "]) == ["alice", "bob"]
    assert split_list("") == []
    assert split_list(None) == []


def test_settings_from_config():
    settings = ReviewboardSettings.from_config(
        {"url": "https://rb", "username": "u", "password": "p", "cmd_path": "post-review", "command_timeout": 0}
    )
    assert settings.is_configured()
    assert settings.command_timeout is None
    assert settings.scm_client is None


def test_settings_not_configured_without_url():
    assert not ReviewboardSettings(url=None, username="u", password="p").is_configured()
    assert not ReviewboardSettings(url="https://rb", username="u", password="p", cmd_path="").is_configured()


def test_options_from_config():
    options = PublisherOptions.from_config(
        {
            "key_pattern": "[A-Z]+-[0-9]+",
            "days_before_stale_review": "3",
            "default_reviewers": "alice,bob",
            "default_groups": ["core"],
            "skip_unflagged_changes": True,
        }
    )
    assert options.days_before_stale_review == 3
    assert options.default_reviewers == ["alice", "bob"]
    assert options.default_groups == ["core"]
    assert options.author_as_reviewer is True
    assert options.skip_unflagged_changes is True
    assert options.force_update_override is False


def test_options_missing_stale_days_means_never_stale():
    assert PublisherOptions.from_config({"days_before_stale_review": None}).days_before_stale_review == -1


def test_parse_flag_reads_quoted_values():
    assert parse_flag("false") is False
    assert parse_flag(" No ") is False
    assert parse_flag("TRUE") is True
    assert parse_flag(0) is False
    assert parse_flag(None, True) is True


def test_parse_flag_rejects_other_values():
    with pytest.raises(ConfigurationError, match="publish_reviews"):
        parse_flag("sometimes", name="publish_reviews")
    with pytest.raises(ConfigurationError):
        parse_flag(2)


def test_options_quoted_false_from_yaml(tmp_path):
    cfg = tmp_path / ".rblink.yml"
    cfg.write_text('publish_reviews: "false"\nskip_unflagged_changes: "yes"\n')
    options = PublisherOptions.from_config(load_config(config_path=str(cfg)))
    assert options.publish_reviews is False
    assert options.skip_unflagged_changes is True

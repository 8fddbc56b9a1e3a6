import pytest

from staleboards.config import (
    DEFAULT_IGNORED_ACTION_TYPES,
    AuditConfig,
    build_audit_config,
    get_config_value,
    load_app_config,
    validate_config,
)
from staleboards.errors import ConfigError


def _load(path="config.yaml"):
    return load_app_config(path, load_env_file=False)


def test_short_env_names_supply_credentials(clean_env, monkeypatch):
    monkeypatch.setenv("KEY", "k1")
    monkeypatch.setenv("TOKEN", "t1")
    monkeypatch.setenv("ORG", "acme")

    config = build_audit_config(_load())

    assert config == AuditConfig(api_key="k1", api_token="t1", org="acme")
    assert config.stale_after_hours == 2160
    assert config.ignored_action_types == tuple(DEFAULT_IGNORED_ACTION_TYPES)


def test_namespaced_env_names_win_over_short_names(clean_env, monkeypatch):
    monkeypatch.setenv("KEY", "short")
    monkeypatch.setenv("TRELLO_KEY", "long")
    monkeypatch.setenv("TOKEN", "t")
    monkeypatch.setenv("ORG", "acme")

    assert build_audit_config(_load()).api_key == "long"


@pytest.mark.parametrize("missing", ["KEY", "TOKEN", "ORG"])
def test_missing_required_value_is_fatal(clean_env, monkeypatch, missing):
    for name in ("KEY", "TOKEN", "ORG"):
        if name != missing:
            monkeypatch.setenv(name, "value")

    with pytest.raises(ConfigError, match="Required key"):
        build_audit_config(_load())


def test_blank_required_value_counts_as_missing(clean_env, monkeypatch):
    monkeypatch.setenv("KEY", "   ")
    monkeypatch.setenv("TOKEN", "t")
    monkeypatch.setenv("ORG", "acme")

    with pytest.raises(ConfigError, match="trello.key"):
        build_audit_config(_load())


def test_all_problems_reported_together(clean_env):
    with pytest.raises(ConfigError) as excinfo:
        build_audit_config(_load())
    message = str(excinfo.value)
    assert "trello.key" in message
    assert "trello.token" in message
    assert "trello.org" in message


def test_yaml_file_then_env_overrides(clean_env, monkeypatch):
    (clean_env / "config.yaml").write_text(
        "trello:\n"
        "  key: yaml-key\n"
        "  token: yaml-token\n"
        "  org: yaml-org\n"
        "  request_timeout: 30\n"
        "audit_settings:\n"
        "  stale_after_hours: 720\n"
        "  ignored_action_types: [makeAdminOfBoard]\n"
        "app_settings:\n"
        "  log_level: info\n"
    )
    monkeypatch.setenv("ORG", "env-org")
    monkeypatch.setenv("AUDIT_SETTINGS_PROGRESS_MARKER", "#")

    config = build_audit_config(_load())

    assert config.api_key == "yaml-key"
    assert config.org == "env-org"
    assert config.request_timeout == 30
    assert config.stale_after_hours == 720
    assert config.ignored_action_types == ("makeAdminOfBoard",)
    assert config.progress_marker == "#"
    assert config.log_level == "INFO"


def test_typed_env_values(clean_env, monkeypatch):
    monkeypatch.setenv("AUDIT_SETTINGS_STALE_AFTER_HOURS", "48")
    monkeypatch.setenv("AUDIT_SETTINGS_IGNORED_ACTION_TYPES", "a, b,,c")
    monkeypatch.setenv("APP_SETTINGS_DEBUG_MODE", "yes")

    config = _load()

    assert get_config_value(config, "audit_settings.stale_after_hours") == 48
    assert get_config_value(config, "audit_settings.ignored_action_types") == ["a", "b", "c"]
    assert get_config_value(config, "app_settings.debug_mode") is True


def test_uncastable_env_value_keeps_previous_value(clean_env, monkeypatch):
    monkeypatch.setenv("AUDIT_SETTINGS_STALE_AFTER_HOURS", "ninety days")

    config = _load()

    assert get_config_value(config, "audit_settings.stale_after_hours") == 2160


def test_unparseable_yaml_is_fatal(clean_env):
    (clean_env / "config.yaml").write_text("trello: [unclosed\n")

    with pytest.raises(ConfigError, match="Could not parse"):
        _load()


def test_non_mapping_yaml_is_fatal(clean_env):
    (clean_env / "config.yaml").write_text("- just\n- a list\n")

    with pytest.raises(ConfigError, match="mapping"):
        _load()


def test_env_file_is_loaded(clean_env):
    (clean_env / ".env").write_text("KEY=dot-key\nTOKEN=dot-token\nORG=dot-org\n")

    config = build_audit_config(load_app_config(str(clean_env / "config.yaml")))

    assert (config.api_key, config.api_token, config.org) == (
        "dot-key",
        "dot-token",
        "dot-org",
    )


@pytest.mark.parametrize(
    "path, value, fragment",
    [
        ("audit_settings.stale_after_hours", 0, "positive"),
        ("audit_settings.stale_after_hours", "90d", "type int"),
        ("audit_settings.stale_after_hours", True, "type int"),
        ("trello.request_timeout", -1, "positive"),
        ("app_settings.log_level", "LOUD", "must be one of"),
        ("audit_settings.ignored_action_types", ["ok", ""], "non-empty strings"),
        ("audit_settings.ignored_action_types", "addMemberToBoard", "type list"),
    ],
)
def test_validate_config_rejects_bad_values(path, value, fragment):
    config = {
        "trello": {"key": "k", "token": "t", "org": "o"},
        "audit_settings": {},
        "app_settings": {},
    }
    section, key = path.split(".")
    config[section][key] = value

    with pytest.raises(ConfigError, match=fragment):
        validate_config(config)


def test_get_config_value_dot_paths():
    config = {"trello": {"org": "acme"}}
    assert get_config_value(config, "trello.org") == "acme"
    assert get_config_value(config, "trello.missing", "fallback") == "fallback"
    assert get_config_value(config, "trello.org.deeper") is None

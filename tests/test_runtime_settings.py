from shared.runtime_settings import (
    DEFAULT_DEV_CORS_ALLOW_ORIGINS,
    env_flag,
    load_security_settings,
    load_settings,
    parse_cors_allowlist,
)


def test_env_flag_truthy_and_falsey() -> None:
    assert env_flag("X", default=False, environ={"X": "true"}) is True
    assert env_flag("X", default=True, environ={"X": "0"}) is False
    assert env_flag("X", default=True, environ={}) is True


def test_parse_cors_allowlist_uses_fallback_when_empty() -> None:
    assert parse_cors_allowlist("") == list(DEFAULT_DEV_CORS_ALLOW_ORIGINS)


def test_parse_cors_allowlist_parses_csv_values() -> None:
    raw = " http://localhost:3000, https://example.com "
    assert parse_cors_allowlist(raw) == ["http://localhost:3000", "https://example.com"]


def test_load_security_settings_reads_expected_keys() -> None:
    settings = load_security_settings(
        {
            "NEXUS_DEV_MODE": "false",
            "NEXUS_API_TOKEN": "abc123",
            "NEXUS_CORS_ALLOW_ORIGINS": "https://app.example.com",
        }
    )
    assert settings.dev_mode is False
    assert settings.api_token == "abc123"
    assert settings.cors_allow_origins == ["https://app.example.com"]


def test_load_settings_defaults() -> None:
    settings = load_settings({})
    assert settings.store_url == "http://localhost:3001/api"
    assert settings.admin_scope == "admin"
    assert settings.store_timeout == 10.0
    assert settings.offline is False
    assert settings.interpreter_enabled is True
    assert settings.interpreter_timeout == 60.0


def test_load_settings_overrides() -> None:
    settings = load_settings(
        {
            "NEXUS_STORE_URL": "https://nexus.example.com/api/",
            "NEXUS_ADMIN_SCOPE": "gm",
            "NEXUS_STORE_TIMEOUT": "2.5",
            "NEXUS_OFFLINE": "yes",
            "NEXUS_CACHE_PATH": "/tmp/n.db",
            "NEXUS_INTERPRETER_ENABLED": "off",
            "NEXUS_INTERPRETER_TIMEOUT": "15",
        }
    )
    assert settings.store_url == "https://nexus.example.com/api"
    assert settings.admin_scope == "gm"
    assert settings.store_timeout == 2.5
    assert settings.offline is True
    assert settings.cache_path == "/tmp/n.db"
    assert settings.interpreter_enabled is False
    assert settings.interpreter_timeout == 15.0


def test_bad_timeout_falls_back() -> None:
    assert load_settings({"NEXUS_STORE_TIMEOUT": "soon"}).store_timeout == 10.0

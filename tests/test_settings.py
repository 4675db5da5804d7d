"""Tests for settings persistence, overrides and secret storage."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from minty.services.settings import SecretVault, Settings, SettingsStore, redact_secret


def test_defaults() -> None:
    settings = Settings()

    assert settings.model == "gpt-4o"
    assert settings.temperature == 0.1
    assert settings.max_attempts == 1
    assert settings.line_policy == "skip"
    assert not settings.has_api_key


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    assert SettingsStore(tmp_path / "settings.json").load() == Settings()


def test_api_key_is_encrypted_on_disk(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    store = SettingsStore(path)

    store.save(Settings(api_key="sk-secret-value", model="gpt-test"))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert "api_key" not in payload
    assert payload["api_key_ciphertext"].startswith("fernet:")
    assert "sk-secret-value" not in path.read_text(encoding="utf-8")
    assert path.with_suffix(".key").exists()

    loaded = SettingsStore(path).load()
    assert loaded.api_key == "sk-secret-value"
    assert loaded.model == "gpt-test"


def test_plaintext_key_is_migrated(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"api_key": "sk-plain", "version": 1}), encoding="utf-8")

    settings = SettingsStore(path).load()

    assert settings.api_key == "sk-plain"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert "api_key" not in payload
    assert "api_key_ciphertext" in payload


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{oops", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_unknown_fields_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"theme": "dark", "model": "m", "version": 1}), encoding="utf-8")

    assert SettingsStore(path).load().model == "m"


def test_cli_overrides(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")

    settings = store.load(overrides={"model": "from-cli", "unknown": 1, "temperature": None})

    assert settings.model == "from-cli"
    assert settings.temperature == 0.1


def test_none_override_clears_optional_field(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(Settings(organization="acme"))

    assert store.load().organization == "acme"
    assert store.load(overrides={"organization": None}).organization is None


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MINTY_API_KEY", "sk-env")
    monkeypatch.setenv("MINTY_MODEL", "env-model")
    monkeypatch.setenv("MINTY_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("MINTY_REQUEST_TIMEOUT", "12.5")
    monkeypatch.setenv("MINTY_MAX_TOOL_ITERATIONS", "4")
    monkeypatch.setenv("MINTY_LINE_POLICY", "ABORT")

    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"model": "cli-model"})

    assert settings.api_key == "sk-env"
    assert settings.model == "env-model"
    assert settings.debug_logging is True
    assert settings.request_timeout == 12.5
    assert settings.max_tool_iterations == 4
    assert settings.line_policy == "abort"


def test_invalid_env_numbers_are_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MINTY_TEMPERATURE", "warm")
    monkeypatch.setenv("MINTY_MAX_TOOL_ITERATIONS", "many")

    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.temperature == 0.1
    assert settings.max_tool_iterations == 8


def test_unknown_line_policy_falls_back_to_skip(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"line_policy": "panic"})

    assert settings.line_policy == "skip"


def test_set_and_clear_api_key(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "settings.json"
    store = SettingsStore(path)
    store.save(Settings(model="kept"))
    monkeypatch.setenv("MINTY_MODEL", "env-only")

    store.set_api_key("  sk-new  ")

    monkeypatch.delenv("MINTY_MODEL")
    loaded = store.load()
    assert loaded.api_key == "sk-new"
    assert loaded.model == "kept"

    store.clear_api_key()

    assert store.load().api_key == ""
    assert "api_key_ciphertext" not in json.loads(path.read_text(encoding="utf-8"))


def test_vault_round_trip(tmp_path: Path) -> None:
    vault = SecretVault(key_path=tmp_path / "vault.key")

    token = vault.encrypt("hello")

    assert token.startswith("fernet:")
    assert vault.decrypt(token) == "hello"
    assert vault.decrypt("") == ""
    assert vault.encrypt("") == ""


def test_vault_rejects_foreign_key(tmp_path: Path) -> None:
    token = SecretVault(key_path=tmp_path / "a.key").encrypt("hello")

    with pytest.raises(ValueError):
        SecretVault(key_path=tmp_path / "b.key").decrypt(token)


def test_undecryptable_key_loads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(api_key="sk-secret"))
    path.with_suffix(".key").unlink()

    assert SettingsStore(path).load().api_key == ""


def test_conversions() -> None:
    settings = Settings(api_key="k", model="m", max_tool_iterations=3, tool_timeout=5.0, temperature=0.4)

    client_settings = settings.to_client_settings()
    config = settings.to_conversation_config()

    assert client_settings.api_key == "k"
    assert client_settings.max_attempts == 1
    assert config.max_iterations == 3
    assert config.tool_timeout_seconds == 5.0
    assert config.temperature == 0.4
    assert config.model_name == "m"


@pytest.mark.parametrize(
    ("value", "expected"),
    [("", ""), ("abcd", "****"), ("sk-123456", "sk*****56")],
)
def test_redact_secret(value: str, expected: str) -> None:
    assert redact_secret(value) == expected

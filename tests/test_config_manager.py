"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from printshelf.config import (
    ConfigError,
    ConfigManager,
    PrintshelfConfig,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(env={})


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".printshelf" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert text.startswith("# printshelf configuration file")
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, PrintshelfConfig)
    assert config.watch.debounce_seconds == pytest.approx(20.0)


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.save({"llm": {"model": "claude-sonnet"}, "watch": {"max_wait_seconds": 60}})

    env = {"PRINTSHELF__LLM__TEMPERATURE": "0.7", "PRINTSHELF__WATCH__DEBOUNCE_SECONDS": "5"}
    cli = {"llm.temperature": 0.2}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.llm.model == "claude-sonnet"
    assert config.watch.max_wait_seconds == pytest.approx(60)
    assert config.watch.debounce_seconds == pytest.approx(5)
    # CLI overrides take precedence over environment
    assert config.llm.temperature == pytest.approx(0.2)


def test_environment_is_ignored_when_disabled(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    manager = ConfigManager(env={"PRINTSHELF__SCANNING__DEDUPE_IMAGES": "false"})

    assert manager.load().scanning.dedupe_images is False
    assert manager.load(include_env=False).scanning.dedupe_images is True


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_set_value_persists_and_validates(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    updated = manager.set_value("llm.batch_size", 5)

    assert updated.llm.batch_size == 5
    assert manager.load_file_overrides()["llm"]["batch_size"] == 5

    with pytest.raises(ConfigError):
        manager.set_value("llm.batch_size", 0)
    assert manager.load(include_env=False).llm.batch_size == 5

    with pytest.raises(ConfigError):
        manager.set_value(" . ", 1)


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(PrintshelfConfig())

    assert flat["PRINTSHELF__LLM__PROVIDER"] == "anthropic"
    assert flat["PRINTSHELF__WATCH__DEBOUNCE_SECONDS"] == "20.0"
    assert flat["PRINTSHELF__LLM__API_KEY"] == "null"
    assert yaml.safe_load(flat["PRINTSHELF__SCANNING__IGNORED_PREFIXES"]) == [".", "!"]


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=PrintshelfConfig(),
            file_overrides={"watch": {"debounce_seconds": "not-a-number"}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=PrintshelfConfig(),
            cli_overrides={"scanning.follow_symlinks": True},
        )

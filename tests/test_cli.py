"""CLI tests exercising the printshelf commands end to end."""

from __future__ import annotations

import json
import os
from pathlib import Path

from click.testing import CliRunner

from printshelf.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    """Return an environment with HOME pointed at a temporary directory.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        dict[str, str]: Environment variables for CLI invocation.
    """
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    env["PRINTSHELF__LOGGING__LEVEL"] = "ERROR"
    return env


def _library(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    (root / "Toys" / "Dragon").mkdir(parents=True)
    (root / "Toys" / "Dragon" / "dragon.stl").write_text("solid", encoding="utf-8")
    (root / "Toys" / "gear.stl").write_text("solid", encoding="utf-8")
    return root


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Printshelf catalogs a folder tree" in result.output
    for command in ("scan", "ingest", "watcher", "settings", "loose", "designers"):
        assert command in result.output


def test_cli_scan_json_saves_model_directory(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = _library(tmp_path)

    result = runner.invoke(cli, ["scan", str(root), "--json"], env=env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["root"] == str(root.resolve())
    assert payload["summary"]["mode"] == "full_sync"
    assert payload["summary"]["models_found"] == 1
    assert payload["summary"]["loose_files_found"] == 1

    status = runner.invoke(cli, ["status", "--json"], env=env)
    assert status.exit_code == 0, status.output
    status_payload = json.loads(status.output)
    assert status_payload["counts"]["models"] == 1
    assert status_payload["counts"]["categories"] == ["Toys"]
    assert status_payload["directories"]["model_directory"] == str(root.resolve())
    assert status_payload["watcher_enabled"] is False

    loose = runner.invoke(cli, ["loose", "list", "--json"], env=env)
    assert loose.exit_code == 0, loose.output
    assert [entry["filename"] for entry in json.loads(loose.output)["loose_files"]] == [
        "gear.stl"
    ]


def test_cli_scan_quiet_suppresses_output(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = _library(tmp_path)

    result = runner.invoke(cli, ["scan", str(root), "--quiet"], env=env)

    assert result.exit_code == 0, result.output
    assert result.output.strip() == ""


def test_cli_json_errors_use_error_codes(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    rescan = runner.invoke(cli, ["rescan", "1", "--json"], env=env)
    assert rescan.exit_code == 1
    assert json.loads(rescan.output)["error"]["code"] == "config_error"

    ingest = runner.invoke(cli, ["ingest", "scan", "--json"], env=env)
    assert ingest.exit_code == 1
    error = json.loads(ingest.output)["error"]
    assert error["code"] == "config_error"
    assert "Ingestion directory not configured" in error["message"]


def test_cli_model_commands_report_missing_models(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["model", "favorite", "42"], env=env)

    assert result.exit_code == 1
    assert "Model not found: 42" in result.output


def test_cli_settings_mask_api_key(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    stored = runner.invoke(cli, ["settings", "set", "anthropic_api_key", "sk-abcdef1234"], env=env)
    assert stored.exit_code == 0, stored.output
    assert "sk-abcdef1234" not in stored.output

    masked = runner.invoke(cli, ["settings", "get", "anthropic_api_key"], env=env)
    assert masked.output.strip() == "*********1234"

    revealed = runner.invoke(cli, ["settings", "get", "anthropic_api_key", "--reveal"], env=env)
    assert revealed.output.strip() == "sk-abcdef1234"

    listed = runner.invoke(cli, ["settings", "list", "--json"], env=env)
    assert json.loads(listed.output) == {"anthropic_api_key": "*********1234"}


def test_cli_settings_validate_values(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    missing_dir = runner.invoke(
        cli, ["settings", "set", "model_directory", str(tmp_path / "missing")], env=env
    )
    assert missing_dir.exit_code != 0
    assert "Directory does not exist" in missing_dir.output

    bad_bool = runner.invoke(cli, ["settings", "set", "file_watcher_enabled", "yes"], env=env)
    assert bad_bool.exit_code != 0

    unknown = runner.invoke(cli, ["settings", "set", "theme", "dark"], env=env)
    assert unknown.exit_code == 2


def test_cli_watcher_enable_persists_flag(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    enabled = runner.invoke(cli, ["watcher", "enable"], env=env)
    assert enabled.exit_code == 0, enabled.output

    status = runner.invoke(cli, ["watcher", "status", "--json"], env=env)
    payload = json.loads(status.output)
    assert payload["enabled"] is True
    assert payload["debounce_seconds"] == 20.0


def test_cli_ingest_import_moves_staged_folder(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = _library(tmp_path)
    staging = tmp_path / "staging"
    (staging / "Dragon Figurine").mkdir(parents=True)
    (staging / "Dragon Figurine" / "body.stl").write_text("solid", encoding="utf-8")

    assert runner.invoke(cli, ["scan", str(root), "--json"], env=env).exit_code == 0
    configured = runner.invoke(
        cli, ["settings", "set", "ingestion_directory", str(staging)], env=env
    )
    assert configured.exit_code == 0, configured.output

    suggestions = runner.invoke(cli, ["ingest", "scan", "--json"], env=env)
    assert suggestions.exit_code == 0, suggestions.output
    [item] = json.loads(suggestions.output)["items"]
    assert item["suggested_category"] == "Toys"

    result = runner.invoke(
        cli,
        ["ingest", "import", "--assign", str(staging / "Dragon Figurine"), "Toys", "--json"],
        env=env,
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["summary"] == {"succeeded": 1, "failed": 0}
    assert payload["results"][0]["model_id"] is not None
    assert (root / "Toys" / "Dragon Figurine" / "body.stl").exists()
    assert not (staging / "Dragon Figurine").exists()


def test_cli_designers_list_show_rename_and_delete(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = _library(tmp_path)
    (root / "Paid" / "JaneDoe" / "Castle").mkdir(parents=True)
    (root / "Paid" / "JaneDoe" / "Castle" / "castle.stl").write_text("solid", encoding="utf-8")
    assert runner.invoke(cli, ["scan", str(root), "--json"], env=env).exit_code == 0

    listed = runner.invoke(cli, ["designers", "list", "--json"], env=env)
    assert listed.exit_code == 0, listed.output
    [designer] = json.loads(listed.output)["designers"]
    assert (designer["name"], designer["model_count"]) == ("JaneDoe", 1)
    designer_id = str(designer["id"])

    shown = runner.invoke(cli, ["designers", "show", designer_id, "--json"], env=env)
    assert shown.exit_code == 0, shown.output
    assert [model["filename"] for model in json.loads(shown.output)["models"]] == ["Castle"]

    renamed = runner.invoke(cli, ["designers", "rename", designer_id, "Jane Doe"], env=env)
    assert renamed.exit_code == 0, renamed.output
    synced = runner.invoke(cli, ["designers", "sync", "--json"], env=env)
    assert synced.exit_code == 0, synced.output
    assert json.loads(synced.output) == {"created": 0, "linked": 0, "profiles_filled": 0}

    deleted = runner.invoke(cli, ["designers", "delete", designer_id], env=env)
    assert deleted.exit_code == 0, deleted.output
    assert "1 models unlinked" in deleted.output

    missing = runner.invoke(cli, ["designers", "show", designer_id, "--json"], env=env)
    assert missing.exit_code == 1
    assert json.loads(missing.output)["error"]["code"] == "not_found"


def test_cli_ingest_import_requires_items(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["ingest", "import"], env=_env_with_home(tmp_path))

    assert result.exit_code != 0
    assert "--assign" in result.output


def test_cli_config_set_and_view(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    updated = runner.invoke(
        cli, ["config", "set", "watch.debounce_seconds", "--value", "5"], env=env
    )
    assert updated.exit_code == 0, updated.output
    assert "Updated watch.debounce_seconds." in updated.output

    unchanged = runner.invoke(
        cli, ["config", "set", "watch.debounce_seconds", "--value", "5"], env=env
    )
    assert unchanged.exit_code == 0
    assert "No changes applied" in unchanged.output

    view = runner.invoke(cli, ["config", "view", "--no-env"], env=env)
    assert view.exit_code == 0
    assert "debounce_seconds: 5.0" in view.output

    invalid = runner.invoke(
        cli, ["config", "set", "watch.debounce_seconds", "--value", "-1"], env=env
    )
    assert invalid.exit_code != 0

"""Tests for configuration loading and overrides."""

from types import SimpleNamespace

from constants import Constants
from task_config import apply_cli_overrides, apply_config, configure, load_config


def test_load_missing_file(tmp_path):
    assert load_config(str(tmp_path / "missing.yml")) == {}
    assert load_config(None) == {}


def test_load_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("installer: [unclosed")
    assert load_config(str(path)) == {}


def test_load_non_mapping(tmp_path):
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n")
    assert load_config(str(path)) == {}


def test_apply_config_sections(tmp_path):
    path = tmp_path / "task.yml"
    path.write_text(
        "installer:\n"
        "  source_url: https://feed.example/v3/index.json\n"
        "  max_retries: '5'\n"
        "http:\n"
        "  timeout: 10\n"
        "cli:\n"
        "  artifact_name: Scans\n"
    )
    apply_config(load_config(str(path)))

    assert Constants.PACKAGE_SOURCE_URL == "https://feed.example/v3/index.json"
    assert Constants.INSTALL_MAX_RETRIES == 5
    assert Constants.REQUEST_TIMEOUT == 10
    assert Constants.ARTIFACT_NAME_DEFAULT == "Scans"


def test_invalid_values_ignored():
    apply_config({"installer": {"max_retries": "many"}, "http": "not-a-mapping"})
    assert Constants.INSTALL_MAX_RETRIES == 2


def test_cli_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "task.yml"
    path.write_text("installer:\n  max_retries: 7\n")
    monkeypatch.setenv("SECDEVOPS_CONFIG", str(path))

    configure(SimpleNamespace(CONFIG=None, PACKAGE_SOURCE="https://other/index.json", MAX_RETRIES=1))

    assert Constants.INSTALL_MAX_RETRIES == 1
    assert Constants.PACKAGE_SOURCE_URL == "https://other/index.json"


def test_cli_overrides_absent():
    apply_cli_overrides(SimpleNamespace())
    assert Constants.PACKAGE_SOURCE_URL == "https://api.nuget.org/v3/index.json"

"""
Tests for YAML configuration and environment overrides.
"""

from pathlib import Path

import pytest

from tools.settings import SettingsError, load_settings
from workflows import extract_honors


def test_defaults_without_config(tmp_path):
    settings = load_settings(tmp_path / "fehlt.yaml")

    assert settings.batch_size == 20
    assert settings.max_retries == 3
    assert settings.agent_timeout == 600.0
    assert settings.agent_command == ["pi", "--mode", "json", "-p"]
    assert settings.work_dir == Path("data/staging/runs")


def test_yaml_values(tmp_path):
    config = tmp_path / "pipeline.yaml"
    config.write_text(
        "scraper:\n"
        "  base_url: https://example.org/\n"
        "content:\n"
        "  concurrency: 2\n"
        "extraction:\n"
        "  batch_size: 7\n"
        "  agent_command: \"my-agent --json '{prompt_file}'\"\n",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert settings.base_url == "https://example.org"
    assert settings.concurrency == 2
    assert settings.batch_size == 7
    assert settings.agent_command == ["my-agent", "--json", "{prompt_file}"]


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    config = tmp_path / "pipeline.yaml"
    config.write_text("extraction:\n  batch_size: 7\n  max_retries: 5\n", encoding="utf-8")
    monkeypatch.setenv("EHRUNGEN_BATCH_SIZE", "3")
    monkeypatch.setenv("EHRUNGEN_MAX_RETRIES", "keine Zahl")
    monkeypatch.setenv("EHRUNGEN_AGENT_COMMAND", "agent -p")

    settings = load_settings(config)

    assert settings.batch_size == 3
    assert settings.max_retries == 5
    assert settings.agent_command == ["agent", "-p"]


def test_env_file_is_loaded(tmp_path, monkeypatch):
    env = tmp_path / ".env"
    env.write_text("# Kommentar\nEHRUNGEN_AGENT_TIMEOUT=12.5\n", encoding="utf-8")
    monkeypatch.setenv("EHRUNGEN_AGENT_TIMEOUT", "0")
    monkeypatch.delenv("EHRUNGEN_AGENT_TIMEOUT")

    settings = load_settings(tmp_path / "fehlt.yaml", env_path=env)

    assert settings.agent_timeout == 12.5


@pytest.mark.parametrize(
    "content",
    [
        "extraction: [unclosed\n",
        "- nur\n- eine Liste\n",
        "extraction:\n  agent_command: 42\n",
        "extraction:\n  batch_size: zwanzig\n",
        "content:\n  base_delay: [1]\n",
        "scraper:\n  timeout: null\n",
    ],
)
def test_invalid_config(tmp_path, content):
    config = tmp_path / "pipeline.yaml"
    config.write_text(content, encoding="utf-8")

    with pytest.raises(SettingsError):
        load_settings(config)


def test_workflow_reports_invalid_config(tmp_path):
    config = tmp_path / "kaputt.yaml"
    config.write_text("extraction:\n  batch_size: zwanzig\n", encoding="utf-8")
    source = tmp_path / "veranstaltungen_2024.json"
    source.write_text("[]", encoding="utf-8")

    assert extract_honors.main([str(source), "--config", str(config)]) == 1

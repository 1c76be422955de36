"""
Pytest configuration for the Ehrungen pipeline tests.
"""

import os

import pytest

from tools import run_log


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Run every test in its own directory with its own pipeline log."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("EHRUNGEN_"):
            monkeypatch.delenv(key, raising=False)
    run_log.configure_log_dir(tmp_path / "logs")
    yield tmp_path
    run_log.configure_log_dir(run_log.LOG_DIR)


@pytest.fixture
def honor_record():
    return {
        "url": "a",
        "isEhrung": True,
        "persons": [{"name": "Maria Müller", "gender": "female", "honor": "Ehrenring"}],
    }

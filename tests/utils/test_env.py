import os
from pathlib import Path
from unittest.mock import patch

import pytest

from utils.env import _find_project_root, env_float, env_int, env_str, load_project_dotenv

# --- _find_project_root --- #


def test_find_project_root_in_start_dir(tmp_path: Path):
    """pyproject.toml in the starting directory itself."""
    (tmp_path / "pyproject.toml").touch()
    assert _find_project_root(start=tmp_path) == tmp_path


def test_find_project_root_walks_upwards(tmp_path: Path):
    """pyproject.toml a few levels above the start directory."""
    (tmp_path / "pyproject.toml").touch()
    start_dir = tmp_path / "agents" / "nested" / "deeper"
    start_dir.mkdir(parents=True)
    assert _find_project_root(start=start_dir) == tmp_path


# --- load_project_dotenv --- #


@patch("utils.env.load_dotenv")
@patch("utils.env._find_project_root")
def test_load_project_dotenv_loads_existing_file(mock_find_root, mock_load_dotenv, tmp_path: Path):
    env_file = tmp_path / ".env"
    env_file.write_text("PHARMACY_ID=PHARMACY_777\n")
    mock_find_root.return_value = tmp_path

    assert load_project_dotenv() is True
    mock_load_dotenv.assert_called_once_with(dotenv_path=env_file, override=False)


@patch("utils.env.load_dotenv")
@patch("utils.env._find_project_root")
def test_load_project_dotenv_without_file(mock_find_root, mock_load_dotenv, tmp_path: Path):
    mock_find_root.return_value = tmp_path

    assert load_project_dotenv() is False
    mock_load_dotenv.assert_not_called()


@patch("utils.env._find_project_root")
def test_load_project_dotenv_keeps_real_environment(mock_find_root, tmp_path: Path, monkeypatch):
    """Shell variables win over the .env file (override=False)."""
    (tmp_path / ".env").write_text("PHARMACIST_ID=from_dotenv\nMAP_API_TOKEN=dotenv_token\n")
    mock_find_root.return_value = tmp_path
    monkeypatch.setenv("PHARMACIST_ID", "from_shell")
    # Registers an undo so the loaded value is removed after the test
    monkeypatch.delenv("MAP_API_TOKEN", raising=False)

    load_project_dotenv()

    assert os.environ.get("PHARMACIST_ID") == "from_shell"
    assert os.environ.get("MAP_API_TOKEN") == "dotenv_token"


# --- typed readers --- #


def test_env_str_treats_blank_as_unset(monkeypatch):
    monkeypatch.setenv("PHARMACY_ID", "   ")
    assert env_str("PHARMACY_ID", "PHARMACY_001") == "PHARMACY_001"
    monkeypatch.setenv("PHARMACY_ID", " PHARMACY_002 ")
    assert env_str("PHARMACY_ID", "PHARMACY_001") == "PHARMACY_002"


def test_env_int_and_float(monkeypatch):
    monkeypatch.delenv("FLASH_SALE_MAX_DAYS", raising=False)
    assert env_int("FLASH_SALE_MAX_DAYS", 60) == 60
    monkeypatch.setenv("FLASH_SALE_MAX_DAYS", "30")
    assert env_int("FLASH_SALE_MAX_DAYS", 60) == 30
    monkeypatch.setenv("NOTIFICATION_CALL_TIMEOUT_SECONDS", "2.5")
    assert env_float("NOTIFICATION_CALL_TIMEOUT_SECONDS", 10.0) == 2.5


def test_env_readers_reject_garbage(monkeypatch):
    monkeypatch.setenv("FLASH_SALE_MAX_DAYS", "sixty")
    monkeypatch.setenv("NOTIFICATION_CALL_TIMEOUT_SECONDS", "fast")
    with pytest.raises(ValueError, match="FLASH_SALE_MAX_DAYS"):
        env_int("FLASH_SALE_MAX_DAYS", 60)
    with pytest.raises(ValueError, match="NOTIFICATION_CALL_TIMEOUT_SECONDS"):
        env_float("NOTIFICATION_CALL_TIMEOUT_SECONDS", 10.0)

"""Tests for settings persistence and default store locations."""

import json
import os

import pytest

from otpvault import config, vault_manager
from otpvault.errors import CorruptData


def test_defaults_written_on_first_load(tmp_path):
    settings = vault_manager.load_settings(str(tmp_path))
    assert settings == vault_manager.Settings()
    assert settings.backend == config.DEFAULT_BACKEND
    assert os.path.exists(tmp_path / config.SETTINGS_FILE)


def test_persisted_settings(tmp_path):
    vault_manager.save_settings(vault_manager.Settings(theme="dark", backend="keepass"), str(tmp_path))
    settings = vault_manager.load_settings(str(tmp_path))
    assert settings.theme == "dark"
    assert settings.backend == "keepass"


def test_unknown_keys_ignored(tmp_path):
    (tmp_path / config.SETTINGS_FILE).write_text(json.dumps({"theme": "dark", "refresh_rate": 30}))
    settings = vault_manager.load_settings(str(tmp_path))
    assert settings.theme == "dark"
    assert not hasattr(settings, "refresh_rate")


def test_unknown_backend_falls_back(tmp_path):
    (tmp_path / config.SETTINGS_FILE).write_text(json.dumps({"backend": "cloud"}))
    assert vault_manager.load_settings(str(tmp_path)).backend == config.DEFAULT_BACKEND


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_corrupt_settings(tmp_path, content):
    (tmp_path / config.SETTINGS_FILE).write_text(content)
    with pytest.raises(CorruptData):
        vault_manager.load_settings(str(tmp_path))


def test_default_paths(tmp_path):
    data_dir = str(tmp_path)
    assert vault_manager.get_default_path("vault", data_dir).endswith(config.DEFAULT_VAULT_FILE)
    assert vault_manager.get_default_path("keepass", data_dir).endswith(config.DEFAULT_KEEPASS_FILE)
    with pytest.raises(ValueError):
        vault_manager.get_default_path("cloud", data_dir)


def test_check_vault(tmp_path):
    data_dir = str(tmp_path)
    assert vault_manager.check_vault("vault", data_dir) is None
    (tmp_path / config.DEFAULT_VAULT_FILE).write_bytes(b"x")
    assert vault_manager.check_vault("vault", data_dir) == str(tmp_path / config.DEFAULT_VAULT_FILE)

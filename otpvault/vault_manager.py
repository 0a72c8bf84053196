import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Optional

from . import config
from .errors import CorruptData
from .utils import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """User preferences persisted next to the vault."""
    theme: str = config.DEFAULT_THEME
    backend: str = config.DEFAULT_BACKEND


def get_data_dir() -> str:
    """Directory holding the vault, the KeePass database and the settings file."""
    return os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME)


def get_default_path(backend: str, data_dir: Optional[str] = None) -> str:
    """Default store path for a backend name ("vault" or "keepass")."""
    data_dir = data_dir or get_data_dir()
    if backend == "keepass":
        return os.path.join(data_dir, config.DEFAULT_KEEPASS_FILE)
    if backend == "vault":
        return os.path.join(data_dir, config.DEFAULT_VAULT_FILE)
    raise ValueError(f"Unknown backend: {backend}")


def check_vault(backend: str, data_dir: Optional[str] = None) -> Optional[str]:
    """
    Path of the existing store for ``backend``, or None if it has not been created yet.
    """
    path = get_default_path(backend, data_dir)
    return path if os.path.exists(path) else None


def load_settings(data_dir: Optional[str] = None) -> Settings:
    """
    Load settings, writing the defaults first if the file does not exist.
    Unknown keys are ignored.

    Raises:
        CorruptData: If the settings file is not valid JSON
    """
    data_dir = data_dir or get_data_dir()
    settings_file = os.path.join(data_dir, config.SETTINGS_FILE)

    if not os.path.exists(settings_file):
        settings = Settings()
        save_settings(settings, data_dir)
        return settings

    with open(settings_file, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise CorruptData(f"Failed to parse config file: {e}") from None

    if not isinstance(data, dict):
        raise CorruptData("Failed to parse config file: expected an object")

    settings = Settings()
    for key in asdict(settings):
        if key in data:
            setattr(settings, key, data[key])

    if settings.backend not in config.AVAILABLE_BACKENDS:
        logger.warning(f"Unknown backend '{settings.backend}' in settings, using {config.DEFAULT_BACKEND}")
        settings.backend = config.DEFAULT_BACKEND
    return settings


def save_settings(settings: Settings, data_dir: Optional[str] = None) -> None:
    data_dir = data_dir or get_data_dir()
    settings_file = os.path.join(data_dir, config.SETTINGS_FILE)
    content = json.dumps(asdict(settings), indent=2)
    atomic_write(settings_file, content.encode('utf-8'), private=False)

"""Persisted controller configuration.

The configuration is a single JSON settings file holding one key whose
value is the camelCase PluginConfig. Anything unreadable falls back to the
default record.
"""

import json
import os
from pathlib import Path

from icecream import ic

from kubeseal_client.models import PluginConfig

CONFIG_KEY = "sealed-secrets-plugin-config"

DEFAULT_CONFIG = PluginConfig(
    controller_name="sealed-secrets-controller",
    controller_namespace="kube-system",
    controller_port=8080,
)


def config_path() -> Path:
    """Return the XDG-compliant location of the settings file."""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    base_path = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base_path / "kubeseal-client" / "settings.json"


def load_plugin_config(path: Path | None = None) -> PluginConfig:
    """Load the stored configuration.

    Args:
        path: Settings file to read. Defaults to ``config_path()``.

    Returns:
        The stored PluginConfig, or DEFAULT_CONFIG if the file is missing,
        is not valid JSON, or does not hold a valid record.

    """
    path = path or config_path()
    try:
        settings = json.loads(path.read_text())
        return PluginConfig.from_dict(settings[CONFIG_KEY])
    except FileNotFoundError:
        return DEFAULT_CONFIG
    except (OSError, ValueError, KeyError, TypeError) as exc:
        ic(f"Ignoring unreadable settings at {path}: {exc!r}")
        return DEFAULT_CONFIG


def save_plugin_config(config: PluginConfig, path: Path | None = None) -> Path:
    """Persist the configuration, keeping any other keys in the settings file.

    Args:
        config: The configuration to store.
        path: Settings file to write. Defaults to ``config_path()``.

    Returns:
        The path written to.

    """
    path = path or config_path()
    settings: dict = {}
    try:
        existing = json.loads(path.read_text())
        if isinstance(existing, dict):
            settings = existing
    except (OSError, ValueError):
        # Missing or corrupt settings are replaced wholesale
        settings = {}

    settings[CONFIG_KEY] = config.to_dict()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings, indent=2) + "\n")
    ic(path, settings)
    return path

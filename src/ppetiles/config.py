"""Configuration management for ppetiles.

This module handles loading and managing configuration settings using
Dynaconf. Settings are loaded from multiple locations in order of
increasing priority:

1. Global settings (/etc/ppetiles/)
2. User settings (~/.config/ppetiles/)
3. Current directory settings (./)
4. Environment variable specified file (PPETILES_SETTINGS_FILE_FOR_DYNACONF)

Every key can also be set from the environment with the ``PPETILES_``
prefix, e.g. ``PPETILES_DATABASE_PATH=/srv/ppe.sqlite``.

Attributes
----------
USER_DIR : pathlib.Path
    Path to user configuration directory.
GLOB_DIR : pathlib.Path
    Path to global configuration directory.
CURR_DIR : pathlib.Path
    Path to current working directory.
DEFAULTS : dict
    Fallback values for the keys the package reads.
settings : Dynaconf
    The Dynaconf settings object with loaded configuration.
"""
import os
import pathlib

from dynaconf import Dynaconf

USER_DIR = pathlib.Path("~/.config/ppetiles").expanduser()
GLOB_DIR = pathlib.Path("/etc/ppetiles/")
CURR_DIR = pathlib.Path("./").absolute()
settings_files = [
    GLOB_DIR / "settings.toml",
    GLOB_DIR / ".secrets.toml",
    USER_DIR / "settings.toml",
    USER_DIR / ".secrets.toml",
    CURR_DIR / "settings.toml",
    CURR_DIR / ".secrets.toml"
    ]
extra_file = os.getenv("PPETILES_SETTINGS_FILE_FOR_DYNACONF")
if extra_file:
    settings_files.append(pathlib.Path(extra_file).absolute())

DEFAULTS = {
    "database_path": "ppetiles.sqlite",
    "api_keys": [],
    "min_zoom": 1,
    "max_zoom": 16,
    "max_zoom_served": 22,
    "render_workers": os.cpu_count() or 1,
    "tile_dir": "tiles",
    "verbose": False,
}

settings = Dynaconf(
    merge_enabled=True,
    envvar_prefix="PPETILES",
    settings_files=settings_files,
    environments=True,
    load_dotenv=True,
)


def get(key):
    """Return a setting, falling back to the package default.

    Parameters
    ----------
    key : str
        Setting name (case-insensitive, as Dynaconf treats it).

    Returns
    -------
    object
        The configured value or the entry in `DEFAULTS`.
    """
    return settings.get(key, DEFAULTS.get(key.lower()))


def api_keys():
    """Accepted API keys as a list of stripped strings.

    A comma separated string (as it arrives from an environment
    variable) is split the same way a TOML list is read.
    """
    keys = get("api_keys") or []
    if isinstance(keys, str):
        keys = keys.split(",")
    return [str(key).strip() for key in keys if str(key).strip()]


def change_env(new_env):
    """Change the active Dynaconf environment.

    Parameters
    ----------
    new_env : str
        The environment name to switch to (e.g., 'development', 'production').
    """
    settings.setenv(new_env)
    settings.reload()

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from plugin_autoloader import __version__

"""Central configuration.

Settings come from three layers, later layers winning:

  1. an optional YAML file (AUTOLOAD_CONFIG_FILE)
  2. an optional ``config.env`` picked up with python-dotenv
  3. process environment variables

Env vars:
  AUTOLOAD_ENVIRONMENT       - name of the current environment
  AUTOLOAD_MODULEPATH        - os.pathsep separated module base directories
  AUTOLOAD_LIBDIR            - os.pathsep separated fixed library directories
  AUTOLOAD_SOURCE_EXTENSION  - extension of loadable source files (.py)
  AUTOLOAD_PRELOAD_TAGS      - comma separated tags loaded at startup
  AUTOLOAD_RELOAD_INTERVAL   - seconds between reload passes (0 disables)
  AUTOLOAD_EVICT_VANISHED    - drop cache entries whose file vanished
  AUTOLOAD_LOG_LEVEL         - DEBUG, INFO, WARNING, ERROR, CRITICAL
"""


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is malformed."""


def _load_env_file() -> None:
    candidates: list[Path] = []
    override = os.getenv('AUTOLOAD_CONFIG_ENV')
    if override:
        candidates.append(Path(override))
    # Prefer the working directory (where the process is started from)
    candidates.append(Path.cwd() / 'config.env')
    candidates.append(Path.cwd() / 'backend' / 'config.env')
    for p in candidates:
        if p.is_file():
            load_dotenv(str(p))
            break


def _env_flag(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _split_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = str(value).split(',')
    return [item.strip() for item in items if item and item.strip()]


def split_path_list(value: str | List[str] | None) -> List[str]:
    """Split an ``os.pathsep`` delimited directory list, dropping empty parts."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        parts = value.split(os.pathsep)
    out: List[str] = []
    for part in parts:
        part = part.strip()
        if not part:
            continue
        out.append(os.path.expanduser(part))
    return out


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def _coerce_environments(raw: Any) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("'environments' must be a mapping of name -> settings")
    out: Dict[str, str] = {}
    for name, value in raw.items():
        if isinstance(value, dict):
            modulepath = value.get('modulepath')
        else:
            modulepath = value
        if modulepath is None:
            continue
        if isinstance(modulepath, (list, tuple)):
            modulepath = os.pathsep.join(str(p) for p in modulepath)
        out[str(name)] = str(modulepath)
    return out


class Settings(BaseModel):
    app_name: str = 'Plugin Autoloader'
    version: str = __version__
    api_v1_prefix: str = '/api/v1'
    environment: str = 'production'
    # Global module path, used for every environment without its own entry
    modulepath: str = ''
    # Per-environment module paths from the YAML config file
    environments: Dict[str, str] = Field(default_factory=dict)
    libdir: str = ''
    source_extension: str = '.py'
    preload_tags: List[str] = Field(default_factory=list)
    reload_interval: float = 0.0
    evict_vanished: bool = False
    log_level: str = 'INFO'
    config_file: Optional[Path] = None


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build a :class:`Settings` from the config file and environment.

    ``env`` defaults to :data:`os.environ`; tests pass an explicit mapping.
    """
    if env is None:
        _load_env_file()
        env = os.environ

    file_data: Dict[str, Any] = {}
    config_file = env.get('AUTOLOAD_CONFIG_FILE')
    if config_file:
        file_data = _read_config_file(Path(config_file))

    values: Dict[str, Any] = {}
    for key in ('environment', 'modulepath', 'libdir', 'source_extension'):
        if key in file_data and file_data[key] is not None:
            raw = file_data[key]
            if key in ('modulepath', 'libdir') and isinstance(raw, (list, tuple)):
                raw = os.pathsep.join(str(p) for p in raw)
            values[key] = str(raw)
    if 'preload_tags' in file_data:
        values['preload_tags'] = _split_list(file_data['preload_tags'])
    if file_data.get('reload_interval') is not None:
        values['reload_interval'] = float(file_data['reload_interval'])
    if 'evict_vanished' in file_data:
        values['evict_vanished'] = bool(file_data['evict_vanished'])
    values['environments'] = _coerce_environments(file_data.get('environments'))

    overrides = {
        'environment': 'AUTOLOAD_ENVIRONMENT',
        'modulepath': 'AUTOLOAD_MODULEPATH',
        'libdir': 'AUTOLOAD_LIBDIR',
        'source_extension': 'AUTOLOAD_SOURCE_EXTENSION',
        'log_level': 'AUTOLOAD_LOG_LEVEL',
        'version': 'AUTOLOAD_VERSION',
    }
    for key, var in overrides.items():
        if env.get(var) is not None:
            values[key] = env[var]
    if env.get('AUTOLOAD_PRELOAD_TAGS') is not None:
        values['preload_tags'] = _split_list(env['AUTOLOAD_PRELOAD_TAGS'])
    if env.get('AUTOLOAD_RELOAD_INTERVAL'):
        try:
            values['reload_interval'] = float(env['AUTOLOAD_RELOAD_INTERVAL'])
        except ValueError as exc:
            raise ConfigError(f"AUTOLOAD_RELOAD_INTERVAL must be a number: {exc}") from exc
    if env.get('AUTOLOAD_EVICT_VANISHED') is not None:
        values['evict_vanished'] = _env_flag(env['AUTOLOAD_EVICT_VANISHED'])

    ext = values.get('source_extension')
    if ext and not ext.startswith('.'):
        values['source_extension'] = '.' + ext
    if config_file:
        values['config_file'] = Path(config_file)
    return Settings(**values)


class ConfigProvider(Protocol):
    """Source of the directory lists the search path is built from."""

    def current_environment(self) -> str: ...

    def module_path(self, environment: str) -> List[str]: ...

    def library_directories(self) -> List[str]: ...


class SettingsConfigProvider:
    """:class:`ConfigProvider` backed by a :class:`Settings` instance."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def current_environment(self) -> str:
        return self.settings.environment

    def module_path(self, environment: str) -> List[str]:
        raw = self.settings.environments.get(environment, self.settings.modulepath)
        raw = raw.replace('$environment', environment)
        return split_path_list(raw)

    def library_directories(self) -> List[str]:
        return split_path_list(self.settings.libdir)


settings = load_settings()

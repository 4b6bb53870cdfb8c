"""Process-wide autoloader.

The :class:`Autoloader` owns the cache, resolver, loader and reload monitor of
one process. :func:`get_autoloader` builds it lazily from the settings the
first time it is needed; hosts that want a different executor or
configuration install their own with :func:`set_autoloader`.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from plugin_autoloader.core.config import ConfigProvider, Settings, SettingsConfigProvider
from plugin_autoloader.plugin_runtime.cache import DEFAULT_SOURCE_EXTENSION, LoadCache, LoadedEntry
from plugin_autoloader.plugin_runtime.executor import Executor, ModuleExecutor
from plugin_autoloader.plugin_runtime.loader import Loader
from plugin_autoloader.plugin_runtime.reload import ReloadMonitor
from plugin_autoloader.plugin_runtime.search_path import PathResolver

_log = logging.getLogger(__name__)


class Autoloader:
    def __init__(
        self,
        config: ConfigProvider,
        *,
        executor: Executor | None = None,
        host_path: Callable[[], Sequence[str]] | None = None,
        extension: str = DEFAULT_SOURCE_EXTENSION,
        evict_vanished: bool = False,
    ):
        self.cache = LoadCache(extension)
        self.resolver = PathResolver(config, host_path=host_path)
        self.loader = Loader(self.resolver, self.cache, executor or ModuleExecutor())
        self.monitor = ReloadMonitor(self.resolver, self.cache, self.loader, evict_vanished=evict_vanished)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "Autoloader":
        kwargs.setdefault('extension', settings.source_extension)
        kwargs.setdefault('evict_vanished', settings.evict_vanished)
        return cls(SettingsConfigProvider(settings), **kwargs)

    def module_directories(self) -> List[str]:
        return self.resolver.module_directories()

    def search_directories(self) -> List[str]:
        return self.resolver.search_directories()

    def normalize(self, tag: str | None, name: str) -> str:
        return self.cache.normalize(tag, name)

    def is_loaded(self, tag: str | None, name: str) -> bool:
        return self.cache.is_loaded(tag, name)

    def entry(self, tag: str | None, name: str) -> Optional[LoadedEntry]:
        return self.cache.get(tag, name)

    def entries(self) -> List[Tuple[str, LoadedEntry]]:
        return self.cache.entries()

    def load(self, tag: str, name: str) -> bool:
        return self.loader.load(tag, name)

    def load_all(self, tag: str) -> None:
        self.loader.load_all(tag)

    def files_to_load(self, tag: str) -> List[str]:
        return self.loader.files_to_load(tag)

    def reload_changed(self) -> List[LoadedEntry]:
        return self.monitor.reload_changed()

    def for_tag(self, tag: str) -> "TagAutoloader":
        return TagAutoloader(self, tag)


class TagAutoloader:
    """An :class:`Autoloader` bound to one tag, e.g. the ``reports`` plugin category."""

    def __init__(self, autoloader: Autoloader, tag: str):
        self.autoloader = autoloader
        self.tag = tag

    def expand(self, name: str) -> str:
        return self.autoloader.normalize(self.tag, name)

    def load(self, name: str) -> bool:
        return self.autoloader.load(self.tag, name)

    def load_all(self) -> None:
        self.autoloader.load_all(self.tag)

    def is_loaded(self, name: str) -> bool:
        return self.autoloader.is_loaded(self.tag, name)

    def files_to_load(self) -> List[str]:
        return self.autoloader.files_to_load(self.tag)

    def __repr__(self) -> str:
        return f"TagAutoloader(tag={self.tag!r})"


_AUTOLOADER: Autoloader | None = None
_AUTOLOADER_LOCK = threading.Lock()


def get_autoloader() -> Autoloader:
    global _AUTOLOADER
    with _AUTOLOADER_LOCK:
        if _AUTOLOADER is None:
            from plugin_autoloader.core.config import settings

            _AUTOLOADER = Autoloader.from_settings(settings)
            _log.debug("created process autoloader environment=%s", settings.environment)
        return _AUTOLOADER


def set_autoloader(autoloader: Autoloader | None) -> None:
    """Install ``autoloader`` as the process instance (``None`` resets it)."""
    global _AUTOLOADER
    with _AUTOLOADER_LOCK:
        _AUTOLOADER = autoloader

from __future__ import annotations

import glob
import logging
import os
from typing import List, Optional, Sequence

from plugin_autoloader.plugin_runtime.cache import LoadCache, LoadedEntry
from plugin_autoloader.plugin_runtime.errors import LoadFailure
from plugin_autoloader.plugin_runtime.executor import Executor
from plugin_autoloader.plugin_runtime.search_path import PathResolver

_log = logging.getLogger(__name__)


class Loader:
    """Resolves logical names against the search path and executes them."""

    def __init__(self, resolver: PathResolver, cache: LoadCache, executor: Executor):
        self.resolver = resolver
        self.cache = cache
        self._executor = executor

    def execute(self, path: str, relative_path: str) -> LoadedEntry:
        """Run ``path`` through the executor and register it under ``relative_path``.

        Any exception from the executor becomes a :class:`LoadFailure`;
        ``SystemExit`` and ``KeyboardInterrupt`` pass through untouched.
        """
        with self.cache.lock:
            try:
                self._executor(path, relative_path)
                entry = self.cache.mark_loaded(None, relative_path, path)
            except Exception as exc:
                failure = LoadFailure.from_exception(exc, path=path, relative_path=relative_path)
                _log.error("%s", failure.message, exc_info=True)
                raise failure from exc
        _log.info("loaded %s from %s", relative_path, path)
        return entry

    def resolve(self, relative_path: str, directories: Sequence[str] | None = None) -> Optional[str]:
        """Return the first existing ``directory/relative_path``, or ``None``."""
        if directories is None:
            directories = self.resolver.search_directories()
        for directory in directories:
            candidate = os.path.abspath(os.path.join(directory, relative_path))
            if os.path.isfile(candidate):
                return candidate
        return None

    def load(self, tag: str, name: str) -> bool:
        relative_path = self.cache.normalize(tag, name)
        with self.cache.lock:
            path = self.resolve(relative_path)
            if path is None:
                _log.debug("no file found for %s", relative_path)
                return False
            self.execute(path, relative_path)
            return True

    def files_to_load(self, tag: str) -> List[str]:
        return [path for _, path in self._tagged_files(tag)]

    def load_all(self, tag: str) -> None:
        with self.cache.lock:
            for directory, path in self._tagged_files(tag):
                relative_path = self.cache.normalize(None, os.path.relpath(path, directory))
                if self.cache.is_loaded(None, relative_path):
                    continue
                self.execute(path, relative_path)

    def _tagged_files(self, tag: str) -> List[tuple[str, str]]:
        pattern_tail = os.path.join(glob.escape(tag), '**', '*' + glob.escape(self.cache.extension))
        found: List[tuple[str, str]] = []
        for directory in self.resolver.search_directories():
            base = os.path.abspath(directory)
            for path in sorted(glob.glob(os.path.join(glob.escape(base), pattern_tail), recursive=True)):
                if os.path.isfile(path):
                    found.append((base, os.path.abspath(path)))
        return found

from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence, Tuple

from plugin_autoloader.plugin_runtime.cache import LoadCache, LoadedEntry
from plugin_autoloader.plugin_runtime.loader import Loader
from plugin_autoloader.plugin_runtime.search_path import PathResolver

_log = logging.getLogger(__name__)


class ReloadMonitor:
    """Brings every loaded entry back in line with what is on disk.

    For each entry the file currently winning the search path is compared with
    the file the entry was loaded from:

      - same file, same mtime: nothing to do
      - same file, different mtime: re-execute it
      - different file (the old one vanished, or a higher-priority directory
        now has one): execute the new file and move the entry there
      - no file anywhere: keep the stale entry, or drop it when
        ``evict_vanished`` is set
    """

    def __init__(self, resolver: PathResolver, cache: LoadCache, loader: Loader, *, evict_vanished: bool = False):
        self.resolver = resolver
        self.cache = cache
        self.loader = loader
        self.evict_vanished = evict_vanished

    def changed(self, relative_path: str, directories: Sequence[str] | None = None) -> bool:
        relative_path = self.cache.normalize(None, relative_path)
        entry = self.cache.get(None, relative_path)
        if entry is None:
            return True
        path, _ = self._pending_path(entry, directories)
        return path is not None

    def reload_changed(self) -> List[LoadedEntry]:
        """Re-execute every entry whose backing file changed; return the reloaded entries.

        The first :class:`LoadFailure` aborts the pass.
        """
        reloaded: List[LoadedEntry] = []
        with self.cache.lock:
            directories = self.resolver.search_directories()
            snapshot = self.cache.entries()
            for relative_path, entry in snapshot:
                path, vanished = self._pending_path(entry, directories)
                if vanished:
                    self._vanished(entry)
                if path is None:
                    continue
                reloaded.append(self.loader.execute(path, relative_path))
        _log.info("reload pass complete checked=%d reloaded=%d", len(snapshot), len(reloaded))
        return reloaded

    def _pending_path(self, entry: LoadedEntry, directories: Sequence[str] | None) -> Tuple[Optional[str], bool]:
        """Return the path that needs executing for ``entry`` (``None`` when current) and whether it vanished."""
        current = self.loader.resolve(entry.relative_path, directories)
        if current is None:
            return None, True
        if current != entry.absolute_path:
            return current, False
        try:
            mtime = os.stat(current).st_mtime
        except FileNotFoundError:
            return None, True
        if mtime != entry.modified_at:
            return current, False
        return None, False

    def _vanished(self, entry: LoadedEntry) -> None:
        if self.evict_vanished:
            self.cache.discard(entry.relative_path)
            _log.info("evicted %s: %s no longer exists", entry.relative_path, entry.absolute_path)
        else:
            _log.debug("%s vanished and has no replacement; keeping entry", entry.absolute_path)

from __future__ import annotations

import logging
import os
import posixpath
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

_log = logging.getLogger(__name__)

DEFAULT_SOURCE_EXTENSION = '.py'


@dataclass(frozen=True, slots=True)
class LoadedEntry:
    relative_path: str
    absolute_path: str
    modified_at: float


def normalize(tag: str | None, name: str, extension: str = DEFAULT_SOURCE_EXTENSION) -> str:
    """Return the canonical ``tag/name.ext`` form used as the cache key.

    ``tag/myfile``, ``tag/myfile.py``, ``tag/./myfile.py``, ``./tag/myfile.py``
    and ``tag/../tag/myfile.py`` all normalize to ``tag/myfile.py``. An empty
    ``tag`` accepts a ``name`` that already carries its tag prefix.
    """
    joined = posixpath.join((tag or '').replace('\\', '/'), name.replace('\\', '/'))
    if not joined.endswith(extension):
        joined += extension
    return posixpath.normpath(joined)


class LoadCache:
    """Record of every source file loaded in this process.

    Maps the normalized relative path to the absolute path and modification
    time it was last loaded from. All mutation happens under ``lock``, which is
    re-entrant because executing a plugin may itself trigger further loads.
    """

    def __init__(self, extension: str = DEFAULT_SOURCE_EXTENSION):
        self.extension = extension
        self.lock = threading.RLock()
        self._entries: Dict[str, LoadedEntry] = {}

    def normalize(self, tag: str | None, name: str) -> str:
        return normalize(tag, name, self.extension)

    def is_loaded(self, tag: str | None, name: str) -> bool:
        key = self.normalize(tag, name)
        with self.lock:
            return key in self._entries

    def get(self, tag: str | None, name: str) -> Optional[LoadedEntry]:
        key = self.normalize(tag, name)
        with self.lock:
            return self._entries.get(key)

    def mark_loaded(self, tag: str | None, name: str, absolute_path: str) -> LoadedEntry:
        key = self.normalize(tag, name)
        entry = LoadedEntry(
            relative_path=key,
            absolute_path=absolute_path,
            modified_at=os.stat(absolute_path).st_mtime,
        )
        with self.lock:
            previous = self._entries.get(key)
            self._entries[key] = entry
        if previous is None:
            _log.debug("registered %s -> %s", key, absolute_path)
        elif previous.absolute_path != absolute_path:
            _log.info("moved %s from %s to %s", key, previous.absolute_path, absolute_path)
        return entry

    def discard(self, relative_path: str) -> Optional[LoadedEntry]:
        key = self.normalize(None, relative_path)
        with self.lock:
            return self._entries.pop(key, None)

    def entries(self) -> List[Tuple[str, LoadedEntry]]:
        # Snapshot so a pass never observes entries inserted while it runs.
        with self.lock:
            return list(self._entries.items())

    def __contains__(self, relative_path: object) -> bool:
        if not isinstance(relative_path, str):
            return False
        return self.is_loaded(None, relative_path)

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

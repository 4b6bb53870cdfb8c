from __future__ import annotations

import logging
import os
import sys
from typing import Callable, List, Sequence

from plugin_autoloader.core.config import ConfigProvider

_log = logging.getLogger(__name__)

# Sub-directories of a module that may hold loadable code, in priority order.
MODULE_SUBDIRS: tuple[str, ...] = ('plugins', 'lib')


def _host_load_path() -> List[str]:
    return list(sys.path)


class PathResolver:
    """Computes the ordered list of directories searched for plugin files.

    Nothing is cached: every call re-reads the configuration and the
    filesystem so configuration changes take effect on the next lookup.
    """

    def __init__(self, config: ConfigProvider, host_path: Callable[[], Sequence[str]] | None = None):
        self.config = config
        self._host_path = host_path or _host_load_path

    def module_directories(self) -> List[str]:
        environment = self.config.current_environment()
        found: List[str] = []
        for base in self.config.module_path(environment):
            if not os.path.isdir(base):
                continue
            try:
                children = sorted(os.listdir(base))
            except OSError as exc:
                _log.warning("cannot list module directory %s: %s", base, exc)
                continue
            for child in children:
                if child.startswith('.'):
                    continue
                for sub in MODULE_SUBDIRS:
                    candidate = os.path.join(base, child, sub)
                    if os.path.isdir(candidate):
                        found.append(candidate)
        return found

    def library_directories(self) -> List[str]:
        return list(self.config.library_directories())

    def search_directories(self) -> List[str]:
        # No de-duplication: the loader stops at the first match anyway.
        return self.module_directories() + self.library_directories() + list(self._host_path())

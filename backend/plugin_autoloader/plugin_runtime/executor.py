from __future__ import annotations

"""Default host load primitive.

Executes a plugin source file as a module named after its relative path, so
``tmp/myfile.py`` is registered in ``sys.modules`` as ``tmp.myfile`` and a
later ``import tmp.myfile`` reuses it instead of running the file again.
Plugins may expose ``register()`` (called after the module body ran) and
``unregister()`` (called on the previous module before the same relative path
is executed again, even when it now comes from another directory).
"""

import importlib.util
import keyword
import logging
import os
import posixpath
import re
import sys
from types import ModuleType
from typing import Callable, Dict

_log = logging.getLogger(__name__)

# Called with the absolute path to execute and the normalized relative path
# the file is registered under.
Executor = Callable[[str, str], object]


def module_name_for(relative_path: str) -> str:
    """Dotted module name for a normalized relative path (``tmp/my-file.py`` -> ``tmp.my_file``)."""
    stem = posixpath.splitext(relative_path.replace('\\', '/'))[0]
    parts = []
    for part in stem.split('/'):
        if part in ('', '.'):
            continue
        part = re.sub(r'\W', '_', part)
        if part[0].isdigit() or keyword.iskeyword(part):
            part = '_' + part
        parts.append(part)
    return '.'.join(parts) or '_plugin'


def _bind_to_parent(module_name: str, mod: ModuleType, directory: str) -> None:
    # ``directory`` holds the file or package backing ``module_name``. Missing
    # parents become namespace-style packages rooted at the matching directory
    # so ``import tmp.myfile`` and ``from tmp import other`` keep working.
    parent_name, _, child = module_name.rpartition('.')
    if not parent_name:
        return
    parent = sys.modules.get(parent_name)
    if parent is None:
        parent = ModuleType(parent_name)
        parent.__path__ = [directory]
        sys.modules[parent_name] = parent
        _bind_to_parent(parent_name, parent, os.path.dirname(directory))
    setattr(parent, child, mod)


def _unbind_from_parent(module_name: str, mod: ModuleType) -> None:
    parent_name, _, child = module_name.rpartition('.')
    parent = sys.modules.get(parent_name) if parent_name else None
    if parent is not None and getattr(parent, child, None) is mod:
        delattr(parent, child)


class ModuleExecutor:
    def __init__(self, register_hook: str = 'register', unregister_hook: str = 'unregister'):
        self.register_hook = register_hook
        self.unregister_hook = unregister_hook
        # Modules this executor created, by module name; foreign modules that
        # happen to share a name never get their hooks called.
        self._modules: Dict[str, ModuleType] = {}

    def __call__(self, path: str, relative_path: str) -> ModuleType:
        module_name = module_name_for(relative_path)
        previous = self._modules.get(module_name)
        if previous is not None:
            un = getattr(previous, self.unregister_hook, None)
            if callable(un):
                un()
                _log.debug("called %s() in %s (%s)", self.unregister_hook, module_name, previous.__file__)

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Could not load plugin module from {path}")
        mod = importlib.util.module_from_spec(spec)
        # Visible in sys.modules while executing; dataclasses and pickling
        # look the module up by name.
        sys.modules[module_name] = mod
        _bind_to_parent(module_name, mod, os.path.dirname(path))
        try:
            spec.loader.exec_module(mod)
            reg_fn = getattr(mod, self.register_hook, None)
            if callable(reg_fn):
                reg_fn()
                _log.debug("called %s() in %s", self.register_hook, module_name)
        except Exception:
            sys.modules.pop(module_name, None)
            _unbind_from_parent(module_name, mod)
            self._modules.pop(module_name, None)
            raise
        self._modules[module_name] = mod
        return mod

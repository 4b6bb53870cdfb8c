import pathlib
import sys

import pytest

# Ensure backend root (containing the 'plugin_autoloader' package) is on sys.path
BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from plugin_autoloader.plugin_runtime.autoload import Autoloader, set_autoloader
from tests.plugin_files import RecordingExecutor, StaticConfig


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def dirs(tmp_path):
    """Two search directories, a/ searched before b/."""
    a = tmp_path / 'a'
    b = tmp_path / 'b'
    a.mkdir()
    b.mkdir()
    return a, b


@pytest.fixture
def make_autoloader(executor):
    def _make(*, module_path=(), libdirs=(), host_path=(), evict_vanished=False, executor_override=None):
        config = StaticConfig(module_path=[str(p) for p in module_path], libdirs=[str(p) for p in libdirs])
        return Autoloader(
            config,
            executor=executor_override or executor,
            host_path=lambda: [str(p) for p in host_path],
            evict_vanished=evict_vanished,
        )
    return _make


@pytest.fixture
def autoloader(make_autoloader, dirs):
    return make_autoloader(libdirs=dirs)


@pytest.fixture
def process_autoloader(autoloader):
    set_autoloader(autoloader)
    yield autoloader
    set_autoloader(None)

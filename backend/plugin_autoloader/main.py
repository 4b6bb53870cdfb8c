from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from plugin_autoloader.api import autoload as autoload_router
from plugin_autoloader.core.config import settings
from plugin_autoloader.core.logging_config import configure_logging
from plugin_autoloader.core.runtime import register_refresh_handler, start_periodic_refresh, stop_periodic_refresh
from plugin_autoloader.plugin_runtime.autoload import get_autoloader
from plugin_autoloader.plugin_runtime.errors import LoadFailure

_log = logging.getLogger(__name__)


def preload_tags(tags) -> list[str]:
    """Load every plugin under each of ``tags``; return the tags that failed.

    A broken plugin is logged and does not keep the server from starting.
    """
    autoloader = get_autoloader()
    failed: list[str] = []
    for tag in tags:
        try:
            autoloader.load_all(tag)
        except LoadFailure:
            _log.exception("preloading tag %s failed", tag)
            failed.append(tag)
    return failed


def _reload_changed() -> None:
    get_autoloader().reload_changed()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Preloads the configured tags and starts the periodic reload pass, which
    keeps loaded plugins in sync with edits on disk.
    """
    configure_logging(settings.log_level)
    autoloader = get_autoloader()
    _log.info(
        "starting environment=%s search_directories=%d",
        settings.environment,
        len(autoloader.search_directories()),
    )
    if settings.preload_tags:
        preload_tags(settings.preload_tags)

    register_refresh_handler('autoload_reload', _reload_changed, priority=100)
    start_periodic_refresh(settings.reload_interval)

    yield

    await stop_periodic_refresh()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.include_router(autoload_router.router, prefix=settings.api_v1_prefix)


@app.get('/')
async def root():
    return {'status': 'ok', 'app': settings.app_name, 'version': settings.version}

from __future__ import annotations

import logging
import os

from plugin_autoloader.core.config import settings
from plugin_autoloader.core.logging_config import configure_logging

_log = logging.getLogger(__name__)


def main():
    configure_logging(settings.log_level)
    _log.info(
        "starting version=%s environment=%s log_level=%s",
        settings.version, settings.environment, settings.log_level,
    )
    if settings.config_file:
        _log.info("config_file=%s", settings.config_file)
    import uvicorn
    from uvicorn.config import LOGGING_CONFIG
    host = os.getenv('AUTOLOAD_HOST', '127.0.0.1')
    port = int(os.getenv('AUTOLOAD_PORT', '4160'))
    _log.info("launching uvicorn on %s:%s", host, port)
    try:
        uvicorn.run(
            'plugin_autoloader.main:app',
            host=host,
            port=port,
            reload=False,
            log_level=settings.log_level.lower(),
            # Use uvicorn's default logging config to surface startup errors
            log_config=LOGGING_CONFIG,
        )
    finally:
        _log.info("uvicorn stopped")


if __name__ == '__main__':  # pragma: no cover
    main()

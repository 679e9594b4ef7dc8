"""Entry point for running the jitd daemon.

This module provides the `python -m jitd` entry point.
"""

import logging
import sys

import uvicorn

from jit_library.config.loader import load_config

logger = logging.getLogger(__name__)


def main() -> None:
    """Serve assets with the jitd daemon.

    Settings come from jit.yaml and JIT_ environment variables; the app is
    built by uvicorn through the create_app factory so each worker loads them
    itself.
    """
    try:
        settings = load_config()
        logger.info(f"Starting jitd on http://{settings.host}:{settings.port}{settings.mount_path}")

        uvicorn.run(
            "jitd.main:create_app",
            factory=True,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
            workers=settings.workers,
        )

    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Failed to start jitd: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

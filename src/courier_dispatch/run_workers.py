"""Process entry point: runs the queue workers and, optionally, the admin API."""

from __future__ import annotations

import logging
import signal
import sys
import threading

from .config import settings
from .container import build_container

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )


def main() -> int:
    configure_logging(settings.log_level)
    container = build_container()
    manager = container.manager
    grace = settings.worker_shutdown_grace_seconds

    manager.start_all()

    if settings.serve_api:
        import uvicorn

        from .main import create_app

        logger.info(f"Starting admin API on {settings.api_host}:{settings.api_port}...")
        # uvicorn owns SIGINT/SIGTERM here and returns once it has shut down.
        try:
            uvicorn.run(create_app(container), host=settings.api_host, port=settings.api_port)
        finally:
            manager.handle_shutdown(grace)
        return 0

    shutdown = threading.Event()

    def _on_signal(signum, frame) -> None:
        logger.info(f"Received {signal.Signals(signum).name}")
        shutdown.set()

    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)

    while not shutdown.wait(1.0):
        pass
    return 0 if manager.handle_shutdown(grace) else 1


if __name__ == "__main__":
    sys.exit(main())

"""Lifecycle control for the named queue workers."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping

from ..exceptions import DispatchError, WorkerNotFoundError
from ..queue.transport import QueueTransport
from .base import Worker

logger = logging.getLogger(__name__)


class WorkerManager:
    def __init__(self, workers: Mapping[str, Worker], transport: QueueTransport) -> None:
        self.workers: dict[str, Worker] = dict(workers)
        self.transport = transport
        self.is_running = False

    def _get(self, name: str) -> Worker:
        worker = self.workers.get(name)
        if worker is None:
            raise WorkerNotFoundError(name)
        return worker

    def start_all(self) -> None:
        if self.is_running:
            logger.warning("Worker manager is already running")
            return
        logger.info("Starting all queue workers...")
        for worker in self.workers.values():
            worker.start()
        self.is_running = True
        logger.info("All queue workers started successfully")

    def stop_all(self) -> None:
        if not self.is_running and not any(worker.is_running for worker in self.workers.values()):
            logger.warning("Worker manager is not running")
            return
        logger.info("Stopping all queue workers...")
        for worker in self.workers.values():
            worker.stop()
        self.is_running = False
        logger.info("All queue workers stopped")

    def start_worker(self, name: str) -> bool:
        started = self._get(name).start()
        if started:
            logger.info(f"Worker {name} started")
        return started

    def stop_worker(self, name: str) -> None:
        self._get(name).stop()
        logger.info(f"Worker {name} stopped")

    def get_status(self) -> dict[str, Any]:
        return {
            "manager_running": self.is_running,
            "workers": {name: worker.status() for name, worker in self.workers.items()},
        }

    def queue_stats(self) -> dict[str, Any]:
        """Status plus live queue depth; a failing queue reports its error inline."""
        status = self.get_status()
        for name, worker in self.workers.items():
            try:
                depth = self.transport.depth(worker.queue_name)
                status["workers"][name]["depth"] = {
                    "available": depth.available,
                    "in_flight": depth.in_flight,
                    "delayed": depth.delayed,
                }
            except DispatchError as exc:
                logger.error(f"Error getting stats for {name}: {exc.message}")
                status["workers"][name]["error"] = exc.message
        status["last_updated"] = datetime.now(timezone.utc).isoformat()
        return status

    def purge_queue(self, name: str) -> int:
        """Purge the queue owned by the worker called ``name`` (or the queue of that name)."""
        queue_name = None
        if name in self.workers:
            queue_name = self.workers[name].queue_name
        else:
            for worker in self.workers.values():
                if worker.queue_name == name:
                    queue_name = name
                    break
        if queue_name is None:
            raise WorkerNotFoundError(name, kind="Queue")
        return self.transport.purge(queue_name)

    def handle_shutdown(self, grace_seconds: float = 5.0) -> bool:
        """Stop every worker and wait up to ``grace_seconds`` for their loops to exit."""
        logger.info("Received shutdown signal, stopping workers gracefully...")
        self.stop_all()
        deadline = time.monotonic() + grace_seconds
        clean = True
        for name, worker in self.workers.items():
            if not worker.join(max(deadline - time.monotonic(), 0)):
                logger.warning(f"Worker {name} did not stop within {grace_seconds}s")
                clean = False
        return clean

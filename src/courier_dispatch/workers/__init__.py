"""Queue workers and their manager."""

from .base import HandlerResult, MessageOutcome, Worker
from .invoice_generation import InvoiceGenerationWorker
from .manager import WorkerManager
from .route_assignment import RouteAssignmentWorker

__all__ = [
    "HandlerResult",
    "InvoiceGenerationWorker",
    "MessageOutcome",
    "RouteAssignmentWorker",
    "Worker",
    "WorkerManager",
]

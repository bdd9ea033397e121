"""Creates billing records for delivered orders."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from ..config import Settings, settings as default_settings
from ..exceptions import ResourceNotFoundError
from ..models.domain import BillingRecord, OrderStatus
from ..notifications.events import INVOICE_GENERATED, EventSink
from ..persistence.stores import BillingStore, OrderStore, PartyStore
from ..queue.transport import QueueTransport
from ..schemas.messages import InvoiceGenerationMessage
from .base import HandlerResult, Worker

logger = logging.getLogger(__name__)


class InvoiceGenerationWorker(Worker):
    """Writes the billing record, then marks the order ``Invoice Generated``.

    The two writes are not transactional. If the order update fails the
    message is retried, the billing guard then short-circuits and the order
    status is left for manual repair.
    """

    message_model = InvoiceGenerationMessage

    def __init__(
        self,
        transport: QueueTransport,
        orders: OrderStore,
        billings: BillingStore,
        parties: PartyStore,
        events: EventSink,
        config: Settings | None = None,
    ) -> None:
        config = config or default_settings
        super().__init__("invoiceGeneration", config.invoice_generation_queue, transport, config)
        self.orders = orders
        self.billings = billings
        self.parties = parties
        self.events = events
        self.invoice_due_days = config.invoice_due_days

    def handle(self, message: InvoiceGenerationMessage) -> HandlerResult:
        if self.billings.find_by_order(message.order_id) is not None:
            logger.info(f"Billing record already exists for order: {message.order_id}")
            return HandlerResult.SKIPPED

        with ThreadPoolExecutor(max_workers=2) as executor:
            order_future = executor.submit(self.orders.get_by_id, message.order_id)
            party_future = executor.submit(self.parties.get_by_id, message.hospital_id)
            order, party = order_future.result(), party_future.result()

        if order is None:
            raise ResourceNotFoundError("Order", message.order_id)
        if party is None:
            raise ResourceNotFoundError("Hospital", message.hospital_id)

        invoice_date = message.invoice_date
        if invoice_date.tzinfo is None:
            invoice_date = invoice_date.replace(tzinfo=timezone.utc)
        due_date = message.due_date or invoice_date + timedelta(days=self.invoice_due_days)
        if due_date.tzinfo is None:
            due_date = due_date.replace(tzinfo=timezone.utc)

        billing = self.billings.create(
            BillingRecord(
                order_id=order.id,
                hospital_id=party.id,
                amount=message.amount,
                invoice_date=invoice_date,
                due_date=due_date,
                status=message.status,
                courier=message.courier,
            )
        )
        self.orders.update(order.id, {"status": OrderStatus.INVOICE_GENERATED})
        logger.info(f"Invoice generated for order {order.reference}: Billing ID {billing.id}, Amount: ${message.amount}")

        try:
            self.events.emit(
                INVOICE_GENERATED,
                {
                    "type": "INVOICE_GENERATED",
                    "orderId": order.reference,
                    "billingId": billing.id,
                    "hospitalId": party.id,
                    "amount": billing.amount,
                    "dueDate": billing.due_date.isoformat(),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
        except Exception as exc:
            logger.error(f"Error emitting invoice event for order {order.reference}: {exc}")
        return HandlerResult.PROCESSED

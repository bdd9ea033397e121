"""Producer side of the order queues."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..config import Settings, settings as default_settings
from ..models.domain import Location, Order
from ..schemas.messages import INVOICE_GENERATION, ROUTE_ASSIGNMENT
from .transport import QueueTransport

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _location_payload(location: Location | str) -> dict[str, Any] | str:
    if isinstance(location, str):
        return location
    return {
        "address": location.address,
        "city": location.city,
        "state": location.state,
        "zipcode": location.zipcode,
    }


class OrderEventPublisher:
    """Builds queue bodies for orders and hands them to the transport."""

    def __init__(self, transport: QueueTransport, config: Settings | None = None) -> None:
        self.transport = transport
        self.config = config or default_settings

    def publish_route_assignment(
        self,
        order: Order,
        delivery_location: Location | str,
        pickup_location: Location | str | None = None,
        hospital_name: str | None = None,
        priority: str = "normal",
    ) -> str:
        body = {
            "type": ROUTE_ASSIGNMENT,
            "timestamp": _now_iso(),
            "orderId": order.reference,
            "orderDbId": order.id,
            "userId": order.user_id,
            "pickupLocation": _location_payload(pickup_location or order.pickup_location),
            "deliveryLocation": _location_payload(delivery_location),
            "items": order.items,
            "qty": order.qty,
            "hospitalName": hospital_name,
            "priority": priority,
            "retryCount": 0,
        }
        attributes = {
            "OrderId": order.reference,
            "UserId": order.user_id,
            "MessageType": ROUTE_ASSIGNMENT,
        }
        message_id = self.transport.send(self.config.route_assignment_queue, body, attributes)
        logger.info(f"Route assignment message sent for order {order.reference}: {message_id}")
        return message_id

    def publish_invoice_generation(
        self,
        order_id: str,
        hospital_id: str,
        amount: float,
        invoice_date: datetime | None = None,
        due_date: datetime | None = None,
        courier: str | None = None,
        status: str | None = None,
        priority: str = "normal",
    ) -> str:
        invoice_date = invoice_date or datetime.now(timezone.utc)
        body = {
            "type": INVOICE_GENERATION,
            "timestamp": _now_iso(),
            "orderId": order_id,
            "hospitalId": hospital_id,
            "courier": courier,
            "amount": amount,
            "invoiceDate": invoice_date.isoformat(),
            "dueDate": due_date.isoformat() if due_date else None,
            "status": status,
            "priority": priority,
            "retryCount": 0,
        }
        # Unset optional keys are left out so the consumer applies its defaults.
        body = {key: value for key, value in body.items() if value is not None}
        attributes = {
            "OrderId": order_id,
            "HospitalId": hospital_id,
            "MessageType": INVOICE_GENERATION,
            "Amount": str(amount),
        }
        message_id = self.transport.send(self.config.invoice_generation_queue, body, attributes)
        logger.info(f"Invoice generation message sent for order {order_id}: {message_id}")
        return message_id

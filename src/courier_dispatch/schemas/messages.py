"""Queue message schemas, validated at the deserialization boundary."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from ..exceptions import MessageValidationError
from ..models.domain import BillingStatus, Location

ROUTE_ASSIGNMENT = "ROUTE_ASSIGNMENT"
INVOICE_GENERATION = "INVOICE_GENERATION"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LocationModel(_CamelModel):
    address: str = Field(..., min_length=1)
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None

    def to_domain(self) -> Location:
        return Location(address=self.address, city=self.city, state=self.state, zipcode=self.zipcode)


def _coerce_location(value: Any) -> Any:
    # Older producers send a bare address string.
    if isinstance(value, str):
        return {"address": value}
    return value


class RouteAssignmentMessage(_CamelModel):
    type: Literal["ROUTE_ASSIGNMENT"]
    timestamp: Optional[datetime] = None
    order_id: str = Field(..., alias="orderId")
    order_db_id: str = Field(..., alias="orderDbId")
    user_id: str = Field(..., alias="userId")
    pickup_location: LocationModel = Field(..., alias="pickupLocation")
    delivery_location: LocationModel = Field(..., alias="deliveryLocation")
    items: Optional[Union[str, List[Any]]] = None
    qty: Optional[int] = Field(default=None, ge=1)
    hospital_name: Optional[str] = Field(default=None, alias="hospitalName")
    priority: str = "normal"
    retry_count: int = Field(default=0, ge=0, alias="retryCount")

    @field_validator("pickup_location", "delivery_location", mode="before")
    @classmethod
    def _coerce_locations(cls, value: Any) -> Any:
        return _coerce_location(value)

    @field_validator("order_id", "order_db_id", "user_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class InvoiceGenerationMessage(_CamelModel):
    type: Literal["INVOICE_GENERATION"]
    timestamp: Optional[datetime] = None
    order_id: str = Field(..., alias="orderId")
    hospital_id: str = Field(..., alias="hospitalId")
    courier: Optional[str] = None
    amount: float = Field(..., ge=0)
    invoice_date: datetime = Field(..., alias="invoiceDate")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    status: BillingStatus = BillingStatus.UNPAID
    priority: str = "normal"
    retry_count: int = Field(default=0, ge=0, alias="retryCount")

    @field_validator("order_id", "hospital_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return BillingStatus.UNPAID if value is None else value


OrderMessage = Annotated[
    Union[RouteAssignmentMessage, InvoiceGenerationMessage],
    Field(discriminator="type"),
]

_order_message_adapter: TypeAdapter[OrderMessage] = TypeAdapter(OrderMessage)


def parse_message_body(body: str | bytes | dict) -> RouteAssignmentMessage | InvoiceGenerationMessage:
    """Decode and validate a queue body.

    Raises ``MessageValidationError`` for non-JSON text, unknown ``type``
    values, or missing/invalid fields.
    """
    if isinstance(body, (str, bytes)):
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MessageValidationError(f"Message body is not valid JSON: {exc}") from exc
    else:
        payload = body

    if not isinstance(payload, dict):
        raise MessageValidationError("Message body must be a JSON object.")

    try:
        return _order_message_adapter.validate_python(payload)
    except ValidationError as exc:
        raise MessageValidationError(
            f"Invalid {payload.get('type', 'untyped')} message",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc

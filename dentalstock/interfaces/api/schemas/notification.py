"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dentalstock.domain.entities import EventKind


class NotificationMarkReadRequest(BaseModel):
    """Payload used to mark a batch of notifications as read."""

    ids: list[int] = Field(..., min_length=1, description="Notification identifiers")

    def unique_ids(self) -> list[int]:
        """Return the list of identifiers without duplicates preserving order."""

        return list(dict.fromkeys(self.ids))


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: int
    user_id: int
    event_type: str
    title: str
    message: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    read_at: datetime | None = None


class NotificationLogRead(BaseModel):
    id: int
    user_id: int | None = None
    recipient_type: str
    recipient_id: str | None = None
    channel: str
    notification_type: str
    title: str
    message: str | None = None
    status: str
    error_message: str | None = None
    sent_at: datetime | None = None
    created_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChannelTallyRead(BaseModel):
    sent: int = 0
    failed: int = 0


class DeliveryResultRead(BaseModel):
    push: ChannelTallyRead
    line: ChannelTallyRead
    in_app: ChannelTallyRead


class TriggerRequest(BaseModel):
    """Body of ``POST /notifications/trigger``."""

    type: EventKind
    data: dict[str, Any]


class TriggerResponse(BaseModel):
    success: bool
    type: EventKind
    result: DeliveryResultRead


class _TriggerData(BaseModel):
    # Clients may send either snake_case or camelCase keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class CaseAssignedData(_TriggerData):
    case_id: int
    dentist_id: int
    case_number: str = Field(..., min_length=1)
    patient_name: str = Field(..., min_length=1)
    surgery_date: date


class OutOfStockData(_TriggerData):
    reservation_id: int
    case_number: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    surgery_date: date


class UrgentCaseData(_TriggerData):
    case_id: int
    case_number: str = Field(..., min_length=1)
    patient_name: str = Field(..., min_length=1)
    surgery_date: date
    hours_until_surgery: int = Field(..., ge=0)
    unprepared_count: int = Field(..., ge=0)


class LowStockData(_TriggerData):
    product_id: int
    product_name: str = Field(..., min_length=1)
    current_stock: int
    min_stock: int


class MaterialPreparedData(_TriggerData):
    case_id: int
    case_number: str = Field(..., min_length=1)
    dentist_id: int


class POCreatedData(_TriggerData):
    order_id: int
    po_number: str = Field(..., min_length=1)
    supplier_name: str = Field(..., min_length=1)
    total_amount: Decimal
    created_by_name: str = Field(..., min_length=1)


class SupplierPOData(_TriggerData):
    order_id: int
    po_number: str = Field(..., min_length=1)
    supplier_id: int
    total_amount: Decimal
    access_code: str = Field(..., min_length=1)


TRIGGER_DATA_SCHEMAS: dict[EventKind, type[_TriggerData]] = {
    EventKind.CASE_ASSIGNED: CaseAssignedData,
    EventKind.OUT_OF_STOCK: OutOfStockData,
    EventKind.URGENT_CASE: UrgentCaseData,
    EventKind.LOW_STOCK: LowStockData,
    EventKind.MATERIAL_PREPARED: MaterialPreparedData,
    EventKind.PO_CREATED: POCreatedData,
    EventKind.SUPPLIER_PO: SupplierPOData,
}


__all__ = [
    "CaseAssignedData",
    "ChannelTallyRead",
    "DeliveryResultRead",
    "LowStockData",
    "MaterialPreparedData",
    "NotificationLogRead",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "OutOfStockData",
    "POCreatedData",
    "SupplierPOData",
    "TRIGGER_DATA_SCHEMAS",
    "TriggerRequest",
    "TriggerResponse",
    "UrgentCaseData",
]

"""Builders for clinic events and the helpers that dispatch them."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from dentalstock.domain.entities import (
    DeliveryResult,
    EventKind,
    LineFlexMessage,
    NotificationEvent,
    RecipientType,
    Role,
    Targeting,
)
from dentalstock.domain.errors import EventValidationError
from dentalstock.infrastructure.repositories import ClinicRepository

from .dispatch import NotificationDispatcher

logger = logging.getLogger(__name__)

URGENT_THRESHOLD_HOURS = 24
STOCK_ROLES = (Role.STOCK_STAFF, Role.ADMIN)


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_amount(value: float | Decimal) -> str:
    return f"{value:,.2f}"


def case_assigned_event(
    *, case_id: int, case_number: str, patient_name: str, surgery_date: date
) -> NotificationEvent:
    return NotificationEvent(
        kind=EventKind.CASE_ASSIGNED,
        title="New case assigned",
        body=f"Case {case_number} - {patient_name}\nSurgery date: {format_date(surgery_date)}",
        url=f"/cases/{case_id}",
        tag=f"case-assigned-{case_id}",
        reference_id=str(case_id),
    )


def out_of_stock_event(
    *,
    reservation_id: int,
    case_number: str,
    product_name: str,
    quantity: int,
    surgery_date: date,
) -> NotificationEvent:
    return NotificationEvent(
        kind=EventKind.OUT_OF_STOCK,
        title="Material out of stock",
        body=(
            f"Case {case_number} needs {product_name} x{quantity}\n"
            f"Surgery date: {format_date(surgery_date)}"
        ),
        url="/stock/pending-requests",
        tag=f"out-of-stock-{reservation_id}",
        reference_id=str(reservation_id),
    )


def urgent_case_event(
    *,
    case_id: int,
    case_number: str,
    patient_name: str,
    surgery_date: date,
    hours_until_surgery: int,
    unprepared_count: int,
) -> NotificationEvent:
    urgency = "Very urgent!" if hours_until_surgery <= URGENT_THRESHOLD_HOURS else "Urgent case"
    return NotificationEvent(
        kind=EventKind.URGENT_CASE,
        title=f"{urgency} {case_number}",
        body=(
            f"{patient_name}\nSurgery in {hours_until_surgery} h "
            f"({format_date(surgery_date)})\nUnprepared materials: {unprepared_count}"
        ),
        url=f"/cases/{case_id}",
        tag=f"urgent-case-{case_id}",
        reference_id=str(case_id),
        data={"hours_until_surgery": hours_until_surgery},
    )


def low_stock_event(
    *, product_id: int, product_name: str, current_stock: int, min_stock: int
) -> NotificationEvent:
    return NotificationEvent(
        kind=EventKind.LOW_STOCK,
        title="Low stock",
        body=f"{product_name}\nRemaining: {current_stock} / Minimum: {min_stock}",
        url=f"/products/{product_id}",
        tag=f"low-stock-{product_id}",
        reference_id=str(product_id),
    )


def material_prepared_event(*, case_id: int, case_number: str) -> NotificationEvent:
    return NotificationEvent(
        kind=EventKind.MATERIAL_PREPARED,
        title="Materials prepared",
        body=f"All materials for case {case_number} are ready",
        url=f"/cases/{case_id}",
        tag=f"material-ready-{case_id}",
        reference_id=str(case_id),
    )


def po_created_event(
    *,
    order_id: int,
    po_number: str,
    supplier_name: str,
    total_amount: float | Decimal,
    created_by_name: str,
) -> NotificationEvent:
    return NotificationEvent(
        kind=EventKind.PO_CREATED,
        title="New purchase order awaiting approval",
        body=(
            f"PO {po_number} for {supplier_name}\n"
            f"Total: {format_amount(total_amount)} THB\nCreated by {created_by_name}"
        ),
        url=f"/orders/{order_id}",
        tag=f"po-created-{order_id}",
        reference_id=str(order_id),
    )


def supplier_po_event(
    *,
    order_id: int,
    po_number: str,
    supplier_name: str,
    total_amount: float | Decimal,
    access_code: str,
    base_url: str,
) -> NotificationEvent:
    link = f"{base_url.rstrip('/')}/po/{order_id}?code={access_code}"
    amount = f"{format_amount(total_amount)} THB"
    flex = LineFlexMessage(
        alt_text=f"New purchase order {po_number}",
        contents={
            "type": "bubble",
            "header": {
                "type": "box",
                "layout": "vertical",
                "contents": [
                    {"type": "text", "text": "New purchase order", "weight": "bold", "size": "lg"},
                ],
            },
            "body": {
                "type": "box",
                "layout": "vertical",
                "spacing": "sm",
                "contents": [
                    {"type": "text", "text": f"To: {supplier_name}", "wrap": True},
                    {"type": "text", "text": f"PO number: {po_number}"},
                    {"type": "text", "text": f"Total: {amount}"},
                    {"type": "text", "text": f"Access code: {access_code}", "size": "sm"},
                ],
            },
            "footer": {
                "type": "box",
                "layout": "vertical",
                "contents": [
                    {
                        "type": "button",
                        "style": "primary",
                        "action": {"type": "uri", "label": "View order", "uri": link},
                    }
                ],
            },
        },
    )
    return NotificationEvent(
        kind=EventKind.SUPPLIER_PO,
        title="New purchase order",
        body=f"PO: {po_number}\nTotal: {amount}\nPlease review and confirm the order.\n{link}",
        url=link,
        tag=f"supplier-po-{order_id}",
        reference_id=str(order_id),
        flex=flex,
    )


async def notify_case_assigned(
    dispatcher: NotificationDispatcher,
    *,
    case_id: int,
    dentist_id: int,
    case_number: str,
    patient_name: str,
    surgery_date: date,
) -> DeliveryResult:
    event = case_assigned_event(
        case_id=case_id,
        case_number=case_number,
        patient_name=patient_name,
        surgery_date=surgery_date,
    )
    return await dispatcher.dispatch(event, Targeting(user_id=dentist_id))


async def notify_out_of_stock(dispatcher: NotificationDispatcher, **data: Any) -> DeliveryResult:
    return await dispatcher.dispatch(out_of_stock_event(**data), Targeting(roles=STOCK_ROLES))


async def notify_urgent_case(dispatcher: NotificationDispatcher, **data: Any) -> DeliveryResult:
    return await dispatcher.dispatch(urgent_case_event(**data), Targeting(roles=STOCK_ROLES))


async def notify_low_stock(dispatcher: NotificationDispatcher, **data: Any) -> DeliveryResult:
    return await dispatcher.dispatch(low_stock_event(**data), Targeting(roles=STOCK_ROLES))


async def notify_material_prepared(
    dispatcher: NotificationDispatcher, *, case_id: int, case_number: str, dentist_id: int
) -> DeliveryResult:
    event = material_prepared_event(case_id=case_id, case_number=case_number)
    return await dispatcher.dispatch(event, Targeting(user_id=dentist_id))


async def notify_po_created(dispatcher: NotificationDispatcher, **data: Any) -> DeliveryResult:
    return await dispatcher.dispatch(po_created_event(**data), Targeting(roles=(Role.ADMIN,)))


async def notify_supplier_po(
    session: Session,
    dispatcher: NotificationDispatcher,
    *,
    order_id: int,
    po_number: str,
    supplier_id: int,
    total_amount: float | Decimal,
    access_code: str,
    base_url: str = "",
) -> DeliveryResult:
    """Send the purchase-order card to the supplier's LINE account."""

    supplier = ClinicRepository(session).get_supplier(supplier_id)
    if supplier is None:
        raise ValueError(f"Supplier {supplier_id} not found")
    if not supplier.line_user_id:
        logger.warning("Supplier %s has no LINE user id", supplier_id)
        return DeliveryResult()

    event = supplier_po_event(
        order_id=order_id,
        po_number=po_number,
        supplier_name=supplier.name,
        total_amount=total_amount,
        access_code=access_code,
        base_url=base_url,
    )
    return await dispatcher.send_line_direct(
        supplier.line_user_id,
        event,
        recipient_type=RecipientType.SUPPLIER,
        recipient_id=str(supplier.id),
        metadata={"po_number": po_number, "order_id": order_id},
    )


async def trigger_notification(
    session: Session,
    dispatcher: NotificationDispatcher,
    kind: EventKind,
    data: Mapping[str, Any],
    *,
    base_url: str = "",
) -> DeliveryResult:
    """Route a validated trigger payload to the helper for ``kind``.

    ``base_url`` prefixes links placed in supplier cards.
    """

    values = dict(data)
    if kind is EventKind.CASE_ASSIGNED:
        return await notify_case_assigned(dispatcher, **values)
    if kind is EventKind.OUT_OF_STOCK:
        return await notify_out_of_stock(dispatcher, **values)
    if kind is EventKind.URGENT_CASE:
        return await notify_urgent_case(dispatcher, **values)
    if kind is EventKind.LOW_STOCK:
        return await notify_low_stock(dispatcher, **values)
    if kind is EventKind.MATERIAL_PREPARED:
        return await notify_material_prepared(dispatcher, **values)
    if kind is EventKind.PO_CREATED:
        return await notify_po_created(dispatcher, **values)
    if kind is EventKind.SUPPLIER_PO:
        return await notify_supplier_po(
            session, dispatcher, base_url=base_url, **values
        )
    raise EventValidationError(f"Unknown trigger type: {kind.value}")


__all__ = [
    "case_assigned_event",
    "low_stock_event",
    "material_prepared_event",
    "notify_case_assigned",
    "notify_low_stock",
    "notify_material_prepared",
    "notify_out_of_stock",
    "notify_po_created",
    "notify_supplier_po",
    "notify_urgent_case",
    "out_of_stock_event",
    "po_created_event",
    "supplier_po_event",
    "trigger_notification",
    "urgent_case_event",
]

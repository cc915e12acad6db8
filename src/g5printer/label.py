"""
Bag label content for the G5 printer.

Turns an order from the point-of-sale system into the ordered text fields
of a bag label. Layout and pacing live in the printer; this module only
decides what goes on the label and in which order.
"""

import textwrap
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from .config import PrinterSettings
from .errors import ValidationError
from .raster import Align, chars_per_line

MIN_QUANTITY = 1
MAX_QUANTITY = 10

ORDER_PREFIX = "ORD"


class FieldKind(Enum):
    """Kinds of label lines. The kind decides the settle delay."""

    ORDER_ID = "order_id"
    CUSTOMER_NAME = "customer_name"
    PHONE = "phone"
    PICKUP = "pickup"
    BAG_INDEX = "bag_index"
    ADDRESS_HEADER = "address_header"
    ADDRESS = "address"
    NOTES_HEADER = "notes_header"
    NOTES = "notes"
    SEPARATOR = "separator"
    TEXT = "text"


def settle_for(kind: FieldKind, settings: PrinterSettings) -> float:
    """Pause after a field, longer after large or dense lines."""
    if kind in (FieldKind.ORDER_ID, FieldKind.CUSTOMER_NAME, FieldKind.BAG_INDEX):
        return settings.settle_large
    if kind is FieldKind.PHONE:
        return settings.settle_phone
    if kind is FieldKind.PICKUP:
        return settings.settle_pickup
    if kind is FieldKind.ADDRESS_HEADER:
        return settings.settle_header
    return settings.settle_body


@dataclass(frozen=True)
class LabelField:
    """One line of text on a label."""
    text: str
    scale: int = 1
    align: Align = Align.CENTER
    kind: FieldKind = FieldKind.TEXT
    settle: float = 0.0


@dataclass
class OrderData:
    """Order fields the label needs, already validated upstream."""
    order_id: str = "N/A"
    customer_name: str = "N/A"
    phone: str = "N/A"
    address: str = "NOT SPECIFIED"
    notes: str = ""
    pickup_time: Optional[datetime] = None

    @staticmethod
    def clean_order_id(order_id: Any) -> str:
        """Drop the textual ``ORD`` prefix, keeping the number."""
        text = str(order_id).strip() if order_id not in (None, "") else "N/A"
        if text.startswith(ORDER_PREFIX):
            text = text[len(ORDER_PREFIX):].strip()
        return text or "N/A"

    @classmethod
    def from_mapping(cls, order: Mapping[str, Any]) -> "OrderData":
        """
        Build from an order record.

        Accepts the camelCase keys the order service produces (orderId,
        orderNumber, customerName, customerPhone, specialInstructions) as
        well as this class's own field names.
        """
        def pick(*keys: str) -> Any:
            for key in keys:
                value = order.get(key)
                if value not in (None, ""):
                    return value
            return None

        pickup = pick("pickup_time", "pickupTime")
        if isinstance(pickup, str):
            try:
                pickup = datetime.fromisoformat(pickup)
            except ValueError as e:
                raise ValidationError(f"Invalid pickup time: {pickup!r}") from e
        elif pickup is not None and not isinstance(pickup, datetime):
            raise ValidationError(f"Invalid pickup time: {pickup!r}")

        return cls(
            order_id=cls.clean_order_id(pick("order_id", "orderId", "orderNumber")),
            customer_name=str(pick("customer_name", "customerName") or "N/A").upper(),
            phone=str(pick("phone", "customerPhone") or "N/A"),
            address=str(pick("address") or "NOT SPECIFIED").upper(),
            notes=str(pick("notes", "specialInstructions") or "").strip().upper(),
            pickup_time=pickup,
        )


@dataclass
class LabelJob:
    """Fields for one label design plus how many physical copies to print.

    With more than one copy a ``BAG i OF n`` line is added to each copy
    after the pickup line.
    """
    fields: list[LabelField]
    quantity: int = 1
    bag_field_settle: float = 0.0
    bag_field_scale: int = 3

    def validate(self) -> "LabelJob":
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool):
            raise ValidationError(f"Quantity must be an integer, got {self.quantity!r}")
        if not MIN_QUANTITY <= self.quantity <= MAX_QUANTITY:
            raise ValidationError(
                f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}, got {self.quantity}"
            )
        if not self.fields:
            raise ValidationError("Label has no fields to print")
        return self

    def fields_for_copy(self, copy_number: int) -> list[LabelField]:
        """Fields for copy ``copy_number`` (1-based), as a fresh list."""
        fields = list(self.fields)
        if self.quantity > 1:
            bag = LabelField(
                text=f"BAG {copy_number} OF {self.quantity}",
                scale=self.bag_field_scale,
                kind=FieldKind.BAG_INDEX,
                settle=self.bag_field_settle,
            )
            insert_at = next(
                (i + 1 for i, f in enumerate(fields) if f.kind is FieldKind.PICKUP),
                len(fields),
            )
            fields.insert(insert_at, bag)
        return fields


def wrap_text(text: str, width: int) -> list[str]:
    """Word-wrap text into lines of at most ``width`` characters."""
    lines = textwrap.wrap(" ".join(text.split()), width=width, break_long_words=True)
    return lines or [""]


def build_label_fields(
    order: OrderData,
    settings: Optional[PrinterSettings] = None,
    now: Optional[datetime] = None,
) -> list[LabelField]:
    """
    Lay out an order's fields in label order.

    Order id, name, phone, pickup, address (header plus wrapped lines) and
    notes (header plus wrapped lines, only if present).
    """
    settings = settings or PrinterSettings()
    pickup = order.pickup_time or now or datetime.now()
    width = settings.label_width_bytes

    def line(text: str, scale: int, kind: FieldKind) -> LabelField:
        return LabelField(text=text, scale=scale, kind=kind, settle=settle_for(kind, settings))

    fields = [
        line(f"ORDER: {order.order_id}", 3, FieldKind.ORDER_ID),
        line(order.customer_name, 3, FieldKind.CUSTOMER_NAME),
        line(f"PHONE: {order.phone}", 2, FieldKind.PHONE),
        line(f"PICKUP: {pickup:%m/%d} {pickup:%I:%M %p}", 2, FieldKind.PICKUP),
        line("ADDRESS:", 2, FieldKind.ADDRESS_HEADER),
    ]

    address_width = min(settings.address_line_chars, chars_per_line(2, width))
    for text in wrap_text(order.address, address_width):
        fields.append(line(text, 2, FieldKind.ADDRESS))

    if order.notes.strip():
        fields.append(line("NOTES:", 2, FieldKind.NOTES_HEADER))
        for text in wrap_text(order.notes, chars_per_line(1, width)):
            fields.append(line(text, 1, FieldKind.NOTES))

    return fields


def build_label_job(
    order: Any,
    quantity: int = 1,
    settings: Optional[PrinterSettings] = None,
    now: Optional[datetime] = None,
) -> LabelJob:
    """
    Build a validated job from an order record or OrderData.

    Raises:
        ValidationError: If quantity is outside 1-10
    """
    settings = settings or PrinterSettings()
    if not isinstance(order, OrderData):
        if not isinstance(order, Mapping):
            raise ValidationError(f"Unsupported order type: {type(order).__name__}")
        order = OrderData.from_mapping(order)

    job = LabelJob(
        fields=build_label_fields(order, settings, now),
        quantity=quantity,
        bag_field_settle=settle_for(FieldKind.BAG_INDEX, settings),
    )
    return job.validate()

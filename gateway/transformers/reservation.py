"""Booking engine reservation transformer.

Maps the gateway's internal reservation shape (camelCase, flat) onto the
nested snake_case shape the booking engine expects, and back.
"""

import re
from datetime import UTC, date, datetime
from typing import Any

from gateway.transformers.registry import Transformer, TransformerValidationError

REQUIRED_FIELDS = (
    "reservationId",
    "guestName",
    "guestEmail",
    "checkInDate",
    "checkOutDate",
    "roomType",
    "numberOfGuests",
    "totalAmount",
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_STRIP_RE = re.compile(r"[^\d+]")


def parse_date(value: Any) -> datetime | None:
    """Parse an ISO date or datetime; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_date(value: Any) -> str:
    parsed = parse_date(value)
    if parsed is None:
        return ""
    return parsed.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clean_phone(phone: str | None) -> str:
    if not phone:
        return ""
    return PHONE_STRIP_RE.sub("", phone)


def validate_reservation(data: dict[str, Any]) -> None:
    if not isinstance(data, dict):
        raise TransformerValidationError("Input validation failed")

    for field in REQUIRED_FIELDS:
        if not data.get(field):
            raise TransformerValidationError(f"Required field missing: {field}")

    if not EMAIL_RE.match(str(data["guestEmail"])):
        raise TransformerValidationError("Invalid email format")

    check_in = parse_date(data["checkInDate"])
    check_out = parse_date(data["checkOutDate"])
    if check_in is None or check_out is None:
        raise TransformerValidationError("Invalid date format")
    if check_out <= check_in:
        raise TransformerValidationError("Check-out date must be after check-in date")


def to_booking_engine(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "reservation_id": data["reservationId"],
        "guest": {
            "name": data["guestName"],
            "email": data["guestEmail"],
            "phone": clean_phone(data.get("guestPhone")),
        },
        "stay": {
            "check_in": format_date(data["checkInDate"]),
            "check_out": format_date(data["checkOutDate"]),
            "room_type": data["roomType"],
            "guests": data["numberOfGuests"],
        },
        "payment": {
            "total": data["totalAmount"],
            "currency": data.get("currency"),
        },
        "status": data.get("status"),
        "notes": data.get("specialRequests"),
    }


def from_booking_engine(data: dict[str, Any]) -> dict[str, Any]:
    guest = data.get("guest") or {}
    stay = data.get("stay") or {}
    payment = data.get("payment") or {}
    return {
        "reservationId": data["reservation_id"],
        "guestName": guest.get("name"),
        "guestEmail": guest.get("email"),
        "guestPhone": guest.get("phone"),
        "checkInDate": stay.get("check_in"),
        "checkOutDate": stay.get("check_out"),
        "roomType": stay.get("room_type"),
        "numberOfGuests": stay.get("guests"),
        "totalAmount": payment.get("total"),
        "currency": payment.get("currency"),
        "status": data.get("status"),
        "specialRequests": data.get("notes"),
    }


booking_reservation_transformer = Transformer(
    transform=to_booking_engine,
    reverse=from_booking_engine,
    validate=validate_reservation,
)

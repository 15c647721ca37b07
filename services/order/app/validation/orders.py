"""Request body rules for the order endpoints.

These only check shape. Whether a status change is allowed for a given order
is decided by the order service, not here. Field names are the wire names.
"""

from typing import Any, ClassVar, Dict, FrozenSet, Optional

from app.db.models import OrderStatus, PaymentMethod
from app.validation.rules import RequestBody, TrimmedText, UuidText, ValidationResult, validate

PAYMENT_METHODS = tuple(m.value for m in PaymentMethod)
ORDER_STATUSES = tuple(s.value for s in OrderStatus)

PAYMENT_REFERENCE_MAX = 100
NOTES_MAX = 500
CANCEL_REASON_MAX = 200

PaymentReference = TrimmedText(PAYMENT_REFERENCE_MAX)
Notes = TrimmedText(NOTES_MAX)
CancelReason = TrimmedText(CANCEL_REASON_MAX)

NOTES_MESSAGE = f"notas cannot exceed {NOTES_MAX} characters"


class CreateFromCartBody(RequestBody):
    direccionEnvioId: Optional[UuidText] = None
    metodoPago: Optional[PaymentMethod] = None
    referenciaPago: Optional[PaymentReference] = None
    notas: Optional[Notes] = None

    error_messages: ClassVar[Dict[str, str]] = {
        "direccionEnvioId": "direccionEnvioId must be a valid UUID",
        "metodoPago": f"metodoPago must be one of: {', '.join(PAYMENT_METHODS)}",
        "referenciaPago": f"referenciaPago cannot exceed {PAYMENT_REFERENCE_MAX} characters",
        "notas": NOTES_MESSAGE,
    }
    text_fields: ClassVar[FrozenSet[str]] = frozenset({"referenciaPago", "notas"})


class CancelBody(RequestBody):
    reason: Optional[CancelReason] = None

    error_messages: ClassVar[Dict[str, str]] = {
        "reason": f"reason cannot exceed {CANCEL_REASON_MAX} characters",
    }
    text_fields: ClassVar[FrozenSet[str]] = frozenset({"reason"})


class UpdateStatusBody(RequestBody):
    estado: OrderStatus
    notas: Optional[Notes] = None

    error_messages: ClassVar[Dict[str, str]] = {
        "estado": f"estado must be one of: {', '.join(ORDER_STATUSES)}",
        "notas": NOTES_MESSAGE,
    }
    text_fields: ClassVar[FrozenSet[str]] = frozenset({"notas"})


def validate_create_from_cart(payload: Any) -> ValidationResult:
    return validate(CreateFromCartBody, payload)


def validate_cancel(payload: Any) -> ValidationResult:
    return validate(CancelBody, payload)


def validate_update_status(payload: Any) -> ValidationResult:
    return validate(UpdateStatusBody, payload)

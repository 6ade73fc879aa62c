# app/services/payments.py
"""
Payment processor.

initiate_payment  - idempotent order descriptor, no transaction rows
process_payment   - validate method details, one gateway attempt, one row
refund_payment    - PAID -> REFUNDED once the booking is cancelled/rejected

Payment status and booking status are separate axes: a successful payment
never changes booking.status. A failed attempt leaves payment_status at
PENDING so the customer can simply try again.
"""
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import (
    CARD_NETWORKS,
    NET_BANKING_BANKS,
    PAYMENT_CURRENCY,
    PAYMENT_TIMEOUT_SECONDS,
    WALLET_PROVIDERS,
)
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ExternalFailure,
    InvalidStateError,
    ValidationError,
)
from app.core.locks import booking_lock
from app.core.security import Actor
from app.db.models.booking import Booking
from app.db.models.enums import (
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    TransactionOutcome,
)
from app.db.models.payment import PaymentTransaction
from app.services.common import atomic, is_booking_customer, load_booking
from app.services.disclosure import apply_disclosure
from app.services.payment_gateway import (
    GatewayResult,
    PaymentGateway,
    charge_with_timeout,
    get_gateway,
    new_transaction_ref,
)

logger = logging.getLogger(__name__)

UPI_RE = re.compile(r"^[^@\s]+@[^@\s]+$")
CARD_NUMBER_RE = re.compile(r"^\d{16}$")
CARD_EXPIRY_RE = re.compile(r"^(\d{2})/(\d{2})$")
CVV_RE = re.compile(r"^\d{3,4}$")

REFUNDABLE_STATUSES = {BookingStatus.CANCELLED, BookingStatus.REJECTED}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --------------------------------------------------
# Method payload validation
# --------------------------------------------------
def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


def _validate_upi(payload: dict) -> dict:
    upi_id = _text(payload, "upi_id")
    if not UPI_RE.match(upi_id):
        raise ValidationError("Enter a valid UPI ID (e.g. name@upi)")
    return {"upi_id": upi_id}


def _validate_card(payload: dict, today: datetime) -> dict:
    number = re.sub(r"[\s-]", "", _text(payload, "card_number"))
    if not CARD_NUMBER_RE.match(number):
        raise ValidationError("Enter full 16-digit card number")

    m = CARD_EXPIRY_RE.match(_text(payload, "card_expiry"))
    if not m or not 1 <= int(m.group(1)) <= 12:
        raise ValidationError("Enter card expiry (MM/YY)")
    month, year = int(m.group(1)), 2000 + int(m.group(2))
    if (year, month) < (today.year, today.month):
        raise ValidationError("Card has expired")

    if not CVV_RE.match(_text(payload, "card_cvv")):
        raise ValidationError("Enter CVV")

    holder = _text(payload, "card_holder_name")
    if not holder:
        raise ValidationError("Enter cardholder name")

    network = (_text(payload, "card_network") or "VISA").upper()
    if network not in CARD_NETWORKS:
        raise ValidationError(f"Unsupported card network '{network}'")

    # the full number and the CVV stop here
    return {"card_last4": number[-4:], "card_network": network, "card_holder_name": holder}


def _validate_net_banking(payload: dict) -> dict:
    bank = _text(payload, "bank_name")
    if bank not in NET_BANKING_BANKS:
        raise ValidationError("Select your bank")
    return {"bank_name": bank}


def _validate_wallet(payload: dict) -> dict:
    wallet = _text(payload, "wallet_id").upper()
    if wallet not in WALLET_PROVIDERS:
        raise ValidationError("Select a supported wallet")
    return {"wallet_id": wallet}


def validate_method_payload(method: PaymentMethod, payload: dict, today: Optional[datetime] = None) -> dict:
    """Check the payload for `method` and return only the masked fields we may store."""
    payload = payload or {}
    if method == PaymentMethod.UPI:
        return _validate_upi(payload)
    if method == PaymentMethod.CARD:
        return _validate_card(payload, today or _utcnow())
    if method == PaymentMethod.NET_BANKING:
        return _validate_net_banking(payload)
    if method == PaymentMethod.WALLET:
        return _validate_wallet(payload)
    raise ValidationError(f"Unsupported payment method '{method}'")


# --------------------------------------------------
# Guards
# --------------------------------------------------
def _require_customer(booking: Booking, actor: Actor):
    if not is_booking_customer(booking, actor):
        raise AuthorizationError("Not your booking")


def _require_payable(booking: Booking):
    if booking.payment_status == PaymentStatus.PAID:
        raise ConflictError("Booking is already paid")
    if booking.payment_status == PaymentStatus.REFUNDED:
        raise InvalidStateError("Booking payment was refunded")
    if booking.status in REFUNDABLE_STATUSES:
        raise InvalidStateError(f"Cannot pay for a booking that is {booking.status.value}")


def _ensure_order_ref(booking: Booking) -> str:
    if not booking.order_ref:
        booking.order_ref = "ORD" + uuid.uuid4().hex[:12].upper()
    return booking.order_ref


# --------------------------------------------------
# Operations
# --------------------------------------------------
def initiate_payment(db: Session, actor: Actor, booking_id: int) -> dict:
    """
    Return the order the client should pay. Calling it again before a
    successful payment yields the same order id and amount.
    """
    with booking_lock(booking_id):
        with atomic(db):
            booking = load_booking(db, booking_id, for_update=True)
            _require_customer(booking, actor)
            _require_payable(booking)
            order_ref = _ensure_order_ref(booking)
        db.refresh(booking)

    logger.info("Payment order %s ready for booking %s", order_ref, booking.id)
    return {
        "order_id": order_ref,
        "booking_id": booking.id,
        "amount": booking.total_amount,
        "currency": PAYMENT_CURRENCY,
        "provider_name": booking.provider.full_name if booking.provider else None,
        "category_name": booking.category.name if booking.category else None,
        "scheduled_at": booking.scheduled_at,
    }


def process_payment(
    db: Session,
    actor: Actor,
    booking_id: int,
    method,
    payload: Optional[dict] = None,
    gateway: Optional[PaymentGateway] = None,
) -> dict:
    try:
        method = PaymentMethod(method)
    except ValueError:
        raise ValidationError(f"Unsupported payment method '{method}'")

    masked = validate_method_payload(method, payload or {})
    gateway = gateway or get_gateway()

    with booking_lock(booking_id):
        with atomic(db):
            booking = load_booking(db, booking_id, for_update=True)
            _require_customer(booking, actor)
            _require_payable(booking)
            order_ref = _ensure_order_ref(booking)
            amount = booking.total_amount

            try:
                result = charge_with_timeout(gateway, order_ref, amount, method, timeout=PAYMENT_TIMEOUT_SECONDS)
            except ExternalFailure as exc:
                # a gateway that errors or times out counts as a failed attempt
                result = GatewayResult(success=False, reference=new_transaction_ref(), reason=exc.message)

            txn = PaymentTransaction(
                booking_id=booking.id,
                transaction_ref=result.reference or new_transaction_ref(),
                amount=amount,
                method=method,
                outcome=TransactionOutcome.SUCCESS if result.success else TransactionOutcome.FAILURE,
                failure_reason=None if result.success else (result.reason or "Payment failed"),
                **masked,
            )
            db.add(txn)

            if result.success:
                booking.payment_status = PaymentStatus.PAID
                booking.paid_at = _utcnow()
                apply_disclosure(booking)
        db.refresh(txn)
        db.refresh(booking)

    if result.success:
        logger.info("Payment %s succeeded for booking %s (%s %s)", txn.transaction_ref, booking.id, amount, method.value)
        return {
            "transaction_id": txn.transaction_ref,
            "booking_id": booking.id,
            "amount": amount,
            "status": "SUCCESS",
            "method": method,
            "paid_at": booking.paid_at,
            "message": "Payment successful",
        }

    logger.warning("Payment %s failed for booking %s: %s", txn.transaction_ref, booking.id, txn.failure_reason)
    return {
        "transaction_id": txn.transaction_ref,
        "booking_id": booking.id,
        "amount": amount,
        "status": "FAILED",
        "method": method,
        "paid_at": None,
        "message": txn.failure_reason,
    }


def refund_payment(db: Session, actor: Actor, booking_id: int) -> Booking:
    with booking_lock(booking_id):
        with atomic(db):
            booking = load_booking(db, booking_id, for_update=True)
            if not (actor.is_admin or is_booking_customer(booking, actor)):
                raise AuthorizationError("Not your booking")
            if booking.payment_status != PaymentStatus.PAID:
                raise InvalidStateError(f"Only paid bookings can be refunded (payment is {booking.payment_status.value})")
            if booking.status not in REFUNDABLE_STATUSES:
                raise InvalidStateError(
                    f"Refunds need a cancelled or rejected booking (booking is {booking.status.value})"
                )
            booking.payment_status = PaymentStatus.REFUNDED
            booking.refunded_at = _utcnow()
        db.refresh(booking)

    logger.info("Booking %s refunded %s by user %s", booking.id, booking.total_amount, actor.user_id)
    return booking


def get_payment_status(db: Session, actor: Actor, booking_id: int) -> dict:
    booking = load_booking(db, booking_id)
    if not (actor.is_admin or is_booking_customer(booking, actor)):
        raise AuthorizationError("Not your booking")

    latest = (
        db.query(PaymentTransaction)
        .filter(PaymentTransaction.booking_id == booking.id)
        .order_by(PaymentTransaction.id.desc())
        .first()
    )
    if booking.payment_status == PaymentStatus.REFUNDED:
        status = "REFUNDED"
    elif latest is None:
        status = "NOT_PAID"
    elif latest.outcome == TransactionOutcome.SUCCESS:
        status = "SUCCESS"
    else:
        status = "FAILED"

    return {
        "transaction_id": latest.transaction_ref if latest else None,
        "booking_id": booking.id,
        "amount": booking.total_amount,
        "status": status,
        "method": latest.method if latest else None,
        "paid_at": booking.paid_at,
        "message": latest.failure_reason if latest else None,
    }

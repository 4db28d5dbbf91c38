import logging

from sqlalchemy.orm import Session

from pitstop.core.errors import invalid_argument, not_found
from pitstop.models.booking import BOOKING_CONFIRMED, Booking
from pitstop.models.payment import PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_REFUNDED, Payment

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"
CHARGE_REFUNDED = "charge.refunded"


def _event_object(event: dict) -> dict:
    return (event.get("data") or {}).get("object") or {}


def _to_int(value, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise invalid_argument(f"Invalid {field_name} in session metadata") from exc


def _set_payment_status(db: Session, session_id: str | None, status: str) -> Payment:
    payment = db.query(Payment).filter(Payment.stripe_session_id == session_id).first()
    if payment is None:
        raise not_found("Payment not found")
    payment.status = status
    return payment


def complete_checkout(db: Session, session: dict) -> None:
    metadata = session.get("metadata") or {}
    if not metadata.get("bookingId"):
        raise invalid_argument("Missing bookingId in session metadata")
    booking_id = _to_int(metadata["bookingId"], "bookingId")

    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise not_found("Booking not found")

    payment = db.query(Payment).filter(Payment.stripe_session_id == session.get("id")).first()
    if payment is None:
        amount_total = session.get("amount_total") or 0
        user_id = metadata.get("userId")
        payment = Payment(
            booking_id=booking.id,
            user_id=_to_int(user_id, "userId") if user_id else booking.user_id,
            amount=amount_total / 100,
            stripe_session_id=session.get("id"),
        )
        db.add(payment)

    payment.status = PAYMENT_COMPLETED
    booking.status = BOOKING_CONFIRMED


def apply_payment_event(db: Session, event: dict) -> bool:
    """Apply a verified gateway event; returns False for ignored event types.

    All updates of one event are committed together or not at all.
    """
    event_type = event.get("type")
    event_object = _event_object(event)

    try:
        if event_type == CHECKOUT_COMPLETED:
            complete_checkout(db, event_object)
        elif event_type == CHECKOUT_EXPIRED:
            _set_payment_status(db, event_object.get("id"), PAYMENT_FAILED)
        elif event_type == CHARGE_REFUNDED:
            _set_payment_status(db, event_object.get("payment_intent"), PAYMENT_REFUNDED)
        else:
            logger.info("Ignoring payment event of type %s", event_type)
            return False
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Applied payment event %s (%s)", event.get("id"), event_type)
    return True

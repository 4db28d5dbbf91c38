from datetime import date, time

import pytest

from pitstop.core.errors import ApiError, ErrorKind
from pitstop.models.booking import Booking
from pitstop.models.payment import Payment
from pitstop.services.payment_events import apply_payment_event


@pytest.fixture
def pending_booking(db, customer_user, oil_change) -> Booking:
    booking = Booking(
        user_id=customer_user.id,
        service_id=oil_change.id,
        date=date(2026, 1, 5),
        time=time(10, 0),
        status='PENDING',
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def checkout_event(event_type: str, session: dict) -> dict:
    return {'id': 'evt_test', 'type': event_type, 'data': {'object': session}}


def test_checkout_completed_creates_payment_and_confirms_booking(db, customer_user, pending_booking) -> None:
    event = checkout_event('checkout.session.completed', {
        'id': 'cs_123',
        'amount_total': 4900,
        'metadata': {'bookingId': str(pending_booking.id), 'userId': str(customer_user.id)},
    })

    assert apply_payment_event(db, event) is True

    payment = db.query(Payment).filter(Payment.stripe_session_id == 'cs_123').one()
    db.refresh(pending_booking)
    assert payment.status == 'COMPLETED'
    assert payment.amount == 49.0
    assert payment.user_id == customer_user.id
    assert pending_booking.status == 'CONFIRMED'


def test_checkout_completed_updates_existing_payment(db, customer_user, pending_booking) -> None:
    db.add(Payment(user_id=customer_user.id, booking_id=pending_booking.id, amount=49.0, stripe_session_id='cs_456'))
    db.commit()

    apply_payment_event(db, checkout_event('checkout.session.completed', {
        'id': 'cs_456',
        'amount_total': 4900,
        'metadata': {'bookingId': str(pending_booking.id)},
    }))

    payments = db.query(Payment).all()
    assert len(payments) == 1
    assert payments[0].status == 'COMPLETED'


def test_checkout_completed_requires_booking_id(db) -> None:
    with pytest.raises(ApiError) as exception_info:
        apply_payment_event(db, checkout_event('checkout.session.completed', {'id': 'cs_1', 'metadata': {}}))

    assert exception_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exception_info.value.message == 'Missing bookingId in session metadata'


def test_checkout_completed_for_missing_booking_changes_nothing(db) -> None:
    with pytest.raises(ApiError) as exception_info:
        apply_payment_event(db, checkout_event('checkout.session.completed', {
            'id': 'cs_missing',
            'amount_total': 1000,
            'metadata': {'bookingId': '404'},
        }))

    assert exception_info.value.kind is ErrorKind.NOT_FOUND
    assert db.query(Payment).count() == 0


def test_checkout_expired_marks_payment_failed(db, customer_user, pending_booking) -> None:
    db.add(Payment(user_id=customer_user.id, booking_id=pending_booking.id, amount=49.0, stripe_session_id='cs_exp'))
    db.commit()

    apply_payment_event(db, checkout_event('checkout.session.expired', {'id': 'cs_exp'}))

    assert db.query(Payment).one().status == 'FAILED'


def test_charge_refunded_matches_payment_intent(db, customer_user, pending_booking) -> None:
    db.add(Payment(user_id=customer_user.id, booking_id=pending_booking.id, amount=49.0, stripe_session_id='pi_789'))
    db.commit()

    apply_payment_event(db, checkout_event('charge.refunded', {'id': 'ch_1', 'payment_intent': 'pi_789'}))

    assert db.query(Payment).one().status == 'REFUNDED'


def test_unknown_event_types_are_ignored(db) -> None:
    assert apply_payment_event(db, checkout_event('invoice.paid', {'id': 'in_1'})) is False

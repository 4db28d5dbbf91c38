from datetime import date, time

import pytest

from pitstop.core.errors import ApiError, ErrorKind
from pitstop.routes.availability_routes import get_availability, parse_availability_query


def test_parse_availability_query_returns_date_and_service_id() -> None:
    assert parse_availability_query('2026-01-05', '7') == (date(2026, 1, 5), 7)


@pytest.mark.parametrize(
    ('date_value', 'service_id_value', 'message'),
    [
        (None, '1', 'Date and service ID are required'),
        ('2026-01-05', None, 'Date and service ID are required'),
        ('', '', 'Date and service ID are required'),
        ('05/01/2026', '1', 'Invalid date'),
        ('2026-02-30', '1', 'Invalid date'),
        ('2026-01-05', 'abc', 'Invalid service ID'),
    ],
)
def test_parse_availability_query_rejects_bad_input(date_value, service_id_value, message: str) -> None:
    with pytest.raises(ApiError) as exception_info:
        parse_availability_query(date_value, service_id_value)

    assert exception_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exception_info.value.message == message


def test_get_availability_returns_open_slots(db, customer_user, oil_change, add_business_hours, monkeypatch) -> None:
    monkeypatch.setattr('pitstop.core.config.WEEK_START', 'sunday')
    monkeypatch.setattr('pitstop.core.config.SLOT_INTERVAL_MINUTES', 30)
    add_business_hours(1, time(10, 0), time(11, 0))

    result = get_availability(
        date_value='2026-01-05',
        service_id_value=str(oil_change.id),
        current_user=customer_user,
        db=db,
    )

    assert result.is_available is True
    assert result.available_slots == ['10:00', '10:30']


def test_get_availability_unknown_service_is_not_found(db, customer_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        get_availability(date_value='2026-01-05', service_id_value='999', current_user=customer_user, db=db)

    assert exception_info.value.kind is ErrorKind.NOT_FOUND

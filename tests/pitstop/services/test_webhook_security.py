import json
import time

import pytest

from pitstop.services.webhook_security import (
    WebhookSignatureError,
    compute_signature,
    construct_event,
    parse_signature_header,
    verify_signature,
)

SECRET = 'whsec_unit'


def signed_header(payload: bytes, timestamp: int, secret: str = SECRET) -> str:
    return f't={timestamp},v1={compute_signature(secret, timestamp, payload)}'


def test_parse_signature_header_reads_timestamp_and_all_signatures() -> None:
    timestamp, signatures = parse_signature_header('t=1700000000,v1=abc,v0=old,v1=def')

    assert timestamp == 1700000000
    assert signatures == ['abc', 'def']


@pytest.mark.parametrize('header', ['v1=abc', 't=soon,v1=abc', 't=1700000000', ''])
def test_parse_signature_header_rejects_malformed_headers(header: str) -> None:
    with pytest.raises(WebhookSignatureError):
        parse_signature_header(header)


def test_verify_signature_accepts_matching_signature() -> None:
    payload = b'{"type": "checkout.session.completed"}'
    now = 1700000000

    verify_signature(payload, signed_header(payload, now), SECRET, tolerance=300, now=now + 10)


def test_verify_signature_rejects_tampered_body() -> None:
    payload = b'{"type": "checkout.session.completed"}'
    now = 1700000000

    with pytest.raises(WebhookSignatureError):
        verify_signature(payload + b' ', signed_header(payload, now), SECRET, tolerance=300, now=now)


def test_verify_signature_rejects_wrong_secret() -> None:
    payload = b'{}'
    now = 1700000000

    with pytest.raises(WebhookSignatureError):
        verify_signature(payload, signed_header(payload, now, secret='other'), SECRET, tolerance=300, now=now)


def test_verify_signature_rejects_stale_timestamp() -> None:
    payload = b'{}'
    now = 1700000000

    with pytest.raises(WebhookSignatureError):
        verify_signature(payload, signed_header(payload, now - 301), SECRET, tolerance=300, now=now)


def test_verify_signature_requires_configured_secret() -> None:
    payload = b'{}'

    with pytest.raises(WebhookSignatureError):
        verify_signature(payload, signed_header(payload, 1700000000), '', tolerance=300, now=1700000000)


def test_construct_event_returns_decoded_event() -> None:
    event = {'id': 'evt_1', 'type': 'charge.refunded', 'data': {'object': {}}}
    payload = json.dumps(event).encode('utf-8')

    decoded = construct_event(payload, signed_header(payload, int(time.time())), SECRET)

    assert decoded == event


def test_construct_event_rejects_payload_without_type() -> None:
    payload = b'{"id": "evt_1"}'

    with pytest.raises(WebhookSignatureError):
        construct_event(payload, signed_header(payload, int(time.time())), SECRET)

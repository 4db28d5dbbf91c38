"""
Signature checks for payment gateway webhooks.

The gateway sends ``Stripe-Signature: t=<unix ts>,v1=<hex>[,v1=<hex>...]``
where each ``v1`` value is HMAC-SHA256 of ``"<t>.<raw body>"`` keyed with the
endpoint secret.
"""

import hashlib
import hmac
import json
import logging
import time

from pitstop.core import config

logger = logging.getLogger(__name__)

SIGNATURE_SCHEME = "v1"


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""


def compute_signature(secret: str, timestamp: int | str, payload: bytes) -> str:
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def parse_signature_header(header: str) -> tuple[int, list[str]]:
    timestamp: int | None = None
    signatures: list[str] = []

    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as exc:
                raise WebhookSignatureError("Invalid timestamp in signature header") from exc
        elif key == SIGNATURE_SCHEME and value:
            signatures.append(value)

    if timestamp is None:
        raise WebhookSignatureError("No timestamp in signature header")
    if not signatures:
        raise WebhookSignatureError("No signatures found with expected scheme")
    return timestamp, signatures


def verify_signature(
    payload: bytes,
    header: str,
    secret: str,
    tolerance: int | None = None,
    now: float | None = None,
) -> None:
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")

    tolerance = config.WEBHOOK_TOLERANCE_SECONDS if tolerance is None else tolerance
    timestamp, signatures = parse_signature_header(header)

    expected = compute_signature(secret, timestamp, payload)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature")

    current_time = time.time() if now is None else now
    if tolerance > 0 and abs(current_time - timestamp) > tolerance:
        raise WebhookSignatureError("Timestamp outside the tolerance zone")


def construct_event(payload: bytes, header: str, secret: str, tolerance: int | None = None) -> dict:
    """Verify the signature and return the decoded event."""
    try:
        verify_signature(payload, header, secret, tolerance)
    except WebhookSignatureError as exc:
        logger.warning("Webhook signature rejected: %s", exc)
        raise

    try:
        event = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise WebhookSignatureError("Webhook payload is not valid JSON") from exc

    if not isinstance(event, dict) or "type" not in event:
        raise WebhookSignatureError("Webhook payload is not an event")
    return event

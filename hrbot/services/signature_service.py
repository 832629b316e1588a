"""Verification of Slack request signatures.

Slack signs every webhook request with ``X-Slack-Signature``: an HMAC-SHA256 of
``v0:{timestamp}:{raw body}`` keyed with the app's signing secret, rendered as
``v0={hexdigest}``. The timestamp arrives in ``X-Slack-Request-Timestamp`` and
must be close to the current time to bound the replay window.
"""

import hashlib
import hmac
import time
from typing import Optional

from hrbot.config import settings
from hrbot.logging_config import get_logger
from hrbot.services.errors import AuthenticationError

logger = get_logger("signature_service")

SIGNATURE_VERSION = "v0"
DEFAULT_MAX_AGE_SECONDS = 300


def compute_slack_signature(timestamp: str, raw_body: str, signing_secret: str) -> str:
    base_string = f"{SIGNATURE_VERSION}:{timestamp}:{raw_body}".encode("utf-8")
    digest = hmac.new(signing_secret.encode("utf-8"), base_string, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_signature(
    timestamp: str,
    raw_body: str,
    signature: str,
    signing_secret: Optional[str] = None,
) -> bool:
    """Return True only if ``signature`` matches the canonical signature. Never raises."""
    secret = signing_secret if signing_secret is not None else settings.slack_signing_secret
    if not secret:
        logger.error("SLACK_SIGNING_SECRET is not configured")
        return False

    try:
        expected = compute_slack_signature(timestamp, raw_body, secret)
        if len(signature) != len(expected):
            return False
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
    except Exception as e:
        logger.error(f"Error verifying Slack signature: {e}")
        return False


def is_timestamp_fresh(
    timestamp: str,
    now: Optional[float] = None,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
) -> bool:
    try:
        request_ts = int(timestamp)
    except (TypeError, ValueError):
        return False
    current = int(now if now is not None else time.time())
    return abs(current - request_ts) <= max_age_seconds


def check_request_signature(
    timestamp: Optional[str],
    raw_body: str,
    signature: Optional[str],
    now: Optional[float] = None,
) -> None:
    """Raise AuthenticationError unless the request is signed by Slack and fresh."""
    if not signature or not timestamp:
        raise AuthenticationError("Missing signature or timestamp")

    if not is_timestamp_fresh(timestamp, now=now, max_age_seconds=settings.signature_max_age_seconds):
        raise AuthenticationError("Request timestamp too old")

    if not verify_slack_signature(timestamp, raw_body, signature):
        raise AuthenticationError("Invalid signature")

import hashlib
import hmac
import time

import pytest

from hrbot.services.errors import AuthenticationError
from hrbot.services.signature_service import (
    check_request_signature,
    compute_slack_signature,
    is_timestamp_fresh,
    verify_slack_signature,
)
from tests.conftest import SIGNING_SECRET

BODY = '{"type":"event_callback","event":{"type":"message","text":"hi"}}'
TIMESTAMP = "1531420618"


def _expected(timestamp: str = TIMESTAMP, body: str = BODY) -> str:
    digest = hmac.new(SIGNING_SECRET.encode(), f"v0:{timestamp}:{body}".encode(), hashlib.sha256).hexdigest()
    return f"v0={digest}"


def _flip_bit(value: str, index: int = 0) -> str:
    return value[:index] + chr(ord(value[index]) ^ 1) + value[index + 1 :]


class TestComputeSignature:
    def test_matches_slack_format(self):
        signature = compute_slack_signature(TIMESTAMP, BODY, SIGNING_SECRET)
        assert signature == _expected()
        assert signature.startswith("v0=")
        assert len(signature) == 3 + 64


class TestVerifySlackSignature:
    def test_accepts_canonical_signature(self):
        assert verify_slack_signature(TIMESTAMP, BODY, _expected(), signing_secret=SIGNING_SECRET) is True

    def test_rejects_mutated_body(self):
        assert verify_slack_signature(TIMESTAMP, _flip_bit(BODY, 5), _expected(), signing_secret=SIGNING_SECRET) is False

    def test_rejects_mutated_timestamp(self):
        assert verify_slack_signature(_flip_bit(TIMESTAMP, 9), BODY, _expected(), signing_secret=SIGNING_SECRET) is False

    def test_rejects_mutated_signature(self):
        signature = _expected()
        for index in (3, 20, len(signature) - 1):
            assert verify_slack_signature(TIMESTAMP, BODY, _flip_bit(signature, index), signing_secret=SIGNING_SECRET) is False

    def test_rejects_length_mismatch(self):
        assert verify_slack_signature(TIMESTAMP, BODY, _expected()[:-1], signing_secret=SIGNING_SECRET) is False

    def test_returns_false_without_secret(self, monkeypatch):
        from hrbot.config import settings

        monkeypatch.setattr(settings, "slack_signing_secret", None)
        assert verify_slack_signature(TIMESTAMP, BODY, _expected()) is False

    def test_returns_false_on_internal_error(self):
        assert verify_slack_signature(TIMESTAMP, BODY, None, signing_secret=SIGNING_SECRET) is False


class TestTimestampFreshness:
    def test_within_window(self):
        assert is_timestamp_fresh("1000", now=1300) is True
        assert is_timestamp_fresh("1300", now=1000) is True

    def test_outside_window(self):
        assert is_timestamp_fresh("1000", now=1301) is False
        assert is_timestamp_fresh("1301", now=1000) is False

    def test_non_numeric_timestamp(self):
        assert is_timestamp_fresh("yesterday", now=1000) is False


class TestCheckRequestSignature:
    def test_accepts_fresh_signed_request(self, signing_secret):
        now = time.time()
        timestamp = str(int(now))
        check_request_signature(timestamp, BODY, _expected(timestamp), now=now)

    def test_missing_headers(self, signing_secret):
        with pytest.raises(AuthenticationError) as exc:
            check_request_signature(None, BODY, _expected())
        assert exc.value.reason == "Missing signature or timestamp"

    def test_stale_timestamp_rejected_even_with_valid_signature(self, signing_secret):
        now = time.time()
        timestamp = str(int(now) - 301)
        with pytest.raises(AuthenticationError) as exc:
            check_request_signature(timestamp, BODY, _expected(timestamp), now=now)
        assert exc.value.reason == "Request timestamp too old"

    def test_invalid_signature(self, signing_secret):
        now = time.time()
        timestamp = str(int(now))
        with pytest.raises(AuthenticationError) as exc:
            check_request_signature(timestamp, BODY, "v0=" + "0" * 64, now=now)
        assert exc.value.reason == "Invalid signature"

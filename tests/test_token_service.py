"""
Tests for session token issuing and verification.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from mobile_auth.exceptions import MalformedTokenError, TokenConfigurationError, TokenExpiredError
from mobile_auth.services.token_service import TokenService

from conftest import TEST_SECRET


class TestTokenService:
    """Test cases for TokenService."""

    @pytest.fixture
    def payload(self):
        return {"userId": 7, "mobileNumber": "+919876543210"}

    def test_round_trip_returns_payload(self, token_service, payload):
        token = token_service.issue(payload)
        assert token_service.verify(token) == payload

    def test_issue_does_not_mutate_payload(self, token_service, payload):
        original = dict(payload)
        token_service.issue(payload)
        assert payload == original

    def test_default_window_is_seven_days(self, token_service, payload):
        now = datetime.now(timezone.utc)
        claims = token_service.decode(token_service.issue(payload, now=now))
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600
        assert claims["iat"] == int(now.timestamp())

    def test_issue_is_deterministic_for_same_inputs(self, token_service, payload):
        now = datetime.now(timezone.utc)
        assert token_service.issue(payload, now=now) == token_service.issue(payload, now=now)

    def test_token_valid_just_before_window_ends(self, token_service, payload):
        issued = datetime.now(timezone.utc) - timedelta(days=7) + timedelta(minutes=5)
        token = token_service.issue(payload, now=issued)
        assert token_service.verify(token) == payload

    def test_expired_token_raises_expired(self, token_service, payload):
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        token = token_service.issue(payload, now=issued)

        with pytest.raises(TokenExpiredError, match="Token has expired"):
            token_service.verify(token)

    def test_custom_window(self, payload):
        service = TokenService(secret=TEST_SECRET, ttl=timedelta(hours=1))
        token = service.issue(payload, now=datetime.now(timezone.utc) - timedelta(hours=2))

        with pytest.raises(TokenExpiredError):
            service.verify(token)

    def test_tampered_signature_is_malformed(self, token_service, payload):
        token = token_service.issue(payload)
        header, body, signature = token.split(".")
        tampered = f"{header}.{body}.{signature[:-2]}{'AA' if signature[-2:] != 'AA' else 'BB'}"

        with pytest.raises(MalformedTokenError, match="Invalid token"):
            token_service.verify(tampered)

    def test_tampered_payload_is_malformed(self, token_service, payload):
        token = token_service.issue(payload)
        forged = jwt.encode(
            {**token_service.decode(token), "userId": 8},
            "some-other-secret-that-is-long-enough-000000",
            algorithm="HS256"
        )
        header, _, signature = token.split(".")
        _, forged_body, _ = forged.split(".")

        with pytest.raises(MalformedTokenError):
            token_service.verify(f"{header}.{forged_body}.{signature}")

    def test_token_from_other_secret_is_malformed(self, payload):
        other = TokenService(secret="a-completely-different-signing-secret-9876543210")
        token = other.issue(payload)

        with pytest.raises(MalformedTokenError):
            TokenService(secret=TEST_SECRET).verify(token)

    def test_expired_token_with_bad_signature_is_malformed(self, payload):
        other = TokenService(secret="a-completely-different-signing-secret-9876543210")
        token = other.issue(payload, now=datetime.now(timezone.utc) - timedelta(days=30))

        with pytest.raises(MalformedTokenError):
            TokenService(secret=TEST_SECRET).verify(token)

    @pytest.mark.parametrize("value", ["", "not-a-token", "a.b.c", "Bearer x.y.z"])
    def test_garbage_is_malformed(self, token_service, value):
        with pytest.raises(MalformedTokenError):
            token_service.verify(value)

    def test_token_without_expiry_is_malformed(self, token_service, payload):
        token = jwt.encode(payload, TEST_SECRET, algorithm="HS256")

        with pytest.raises(MalformedTokenError):
            token_service.verify(token)

    def test_verify_claims_keeps_registered_claims(self, token_service, payload):
        claims = token_service.verify_claims(token_service.issue(payload))
        assert {"iat", "exp"} <= set(claims)
        assert claims["userId"] == 7

    def test_decode_skips_signature_and_expiry(self, payload):
        other = TokenService(secret="a-completely-different-signing-secret-9876543210")
        token = other.issue(payload, now=datetime.now(timezone.utc) - timedelta(days=30))

        claims = TokenService.decode(token)
        assert claims["userId"] == 7
        assert claims["mobileNumber"] == "+919876543210"

    def test_decode_returns_none_for_garbage(self):
        assert TokenService.decode("not-a-token") is None

    class TestConfiguration:

        def test_empty_secret_is_rejected(self):
            with pytest.raises(TokenConfigurationError):
                TokenService(secret="")

        def test_asymmetric_algorithm_is_rejected(self):
            with pytest.raises(TokenConfigurationError):
                TokenService(secret=TEST_SECRET, algorithm="RS256")

        def test_non_positive_window_is_rejected(self):
            with pytest.raises(TokenConfigurationError):
                TokenService(secret=TEST_SECRET, ttl=timedelta(0))

        def test_other_hmac_algorithms_work(self):
            service = TokenService(secret=TEST_SECRET, algorithm="HS512")
            token = service.issue({"userId": 1, "mobileNumber": "+11"})
            assert jwt.get_unverified_header(token)["alg"] == "HS512"
            assert service.verify(token) == {"userId": 1, "mobileNumber": "+11"}

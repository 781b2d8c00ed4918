"""Tests for TenantGateway.authorize and credential extraction."""
import logging
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
from sqlalchemy.orm import Session

from app.core.auth import (
    GatewayRejected,
    RejectionReason,
    TenantGateway,
    extract_credential,
)
from app.core.rate_limiter import RateLimiterRegistry
from app.core.sports import Sport
from app.repositories import ApiKeyRepository


class FakeClock:
    def __init__(self):
        self.now = 500.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def recorder():
    recorder = Mock()
    recorder.submit = Mock(return_value=True)
    return recorder


@pytest.fixture
def gateway(recorder) -> TenantGateway:
    return TenantGateway(limiters=RateLimiterRegistry(clock=FakeClock()), recorder=recorder)


@pytest.fixture
def repository(db_session: Session) -> ApiKeyRepository:
    return ApiKeyRepository(db_session)


def assert_rejected(exc_info, reason: RejectionReason, status_code: int, code: str):
    assert exc_info.value.reason is reason
    assert exc_info.value.status_code == status_code
    assert exc_info.value.code == code


class TestExtractCredential:

    def test_bearer_wins(self):
        assert extract_credential("sk_live_bearer", "sk_live_header") == "sk_live_bearer"

    def test_header_fallback(self):
        assert extract_credential(None, "sk_live_header") == "sk_live_header"

    def test_blank_values_are_missing(self):
        assert extract_credential("  ", "") is None
        assert extract_credential(None, None) is None


class TestTenantGateway:
    """authorize(): checks run in order and stop at the first failure."""

    # Credential checks
    # ─────────────────────────────────────────────────────────────

    def test_missing_credential(self, gateway, repository):
        with pytest.raises(GatewayRejected) as exc_info:
            gateway.authorize(None, Sport.SOCCER, repository)

        assert_rejected(exc_info, RejectionReason.MISSING_CREDENTIAL, 401, "MISSING_API_KEY")
        assert exc_info.value.headers["WWW-Authenticate"] == "Bearer"

    def test_unknown_key(self, gateway, repository, make_api_key):
        make_api_key()
        with pytest.raises(GatewayRejected) as exc_info:
            gateway.authorize("sk_live_not-a-real-key", Sport.SOCCER, repository)

        assert_rejected(exc_info, RejectionReason.INVALID_CREDENTIAL, 401, "INVALID_API_KEY")

    @pytest.mark.parametrize("secret", ["hunter2pw", "sk_live_guessed-secret-value", "tok-9Qz"])
    def test_unknown_key_is_not_logged(self, gateway, repository, caplog, secret):
        with caplog.at_level(logging.DEBUG):
            with pytest.raises(GatewayRejected):
                gateway.authorize(secret, Sport.SOCCER, repository)

        assert "invalid_credential" in caplog.text
        assert secret[:12] not in caplog.text

    def test_revoked_key(self, gateway, repository, make_api_key):
        plaintext, _ = make_api_key(is_active=False)
        with pytest.raises(GatewayRejected) as exc_info:
            gateway.authorize(plaintext, Sport.SOCCER, repository)

        assert_rejected(exc_info, RejectionReason.REVOKED, 403, "API_KEY_REVOKED")
        assert "WWW-Authenticate" not in exc_info.value.headers

    def test_expired_key(self, gateway, repository, make_api_key, expired_at):
        plaintext, _ = make_api_key(expires_at=expired_at)
        with pytest.raises(GatewayRejected) as exc_info:
            gateway.authorize(plaintext, Sport.SOCCER, repository)

        assert_rejected(exc_info, RejectionReason.EXPIRED, 401, "API_KEY_EXPIRED")

    def test_future_expiry_is_accepted(self, gateway, repository, make_api_key):
        plaintext, _ = make_api_key(expires_at=datetime.utcnow() + timedelta(days=30))
        assert gateway.authorize(plaintext, Sport.SOCCER, repository).name == "Test Tenant"

    def test_revocation_is_checked_before_scope(self, gateway, repository, make_api_key):
        plaintext, _ = make_api_key(sports=["basketball"], is_active=False)
        with pytest.raises(GatewayRejected) as exc_info:
            gateway.authorize(plaintext, Sport.SOCCER, repository)

        assert exc_info.value.reason is RejectionReason.REVOKED

    # Scope checks
    # ─────────────────────────────────────────────────────────────

    def test_sport_outside_scope(self, gateway, repository, make_api_key):
        plaintext, _ = make_api_key(sports=["basketball"])
        with pytest.raises(GatewayRejected) as exc_info:
            gateway.authorize(plaintext, Sport.SOCCER, repository)

        assert_rejected(exc_info, RejectionReason.SCOPE_FORBIDDEN, 403, "SPORT_NOT_AUTHORIZED")

    def test_wildcard_scope(self, gateway, repository, make_api_key):
        plaintext, _ = make_api_key(sports=["*"])
        for sport in Sport:
            gateway.authorize(plaintext, sport, repository)

    # Rate limiting
    # ─────────────────────────────────────────────────────────────

    def test_rate_limit(self, gateway, repository, make_api_key):
        plaintext, _ = make_api_key(rate_limit=30)  # capacity 3

        for _ in range(3):
            gateway.authorize(plaintext, Sport.SOCCER, repository)

        with pytest.raises(GatewayRejected) as exc_info:
            gateway.authorize(plaintext, Sport.SOCCER, repository)

        assert_rejected(exc_info, RejectionReason.RATE_LIMITED, 429, "RATE_LIMIT_EXCEEDED")
        assert exc_info.value.headers["Retry-After"] == "2"
        assert exc_info.value.headers["X-RateLimit-Limit"] == "30"

    def test_scope_rejection_does_not_spend_tokens(self, gateway, repository, make_api_key):
        plaintext, _ = make_api_key(sports=["soccer"], rate_limit=10)  # capacity 1

        with pytest.raises(GatewayRejected):
            gateway.authorize(plaintext, Sport.BASKETBALL, repository)

        gateway.authorize(plaintext, Sport.SOCCER, repository)

    # Accepted requests
    # ─────────────────────────────────────────────────────────────

    def test_accepted_request(self, gateway, repository, recorder, make_api_key):
        plaintext, api_key = make_api_key(name="Acme", sports=["soccer", "basketball"], rate_limit=300)

        tenant = gateway.authorize(plaintext, Sport.BASKETBALL, repository)

        assert tenant.api_key_id == api_key.id
        assert tenant.name == "Acme"
        assert tenant.key_prefix == plaintext[:12]
        assert tenant.sports == ("soccer", "basketball")
        assert tenant.rate_limit == 300
        recorder.submit.assert_called_once_with(api_key.id)

    def test_rejected_request_is_not_recorded(self, gateway, repository, recorder, make_api_key):
        plaintext, _ = make_api_key(is_active=False)
        with pytest.raises(GatewayRejected):
            gateway.authorize(plaintext, Sport.SOCCER, repository)

        recorder.submit.assert_not_called()

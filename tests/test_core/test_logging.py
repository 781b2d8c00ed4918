"""Tests for structured logging context and settings helpers."""
import json
import logging

import pytest

from app.core.config import Settings
from app.core.logging import (
    JSONFormatter,
    clear_correlation_id,
    set_correlation_id,
    tenant_var,
)


def format_record(message: str) -> dict:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, message, None, None)
    return json.loads(JSONFormatter().format(record))


class TestJSONFormatter:

    def test_includes_correlation_id_and_tenant(self):
        token = set_correlation_id("sync-soccer-1a2b3c4d")
        tenant_token = tenant_var.set("sk_live_AbCd")
        try:
            data = format_record("hello")
        finally:
            tenant_var.reset(tenant_token)
            clear_correlation_id(token)

        assert data["message"] == "hello"
        assert data["correlation_id"] == "sync-soccer-1a2b3c4d"
        assert data["tenant"] == "sk_live_AbCd"

    def test_tenant_omitted_when_unset(self):
        assert "tenant" not in format_record("hello")


class TestSettings:

    def test_sync_sport_list(self):
        settings = Settings(SYNC_SPORTS=" Soccer, ,basketball ")
        assert settings.SYNC_SPORT_LIST == ["soccer", "basketball"]

    def test_unknown_sync_sport(self):
        with pytest.raises(ValueError):
            Settings(SYNC_SPORTS="soccer,cricket").SYNC_SPORT_LIST

    def test_production_requires_feed_key(self):
        settings = Settings(ENVIRONMENT="production", DATABASE_URL="postgresql://db/otg", GOALSERVE_API_KEY="")
        assert settings.validate_required_secrets() == ["GOALSERVE_API_KEY"]

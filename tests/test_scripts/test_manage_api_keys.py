"""Tests for the API key management CLI handlers."""
import argparse

import pytest

from app.core.security import hash_api_key
from app.models import ApiKey
from scripts import manage_api_keys


def parse(*argv) -> argparse.Namespace:
    return manage_api_keys.build_parser().parse_args(list(argv))


def created_plaintext(output: str) -> str:
    for line in output.splitlines():
        if line.strip().startswith("Key: "):
            return line.strip()[len("Key: "):]
    raise AssertionError("no key printed")


class TestParseSports:

    def test_comma_separated(self):
        assert manage_api_keys.parse_sports("soccer, Basketball") == ["soccer", "basketball"]

    def test_wildcard_wins(self):
        assert manage_api_keys.parse_sports("soccer,*") == ["*"]

    def test_unknown_sport(self):
        with pytest.raises(argparse.ArgumentTypeError):
            manage_api_keys.parse_sports("soccer,cricket")


class TestManageApiKeys:

    def test_create_stores_only_the_hash(self, database, capsys):
        args = parse("create", "--name", "Acme", "--sports", "soccer", "--rate-limit", "300", "--expires-in-days", "30")

        assert manage_api_keys.create_key(database, args) == 0

        plaintext = created_plaintext(capsys.readouterr().out)
        with database.session_scope() as db:
            api_key = db.query(ApiKey).one()
            assert api_key.key_hash == hash_api_key(plaintext)
            assert api_key.key_hash != plaintext
            assert api_key.key_prefix == plaintext[:12]
            assert api_key.sports == ["soccer"]
            assert api_key.rate_limit == 300
            assert api_key.expires_at is not None

    def test_create_defaults(self, database, capsys):
        manage_api_keys.create_key(database, parse("create", "--name", "Default"))
        with database.session_scope() as db:
            api_key = db.query(ApiKey).one()
            assert api_key.sports == ["*"]
            assert api_key.rate_limit == 100
            assert api_key.expires_at is None

    def test_invalid_rate_limit_is_refused(self):
        with pytest.raises(SystemExit):
            parse("create", "--name", "Acme", "--rate-limit", "0")

    def test_list(self, database, make_api_key, capsys):
        make_api_key(name="Active Tenant")
        make_api_key(name="Gone Tenant", is_active=False)

        assert manage_api_keys.list_keys(database, parse("list")) == 0

        out = capsys.readouterr().out
        assert "Active Tenant" in out
        assert "revoked" in out

    def test_revoke_by_prefix(self, database, make_api_key, capsys):
        plaintext, api_key = make_api_key()
        api_key_id = api_key.id

        assert manage_api_keys.revoke_key(database, parse("revoke", plaintext[:12])) == 0

        with database.session_scope() as db:
            assert db.get(ApiKey, api_key_id).is_active is False

    def test_revoke_by_id(self, database, make_api_key, capsys):
        _, api_key = make_api_key()
        api_key_id = api_key.id

        assert manage_api_keys.revoke_key(database, parse("revoke", str(api_key_id))) == 0

        with database.session_scope() as db:
            assert db.get(ApiKey, api_key_id).is_active is False

    def test_revoke_unknown(self, database, capsys):
        assert manage_api_keys.revoke_key(database, parse("revoke", "sk_live_none")) == 1

#!/usr/bin/env python3
"""
Manage tenant API keys.

Usage:
    python scripts/manage_api_keys.py create --name "Acme" --sports soccer,basketball --rate-limit 300
    python scripts/manage_api_keys.py create --name "Acme" --sports '*' --expires-in-days 90
    python scripts/manage_api_keys.py list
    python scripts/manage_api_keys.py revoke sk_live_AbCd
    python scripts/manage_api_keys.py revoke 42

The plaintext key is printed once on creation and never stored.
"""
import sys
import argparse
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from app.core.config import settings
from app.core.database import Database
from app.core.security import generate_api_key
from app.core.sports import ALL_SPORTS_SCOPE, Sport
from app.repositories.api_key_repository import ApiKeyRepository


def parse_sports(value: str) -> list:
    """Parse "soccer,basketball" or "*" into a scope list."""
    sports = [s.strip().lower() for s in value.split(",") if s.strip()]
    if not sports:
        raise argparse.ArgumentTypeError("at least one sport is required")
    if ALL_SPORTS_SCOPE in sports:
        return [ALL_SPORTS_SCOPE]
    for sport in sports:
        try:
            Sport(sport)
        except ValueError:
            raise argparse.ArgumentTypeError(f"unknown sport: {sport}")
    return sports


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def create_key(database: Database, args) -> int:
    generated = generate_api_key()
    expires_at = None
    if args.expires_in_days:
        expires_at = datetime.utcnow() + timedelta(days=args.expires_in_days)

    with database.session_scope() as db:
        api_key = ApiKeyRepository(db).add(
            key_hash=generated.key_hash,
            key_prefix=generated.display_prefix,
            name=args.name,
            sports=args.sports,
            rate_limit=args.rate_limit,
            expires_at=expires_at,
        )
        key_id = api_key.id

    print("✅ API key created")
    print(f"   ID:         {key_id}")
    print(f"   Name:       {args.name}")
    print(f"   Sports:     {', '.join(args.sports)}")
    print(f"   Rate limit: {args.rate_limit}/min")
    print(f"   Expires:    {expires_at.isoformat() if expires_at else 'never'}")
    print()
    print(f"   Key: {generated.plaintext}")
    print("   Store it now, it cannot be shown again.")
    return 0


def list_keys(database: Database, args) -> int:
    with database.session_scope() as db:
        keys = ApiKeyRepository(db).list_all()
        if not keys:
            print("No API keys")
            return 0

        now = datetime.utcnow()
        print(f"{'ID':>5}  {'PREFIX':<14}{'NAME':<24}{'SPORTS':<22}{'RPM':>6}  {'STATUS':<9}{'CREATED':<18}LAST USED")
        for key in keys:
            if not key.is_active:
                status = "revoked"
            elif key.is_expired(now):
                status = "expired"
            else:
                status = "active"
            created = key.created_at.strftime('%Y-%m-%d %H:%M') if key.created_at else "-"
            last_used = key.last_used_at.strftime('%Y-%m-%d %H:%M') if key.last_used_at else "-"
            print(
                f"{key.id:>5}  {key.key_prefix:<14}{key.name[:22]:<24}{','.join(key.sports or [])[:20]:<22}"
                f"{key.rate_limit:>6}  {status:<9}{created:<18}{last_used}"
            )
    return 0


def revoke_key(database: Database, args) -> int:
    """Revoke by numeric id, or by display prefix when it names exactly one key."""
    target = args.key.strip()
    with database.session_scope() as db:
        repo = ApiKeyRepository(db)
        if target.isdigit():
            api_key = repo.find_by_id(int(target))
            matches = [api_key] if api_key is not None else []
        else:
            matches = repo.find_by_prefix(target)

        if not matches:
            print(f"❌ No API key matches '{target}'")
            return 1
        if len(matches) > 1:
            ids = ", ".join(str(key.id) for key in matches)
            print(f"❌ Prefix '{target}' matches several keys ({ids}), revoke by id instead")
            return 1

        api_key = repo.revoke(matches[0])
        logger.info(f"Revoked API key {api_key.id} ({api_key.key_prefix})")
        print(f"✅ Revoked key {api_key.id} ({api_key.name})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage tenant API keys")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a new API key")
    create.add_argument("--name", required=True, help="Tenant name")
    create.add_argument(
        "--sports",
        type=parse_sports,
        default=[ALL_SPORTS_SCOPE],
        help="Comma-separated sports the key may access, or '*' for all",
    )
    create.add_argument(
        "--rate-limit",
        type=positive_int,
        default=settings.DEFAULT_RATE_LIMIT,
        help="Requests per minute",
    )
    create.add_argument("--expires-in-days", type=positive_int, help="Expire the key after N days")
    create.set_defaults(handler=create_key)

    listing = subparsers.add_parser("list", help="List API keys")
    listing.set_defaults(handler=list_keys)

    revoke = subparsers.add_parser("revoke", help="Revoke an API key")
    revoke.add_argument("key", metavar="PREFIX_OR_ID", help="Display prefix or numeric id shown by 'list'")
    revoke.set_defaults(handler=revoke_key)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    database = Database(settings.DATABASE_URL).init()
    try:
        return args.handler(database, args)
    finally:
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())

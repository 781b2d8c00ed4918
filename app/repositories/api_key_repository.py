"""
API key repository.

Keys are looked up by the SHA-256 hash of the presented credential and are
never deleted: revocation only flips ``is_active``.
"""
from datetime import datetime
from typing import List, Optional

from app.models import ApiKey
from app.repositories.base import BaseRepository


class ApiKeyRepository(BaseRepository[ApiKey]):
    """Repository for tenant API keys."""

    def __init__(self, db):
        super().__init__(ApiKey, db)

    def find_by_hash(self, key_hash: str) -> Optional[ApiKey]:
        """Find a key by the hash of its plaintext."""
        return self.where_first(ApiKey.key_hash == key_hash)

    def find_by_prefix(self, key_prefix: str) -> List[ApiKey]:
        """Find keys by display prefix (prefixes are not guaranteed unique)."""
        return self.where(ApiKey.key_prefix == key_prefix)

    def list_all(self) -> List[ApiKey]:
        """All keys, newest first, including revoked ones."""
        return self.query().order_by(ApiKey.created_at.desc(), ApiKey.id.desc()).all()

    def add(
        self,
        key_hash: str,
        key_prefix: str,
        name: str,
        sports: List[str],
        rate_limit: int,
        expires_at: Optional[datetime] = None,
    ) -> ApiKey:
        """Store a new active key and flush to get its id."""
        instance = self.create(
            key_hash=key_hash,
            key_prefix=key_prefix,
            name=name,
            sports=list(sports),
            rate_limit=rate_limit,
            is_active=True,
            created_at=datetime.utcnow(),
            expires_at=expires_at,
        )
        self.flush()
        return instance

    def revoke(self, api_key: ApiKey) -> ApiKey:
        """Soft-revoke a key."""
        api_key.is_active = False
        self.flush()
        return api_key

    def touch_last_used(self, api_key_id: int, used_at: datetime) -> bool:
        """
        Record when a key was last used.

        Returns:
            True if a row was updated
        """
        updated = (
            self.query()
            .filter(ApiKey.id == api_key_id)
            .update({ApiKey.last_used_at: used_at}, synchronize_session=False)
        )
        return updated > 0

"""
Tenant gateway: API key authentication, sport scope and rate limiting.

Every tenant route depends on ``require_sport(sport)``, which walks one
request through these checks and stops at the first failure:

1. A key is presented (``Authorization: Bearer`` first, else ``X-API-Key``)
2. Its SHA-256 hash matches a stored key
3. The key is active and not expired
4. The key's scope includes the requested sport (``*`` matches all)
5. The key's token bucket has a token left

Accepted requests get a ``TenantContext`` on ``request.state.tenant`` and a
best-effort last-used update queued in the background.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Tuple

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from starlette.requests import Request

from app.core import metrics
from app.core.database import get_db
from app.core.errors import ApiError
from app.core.last_used import LastUsedRecorder
from app.core.logging import get_logger, set_tenant
from app.core.rate_limiter import RateLimiterRegistry
from app.core.security import hash_api_key
from app.core.sports import Sport
from app.repositories.api_key_repository import ApiKeyRepository

logger = get_logger(__name__)

# API Key header name
API_KEY_NAME = "X-API-Key"

api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


class RejectionReason(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    REVOKED = "revoked"
    EXPIRED = "expired"
    SCOPE_FORBIDDEN = "scope_forbidden"
    RATE_LIMITED = "rate_limited"


# reason -> (HTTP status, error code, message)
REJECTIONS = {
    RejectionReason.MISSING_CREDENTIAL: (
        401, "MISSING_API_KEY", "API key required. Provide Authorization: Bearer <key> or X-API-Key header."
    ),
    RejectionReason.INVALID_CREDENTIAL: (401, "INVALID_API_KEY", "Invalid API key."),
    RejectionReason.REVOKED: (403, "API_KEY_REVOKED", "API key has been revoked."),
    RejectionReason.EXPIRED: (401, "API_KEY_EXPIRED", "API key has expired."),
    RejectionReason.SCOPE_FORBIDDEN: (403, "SPORT_NOT_AUTHORIZED", "API key does not have access to this sport."),
    RejectionReason.RATE_LIMITED: (429, "RATE_LIMIT_EXCEEDED", "Rate limit exceeded. Try again later."),
}


class GatewayRejected(ApiError):
    """A request stopped by the tenant gateway."""

    def __init__(self, reason: RejectionReason, message: Optional[str] = None, headers: Optional[dict] = None):
        status_code, code, default_message = REJECTIONS[reason]
        if status_code == 401:
            headers = {"WWW-Authenticate": "Bearer", **(headers or {})}
        super().__init__(status_code, code, message or default_message, headers)
        self.reason = reason


@dataclass(frozen=True)
class TenantContext:
    """Identity of the API key that authenticated a request."""
    api_key_id: int
    name: str
    key_prefix: str
    sports: Tuple[str, ...]
    rate_limit: int


def extract_credential(bearer: Optional[str], api_key: Optional[str]) -> Optional[str]:
    """Pick the presented key: bearer token first, then the X-API-Key header."""
    for candidate in (bearer, api_key):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


class TenantGateway:
    """
    Authorizes tenant requests.

    Holds the process-wide rate limiter registry and last-used recorder;
    storage access goes through the repository passed to ``authorize``.
    """

    def __init__(
        self,
        limiters: RateLimiterRegistry,
        recorder: LastUsedRecorder,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.limiters = limiters
        self.recorder = recorder
        self._clock = clock

    def _reject(self, reason: RejectionReason, key_prefix: str = "", **kwargs) -> GatewayRejected:
        metrics.record_gateway_rejection(reason.value)
        logger.warning(f"Gateway rejected request: {reason.value}" + (f" (key {key_prefix})" if key_prefix else ""))
        return GatewayRejected(reason, **kwargs)

    def authorize(self, credential: Optional[str], sport: Sport, repository: ApiKeyRepository) -> TenantContext:
        """
        Run the gateway checks for one request.

        Raises:
            GatewayRejected: On the first failed check
        """
        if not credential:
            raise self._reject(RejectionReason.MISSING_CREDENTIAL)

        key_hash = hash_api_key(credential)
        api_key = repository.find_by_hash(key_hash)
        if api_key is None:
            # Unknown credentials are never echoed, not even in part
            raise self._reject(RejectionReason.INVALID_CREDENTIAL)

        if not api_key.is_active:
            raise self._reject(RejectionReason.REVOKED, api_key.key_prefix)

        if api_key.is_expired(self._clock()):
            raise self._reject(RejectionReason.EXPIRED, api_key.key_prefix)

        sport = Sport(sport)
        if not api_key.allows_sport(sport.value):
            raise self._reject(
                RejectionReason.SCOPE_FORBIDDEN,
                api_key.key_prefix,
                message=f"API key does not have access to {sport.value}.",
            )

        bucket = self.limiters.get(key_hash, api_key.rate_limit)
        if not bucket.allow():
            raise self._reject(
                RejectionReason.RATE_LIMITED,
                api_key.key_prefix,
                headers={
                    "Retry-After": str(bucket.retry_after()),
                    "X-RateLimit-Limit": str(api_key.rate_limit),
                },
            )

        self.recorder.submit(api_key.id)

        return TenantContext(
            api_key_id=api_key.id,
            name=api_key.name,
            key_prefix=api_key.key_prefix,
            sports=tuple(api_key.sports or ()),
            rate_limit=api_key.rate_limit,
        )


def require_sport(sport: Sport):
    """
    Dependency factory protecting a sport's routes.

    Usage:
        router = APIRouter(
            prefix="/soccer",
            dependencies=[Depends(require_sport(Sport.SOCCER))],
        )
    """
    sport = Sport(sport)

    async def tenant_dependency(
        request: Request,
        db: Session = Depends(get_db),
        bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
        api_key: Optional[str] = Security(api_key_header),
    ) -> TenantContext:
        gateway: TenantGateway = request.app.state.gateway
        credential = extract_credential(bearer.credentials if bearer else None, api_key)
        tenant = gateway.authorize(credential, sport, ApiKeyRepository(db))
        request.state.tenant = tenant
        set_tenant(tenant.key_prefix)
        return tenant

    return tenant_dependency

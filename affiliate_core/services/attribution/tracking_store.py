"""
Tracking session storage.

Short-lived association between a buyer's browsing session and the link that
brought them. This state is ephemeral: it lives in Redis, not in the ledger
database.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import redis.asyncio as redis

from affiliate_core.config.constants import TRACKING_KEY_PREFIX
from affiliate_core.config.settings import settings
from affiliate_core.utils.datetime_utils import ensure_utc, expiry_passed


@dataclass(frozen=True)
class TrackingSession:
    """Link/account pair a buyer session is attributed to."""

    token: str
    link_id: int
    account_id: int
    created_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        """True once the attribution window has passed."""
        return expiry_passed(self.expires_at)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for storage."""
        return {
            "link_id": self.link_id,
            "account_id": self.account_id,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_payload(cls, token: str, payload: dict[str, Any]) -> "TrackingSession":
        """Deserialize stored payload."""
        return cls(
            token=token,
            link_id=int(payload["link_id"]),
            account_id=int(payload["account_id"]),
            created_at=ensure_utc(datetime.fromisoformat(payload["created_at"])),
            expires_at=ensure_utc(datetime.fromisoformat(payload["expires_at"])),
        )


class TrackingStore(ABC):
    """Key-value storage for tracking payloads."""

    @abstractmethod
    async def put(self, token: str, payload: dict[str, Any], ttl_seconds: int) -> None:
        """Store payload under token for at least ttl_seconds."""

    @abstractmethod
    async def get(self, token: str) -> dict[str, Any] | None:
        """Get payload by token, None if unknown."""


class RedisTrackingStore(TrackingStore):
    """
    Redis-backed tracking store.

    The key TTL only reclaims storage; the attribution window is enforced by
    the expires_at field when the session is read.
    """

    def __init__(self, redis_client: redis.Redis) -> None:
        """
        Initialize store.

        Args:
            redis_client: Redis client (decode_responses=True)
        """
        self.redis = redis_client

    async def put(self, token: str, payload: dict[str, Any], ttl_seconds: int) -> None:
        await self.redis.set(
            f"{TRACKING_KEY_PREFIX}{token}", json.dumps(payload), ex=ttl_seconds
        )

    async def get(self, token: str) -> dict[str, Any] | None:
        raw = await self.redis.get(f"{TRACKING_KEY_PREFIX}{token}")
        if raw is None:
            return None
        return json.loads(raw)


def get_redis_client() -> redis.Redis:
    """
    Create a Redis client from settings.

    Returns:
        Redis client with decode_responses=True
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )

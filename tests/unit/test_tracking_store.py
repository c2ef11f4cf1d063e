"""Unit tests for tracking sessions and the Redis tracking store."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from affiliate_core.config.constants import TRACKING_KEY_PREFIX
from affiliate_core.services.attribution.tracking_store import (
    RedisTrackingStore,
    TrackingSession,
)
from affiliate_core.utils.datetime_utils import utc_now


def _session(expires_in: timedelta) -> TrackingSession:
    now = utc_now()
    return TrackingSession(
        token="tok",
        link_id=4,
        account_id=2,
        created_at=now,
        expires_at=now + expires_in,
    )


class TestTrackingSession:
    """Test session payloads and expiry."""

    def test_payload_round_trip(self):
        tracking = _session(timedelta(days=30))
        restored = TrackingSession.from_payload("tok", tracking.to_payload())
        assert restored == tracking

    def test_not_expired_inside_window(self):
        assert _session(timedelta(days=1)).is_expired is False

    def test_expired_after_window(self):
        assert _session(timedelta(seconds=-1)).is_expired is True

    def test_naive_timestamps_are_utc(self):
        payload = {
            "link_id": "4",
            "account_id": "2",
            "created_at": "2026-01-01T00:00:00",
            "expires_at": "2026-01-31T00:00:00",
        }
        tracking = TrackingSession.from_payload("tok", payload)
        assert tracking.link_id == 4
        assert tracking.expires_at.tzinfo is not None


class TestRedisTrackingStore:
    """Test key layout and serialization against a mocked client."""

    @pytest.mark.asyncio
    async def test_put_sets_key_with_ttl(self):
        client = AsyncMock()
        store = RedisTrackingStore(client)

        await store.put("abc", {"link_id": 1}, ttl_seconds=60)

        client.set.assert_awaited_once_with(
            f"{TRACKING_KEY_PREFIX}abc", json.dumps({"link_id": 1}), ex=60
        )

    @pytest.mark.asyncio
    async def test_get_decodes_payload(self):
        client = AsyncMock()
        client.get = AsyncMock(return_value=json.dumps({"link_id": 1}))
        store = RedisTrackingStore(client)

        assert await store.get("abc") == {"link_id": 1}
        client.get.assert_awaited_once_with(f"{TRACKING_KEY_PREFIX}abc")

    @pytest.mark.asyncio
    async def test_get_unknown_token(self):
        client = AsyncMock()
        client.get = AsyncMock(return_value=None)
        store = RedisTrackingStore(client)

        assert await store.get("missing") is None

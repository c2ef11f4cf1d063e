"""
Attribution module.

Link visits, tracking sessions and order attribution.
"""

from affiliate_core.services.attribution.attribution_service import (
    AttributionOutcome,
    AttributionService,
    ConversionResult,
    RecordedCommission,
    VisitResult,
)
from affiliate_core.services.attribution.click_tracker import (
    ClickResult,
    ClickTracker,
)
from affiliate_core.services.attribution.tracking_store import (
    RedisTrackingStore,
    TrackingSession,
    TrackingStore,
    get_redis_client,
)

__all__ = [
    "AttributionOutcome",
    "AttributionService",
    "ClickResult",
    "ClickTracker",
    "ConversionResult",
    "RecordedCommission",
    "RedisTrackingStore",
    "TrackingSession",
    "TrackingStore",
    "VisitResult",
    "get_redis_client",
]

"""
Business logic constants for the affiliate program.

Central location for business rules shared by models, services and validators
without circular dependencies.
"""

import re
from decimal import Decimal

# Fixed-point quanta for stored values
MONEY_QUANTUM = Decimal("0.01")
RATE_QUANTUM = Decimal("0.000001")

# Commission levels: direct referrer and its upline, never deeper
LEVEL_DIRECT = 1
LEVEL_UPLINE = 2
MAX_COMMISSION_DEPTH = 2

# Slugs: lowercase letters, digits and dashes, 3-64 chars
SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{2,63}$")
GENERATED_SLUG_SUFFIX_LENGTH = 6

# Tracking store key namespace
TRACKING_KEY_PREFIX = "aff:track:"

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Audit note stamped on user cancellations
USER_CANCEL_NOTE = "Cancelled by user"

"""
Link registry module.

Affiliate link records, slugs and visit redirects.
"""

from affiliate_core.services.links.link_registry import (
    UNSET,
    LinkRegistry,
    check_target,
    parse_link_status,
    parse_link_type,
)
from affiliate_core.services.links.redirect_resolver import RedirectResolver
from affiliate_core.services.links.slug_generator import generate_slug

__all__ = [
    "UNSET",
    "LinkRegistry",
    "RedirectResolver",
    "check_target",
    "generate_slug",
    "parse_link_status",
    "parse_link_type",
]

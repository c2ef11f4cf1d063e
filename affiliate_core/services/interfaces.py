"""
Collaborator interfaces.

Types consumed from systems outside the affiliate engine: the caller
identity issued by the auth layer, the product/category catalog and coarse
client metadata captured by the link-visit handler.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from affiliate_core.models.enums import AccountRole


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller (opaque output of the auth layer)."""

    account_id: int
    role: AccountRole

    @property
    def is_admin(self) -> bool:
        """True for operators."""
        return self.role == AccountRole.ADMIN

    def can_manage(self, owner_id: int) -> bool:
        """True if caller owns the resource or is an operator."""
        return self.is_admin or self.account_id == owner_id


@dataclass(frozen=True)
class CatalogItem:
    """Product or category as seen by the affiliate engine."""

    id: int
    slug: str
    is_active: bool = True


class CatalogGateway(ABC):
    """Read-only catalog lookups used to validate targets and build redirects."""

    @abstractmethod
    async def get_product(self, product_id: int) -> CatalogItem | None:
        """Get product by id, None if it does not exist."""

    @abstractmethod
    async def get_category(self, category_id: int) -> CatalogItem | None:
        """Get category by id, None if it does not exist."""


@dataclass(frozen=True)
class ClientInfo:
    """Coarse client metadata recorded with a click."""

    ip_address: str | None = None
    user_agent: str | None = None
    referer: str | None = None

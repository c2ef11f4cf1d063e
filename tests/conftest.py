"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import itertools
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from affiliate_core.models import (
    Account,
    AccountRole,
    AccountStatus,
    AffiliateLink,
    BankAccount,
    Base,
    LinkStatus,
    LinkType,
)
from affiliate_core.services.attribution.tracking_store import TrackingStore
from affiliate_core.services.interfaces import CatalogGateway, CatalogItem
from affiliate_core.services.settings_provider import AffiliateSettingsSnapshot

_sequence = itertools.count(1)


class FakeCatalog(CatalogGateway):
    """In-memory catalog: products 10 (active) and 11 (inactive), category 20."""

    def __init__(self) -> None:
        self.products = {
            10: CatalogItem(id=10, slug="ao-thun-basic"),
            11: CatalogItem(id=11, slug="quan-jean-cu", is_active=False),
        }
        self.categories = {
            20: CatalogItem(id=20, slug="thoi-trang-nam"),
        }

    async def get_product(self, product_id: int) -> CatalogItem | None:
        return self.products.get(product_id)

    async def get_category(self, category_id: int) -> CatalogItem | None:
        return self.categories.get(category_id)


class InMemoryTrackingStore(TrackingStore):
    """Tracking store backed by a dict (TTL recorded, not enforced)."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, Any]] = {}
        self.ttls: dict[str, int] = {}

    async def put(self, token: str, payload: dict[str, Any], ttl_seconds: int) -> None:
        self.data[token] = dict(payload)
        self.ttls[token] = ttl_seconds

    async def get(self, token: str) -> dict[str, Any] | None:
        payload = self.data.get(token)
        return dict(payload) if payload is not None else None


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    """Async session bound to the test database."""
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def catalog():
    """Fake catalog gateway."""
    return FakeCatalog()


@pytest.fixture
def tracking_store():
    """In-memory tracking store."""
    return InMemoryTrackingStore()


@pytest.fixture
def snapshot():
    """Settings snapshot with the documented defaults."""
    return AffiliateSettingsSnapshot(
        version=0,
        default_commission_rate=Decimal("0.15"),
        level_two_factor=Decimal("0.30"),
        min_withdrawal=Decimal("100000"),
        withdrawal_fee_floor=Decimal("5000"),
        withdrawal_fee_rate=Decimal("0.02"),
        max_links_per_account=50,
        link_expiry_days=365,
        tracking_window_days=30,
        commission_hold_days=7,
    )


@pytest.fixture
def make_account(session):
    """Factory creating committed accounts."""

    async def _make_account(
        role: AccountRole = AccountRole.COLLABORATOR,
        status: AccountStatus = AccountStatus.ACTIVE,
        referred_by: Account | None = None,
        commission_rate: Decimal | None = None,
        available_balance: Decimal = Decimal("0"),
        total_commission: Decimal = Decimal("0"),
        referral_code: str | None = None,
    ) -> Account:
        number = next(_sequence)
        account = Account(
            email=f"user{number}@example.com",
            full_name=f"User {number}",
            referral_code=referral_code,
            role=role.value,
            status=status.value,
            referred_by_id=referred_by.id if referred_by else None,
            commission_rate=commission_rate,
            available_balance=available_balance,
            total_commission=total_commission,
        )
        session.add(account)
        await session.commit()
        return account

    return _make_account


@pytest.fixture
def make_bank_account(session):
    """Factory creating committed bank accounts."""

    async def _make_bank_account(account: Account) -> BankAccount:
        bank_account = BankAccount(
            account_id=account.id,
            bank_name="Vietcombank",
            account_number="0011223344556",
            account_name=account.full_name or "Account holder",
        )
        session.add(bank_account)
        await session.commit()
        return bank_account

    return _make_bank_account


@pytest.fixture
def make_link(session):
    """Factory creating committed links without going through the registry."""

    async def _make_link(
        owner: Account,
        slug: str | None = None,
        link_type: LinkType = LinkType.GENERAL,
        product_id: int | None = None,
        category_id: int | None = None,
        status: LinkStatus = LinkStatus.ACTIVE,
        commission_rate: Decimal | None = None,
        expires_at=None,
    ) -> AffiliateLink:
        number = next(_sequence)
        link = AffiliateLink(
            account_id=owner.id,
            slug=slug or f"link-{number}",
            title=f"Link {number}",
            type=link_type.value,
            product_id=product_id,
            category_id=category_id,
            status=status.value,
            commission_rate=commission_rate,
            expires_at=expires_at,
        )
        session.add(link)
        await session.commit()
        return link

    return _make_link

"""
Module: ledger_tenancy.orm
Responsibility: ORM persistence for the tenant directory (tenants and their
    subscriptions).  These rows live in the primary database; the tables
    also exist in tenant databases because one metadata is applied
    everywhere, but they stay empty there.

Invariants enforced:
    - subdomain is unique.
    - Tenants are never hard-deleted; status moves between trial, active,
      suspended, expired and pending.
    - settings is a JSON text document (connection overrides live here).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TimestampedBase, UUIDString


class TenantStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXPIRED = "expired"
    PENDING = "pending"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Tenant(TimestampedBase):
    """One customer organisation, addressed by subdomain."""

    __tablename__ = "tenants"

    subdomain: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TenantStatus.TRIAL.value,
    )

    settings: Mapped[str | None] = mapped_column(Text, nullable=True)

    trial_ends_at: Mapped[datetime | None] = mapped_column(nullable=True)

    subscriptions: Mapped[list["Subscription"]] = relationship(
        "Subscription",
        back_populates="tenant",
        order_by="Subscription.end_date",
    )

    @property
    def tenant_key(self) -> str:
        """Identifier used for tenant_id columns and per-tenant env vars."""
        return self.subdomain

    def __repr__(self) -> str:
        return f"<Tenant {self.subdomain} ({self.status})>"


class Subscription(TimestampedBase):
    """A billing period for a tenant's plan."""

    __tablename__ = "subscriptions"

    __table_args__ = (
        Index("idx_subscription_tenant_end", "tenant_id", "end_date"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenants.id"),
        nullable=False,
    )

    plan_id: Mapped[str] = mapped_column(String(50), nullable=False)

    plan_name: Mapped[str] = mapped_column(String(100), nullable=False)

    start_date: Mapped[datetime] = mapped_column(nullable=False)

    end_date: Mapped[datetime] = mapped_column(nullable=False)

    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="IDR")

    tenant: Mapped[Tenant] = relationship("Tenant", back_populates="subscriptions")

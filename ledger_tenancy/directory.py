"""
TenantDirectory -- tenant lookup and access rules on the primary database.

Responsibility:
    Finds tenants by subdomain, decodes their settings, and decides whether
    a tenant may be served.  Subscription and trial expiry are detected
    lazily on access: the first request after the end date flips the
    tenant to ``expired``.

Invariants enforced:
    - suspended tenants are rejected (TenantSuspendedError).
    - expired tenants are rejected (TenantExpiredError), including those
      found expired during this check.
    - Tenants are never deleted here.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
import json

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock, ensure_utc
from ledger_kernel.exceptions import (
    TenantExpiredError,
    TenantNotFoundError,
    TenantSuspendedError,
)
from ledger_kernel.logging_config import get_logger
from ledger_tenancy.orm import PaymentStatus, Subscription, Tenant, TenantStatus
from ledger_tenancy.resolver import parse_settings

logger = get_logger("tenancy.directory")

DEFAULT_TRIAL_DAYS = 14


def extract_subdomain(host: str | None, default: str = "main") -> str:
    """
    ``acme.pos.example.com`` -> ``acme``; hosts with fewer than three
    labels (``localhost``, ``example.com``) map to ``default``.
    """
    if not host:
        return default
    hostname = host.split(":", 1)[0].strip().lower()
    parts = [p for p in hostname.split(".") if p]
    if len(parts) >= 3:
        return parts[0]
    return default


class TenantDirectory:
    """
    Read/write access to the tenant directory.

    Non-goals:
        - Does NOT commit; the caller's session scope owns the transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def get_by_subdomain(self, subdomain: str) -> Tenant:
        tenant = self.session.execute(
            select(Tenant).where(Tenant.subdomain == subdomain.lower())
        ).scalar_one_or_none()
        if tenant is None:
            raise TenantNotFoundError(subdomain)
        return tenant

    def list_tenants(self) -> list[Tenant]:
        return list(self.session.execute(select(Tenant).order_by(Tenant.subdomain)).scalars())

    def settings_for(self, tenant: Tenant) -> dict[str, Any]:
        return parse_settings(tenant.settings)

    def create_tenant(
        self,
        subdomain: str,
        name: str,
        email: str | None = None,
        settings: dict[str, Any] | None = None,
        trial_days: int = DEFAULT_TRIAL_DAYS,
    ) -> Tenant:
        tenant = Tenant(
            subdomain=subdomain.lower(),
            name=name,
            email=email,
            status=TenantStatus.TRIAL.value,
            settings=json.dumps(settings) if settings else None,
            trial_ends_at=self.clock.now() + timedelta(days=trial_days),
        )
        self.session.add(tenant)
        self.session.flush()
        logger.info("tenant_created", extra={"subdomain": tenant.subdomain})
        return tenant

    def add_subscription(
        self,
        tenant: Tenant,
        plan_id: str,
        plan_name: str,
        start_date: datetime,
        end_date: datetime,
        amount: Decimal,
        payment_status: str = PaymentStatus.PAID.value,
        currency: str = "IDR",
    ) -> Subscription:
        subscription = Subscription(
            tenant_id=tenant.id,
            plan_id=plan_id,
            plan_name=plan_name,
            start_date=start_date,
            end_date=end_date,
            amount=amount,
            payment_status=payment_status,
            currency=currency,
        )
        self.session.add(subscription)
        if payment_status == PaymentStatus.PAID.value and tenant.status != TenantStatus.SUSPENDED.value:
            tenant.status = TenantStatus.ACTIVE.value
        self.session.flush()
        return subscription

    def active_subscription(self, tenant: Tenant) -> Subscription | None:
        """Latest subscription by end date with paid status."""
        return self.session.execute(
            select(Subscription)
            .where(
                Subscription.tenant_id == tenant.id,
                Subscription.payment_status == PaymentStatus.PAID.value,
            )
            .order_by(Subscription.end_date.desc())
            .limit(1)
        ).scalar_one_or_none()

    def check_access(self, tenant: Tenant) -> Tenant:
        """
        Enforce the tenant access rules.

        Postconditions:
            - A lapsed trial or paid subscription has flipped the tenant's
              status to expired (flushed) before the error is raised.
        """
        if tenant.status == TenantStatus.SUSPENDED.value:
            raise TenantSuspendedError(tenant.subdomain)
        if tenant.status == TenantStatus.EXPIRED.value:
            raise TenantExpiredError(tenant.subdomain)

        now = self.clock.now()
        lapsed = False
        if tenant.status == TenantStatus.TRIAL.value and tenant.trial_ends_at is not None:
            lapsed = ensure_utc(tenant.trial_ends_at) < now
        elif tenant.status == TenantStatus.ACTIVE.value:
            subscription = self.active_subscription(tenant)
            lapsed = subscription is not None and ensure_utc(subscription.end_date) < now

        if lapsed:
            tenant.status = TenantStatus.EXPIRED.value
            self.session.flush()
            logger.warning("tenant_expired", extra={"subdomain": tenant.subdomain})
            raise TenantExpiredError(tenant.subdomain)
        return tenant

    def suspend(self, tenant: Tenant) -> None:
        tenant.status = TenantStatus.SUSPENDED.value
        self.session.flush()
        logger.warning("tenant_suspended", extra={"subdomain": tenant.subdomain})

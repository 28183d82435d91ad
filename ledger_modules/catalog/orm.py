"""
Module: ledger_modules.catalog.orm
Responsibility: Read models for the catalog and transaction tables the
    translators and reports consume: products (stock and cost fields),
    POS sale/purchase transactions, and service tickets with the parts
    consumed on them.
Architecture position: Modules > Catalog > ORM.  Generic CRUD for these
    rows belongs to the route layer; the ledger only reads them.

Invariants enforced:
    - All monetary fields use Decimal (Numeric(38,9)), never float.
    - Status and type fields are stored as short strings.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TimestampedBase, UUIDString


class Product(TimestampedBase):
    """
    A sellable item with stock and cost fields.

    Cost precedence for COGS: average_cost, then last_purchase_price.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_product_tenant_sku"),
        Index("idx_product_stock", "tenant_id", "is_active"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    sku: Mapped[str] = mapped_column(String(64), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    min_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    average_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    last_purchase_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    selling_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Product {self.sku} stock={self.stock}>"


class SaleTransaction(TimestampedBase):
    """POS transaction header (``sale`` or ``purchase``)."""

    __tablename__ = "sale_transactions"

    __table_args__ = (
        UniqueConstraint("tenant_id", "transaction_number", name="uq_sale_tenant_number"),
        Index("idx_sale_type_created", "tenant_id", "transaction_type", "created_at"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    transaction_number: Mapped[str] = mapped_column(String(50), nullable=False)

    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False, default="sale")

    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")

    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class ServiceTicket(TimestampedBase):
    """A repair job.  Completing it is a financial event."""

    __tablename__ = "service_tickets"

    __table_args__ = (
        UniqueConstraint("tenant_id", "ticket_number", name="uq_ticket_tenant_number"),
        Index("idx_ticket_status", "tenant_id", "status"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    ticket_number: Mapped[str] = mapped_column(String(50), nullable=False)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")

    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    device: Mapped[str | None] = mapped_column(String(200), nullable=True)

    problem: Mapped[str | None] = mapped_column(Text, nullable=True)

    labor_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    parts: Mapped[list["ServiceTicketPart"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
    )


class ServiceTicketPart(TimestampedBase):
    """A product consumed on a ticket, billed at ``unit_price``."""

    __tablename__ = "service_ticket_parts"

    ticket_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("service_tickets.id"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    ticket: Mapped[ServiceTicket] = relationship(back_populates="parts")

    product: Mapped[Product] = relationship()

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

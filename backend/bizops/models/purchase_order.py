from __future__ import annotations
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Numeric, Date, ForeignKey, DateTime, func
from typing import Optional

from .authz import Base
from .vendor import BigId


class PurchaseOrder(Base):
    __tablename__ = 'purchase_orders'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    vendor_id: Mapped[Optional[int]] = mapped_column(ForeignKey('vendors.id', ondelete='SET NULL'), nullable=True, index=True)
    po_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    order_date: Mapped[Optional[date]] = mapped_column(Date, index=True)
    expected_delivery: Mapped[Optional[date]] = mapped_column(Date)
    billing_address: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[Optional[str]] = mapped_column(String(32))
    memo: Mapped[Optional[str]] = mapped_column(String(1000))
    discount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    shipping_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default='INR')
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship('PurchaseOrderItem', back_populates='purchase_order', cascade='all, delete-orphan', order_by='PurchaseOrderItem.id')
    vendor = relationship('Vendor')


class PurchaseOrderItem(Base):
    __tablename__ = 'purchase_order_items'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    purchase_order_id: Mapped[int] = mapped_column(ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False, default=0)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    purchase_order = relationship('PurchaseOrder', back_populates='items')

__all__ = ["PurchaseOrder", "PurchaseOrderItem"]

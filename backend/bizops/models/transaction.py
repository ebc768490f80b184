from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Numeric, Date, ForeignKey, DateTime, func
from .authz import Base
from .vendor import BigId


class FinancialTransaction(Base):
    __tablename__ = 'financial_transactions'
    TYPE_SPEND = 'spend'
    TYPE_RECEIVE = 'receive'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    transaction_method: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    reference_number: Mapped[Optional[str]] = mapped_column(String(64))
    vendor_id: Mapped[Optional[int]] = mapped_column(ForeignKey('vendors.id', ondelete='SET NULL'), nullable=True, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=TYPE_SPEND)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    vendor = relationship('Vendor')
    creator = relationship('User')

__all__ = ["FinancialTransaction"]

from __future__ import annotations
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, Integer, String, Boolean, Numeric, ForeignKey, DateTime, func
from .authz import Base

# BIGINT keys in production; SQLite only autoincrements INTEGER PRIMARY KEY
BigId = BigInteger().with_variant(Integer, 'sqlite')


class Vendor(Base):
    __tablename__ = 'vendors'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True, unique=True)
    gst_no: Mapped[Optional[str]] = mapped_column(String(15))
    vendor_type: Mapped[Optional[str]] = mapped_column(String(64))
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    address: Mapped[Optional[str]] = mapped_column(String(500))
    bank_name: Mapped[Optional[str]] = mapped_column(String(255))
    bank_account_number: Mapped[Optional[str]] = mapped_column(String(50))
    ifsc_code: Mapped[Optional[str]] = mapped_column(String(11))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    payables: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

__all__ = ["Vendor", "BigId"]

from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, LargeBinary, DateTime, func
from .authz import Base


class CompanyDetails(Base):
    __tablename__ = 'company_details'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500))
    city: Mapped[Optional[str]] = mapped_column(String(128))
    state: Mapped[Optional[str]] = mapped_column(String(128))
    pin_code: Mapped[Optional[str]] = mapped_column(String(16))
    country: Mapped[Optional[str]] = mapped_column(String(64))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    gst_no: Mapped[Optional[str]] = mapped_column(String(15))
    registration_number: Mapped[Optional[str]] = mapped_column(String(64))
    logo: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    logo_mimetype: Mapped[Optional[str]] = mapped_column(String(64))
    is_own_company: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

__all__ = ["CompanyDetails"]

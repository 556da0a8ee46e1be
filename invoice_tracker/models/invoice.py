from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Numeric, Date, DateTime, ForeignKey, func
from invoice_tracker.models.authz import Base


class Invoice(Base):
    __tablename__ = 'invoices'
    # Status constants
    STATUS_PENDING = 'pending'
    STATUS_ASSIGNED = 'assigned_to_supply_chain'
    STATUS_SENT_TO_FINANCE = 'sent_to_finance'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_PAID = 'paid'
    ALL_STATUSES = (STATUS_PENDING, STATUS_ASSIGNED, STATUS_SENT_TO_FINANCE, STATUS_APPROVED, STATUS_REJECTED, STATUS_PAID)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    supplier: Mapped[str] = mapped_column(String(160), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    received_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    assigned_to_person: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    finance_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    supply_chain_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_PENDING, index=True)
    department: Mapped[Optional[str]] = mapped_column(String(80), nullable=True, index=True)
    file_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# Status flow: pending -> assigned_to_supply_chain -> sent_to_finance -> approved -> paid
# (rejected reopens to pending; paid is terminal). See services/workflow.py.

from datetime import datetime
from sqlalchemy import String, DateTime, Integer, Numeric, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, utcnow


STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)


class PendingPayment(Base):
    """One activation payment attempt. Rows are kept as an audit trail."""

    __tablename__ = "pending_payments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    order_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(12), index=True)
    amount: Mapped[float] = mapped_column(Numeric(12, 2))
    plan: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default=STATUS_PENDING)  # pending, completed, failed

    # Provider correlation and outcome
    checkout_request_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    result_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result_desc: Mapped[str | None] = mapped_column(Text, nullable=True)
    receipt_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    raw_callback: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

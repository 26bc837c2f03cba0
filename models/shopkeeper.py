from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base, utcnow


ROLE_OWNER = "owner"
ROLE_STAFF = "staff"


class Shopkeeper(Base):
    __tablename__ = "shopkeepers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    keeper_code: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str] = mapped_column(String(12), unique=True, index=True)  # canonical 2547XXXXXXXX
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=ROLE_OWNER)  # owner, staff

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)

    # Plan bought through the activation payment
    plan_type: Mapped[str | None] = mapped_column(String(20), nullable=True)  # daily, weekly, monthly
    due_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Single-use code issued once the first payment lands, cleared by verify
    activation_code: Mapped[str | None] = mapped_column(String(64), nullable=True)

    shop_id: Mapped[int | None] = mapped_column(ForeignKey("shops.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    shop = relationship("Shop", back_populates="keepers")

    def has_active_plan(self, now: datetime | None = None) -> bool:
        if not self.is_active:
            return False
        if self.due_date is None:
            return True
        return self.due_date > (now or utcnow())

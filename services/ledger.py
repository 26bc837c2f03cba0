import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from core.db import utcnow
from core.errors import OrderNotFound
from models.payment import PendingPayment, STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING

logger = logging.getLogger(__name__)


class PaymentLedger:
    """Activation payment attempts keyed by order id.

    Methods flush but never commit; the caller owns the transaction. Each
    entry moves out of ``pending`` at most once.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(self, order_id: str, phone: str, amount: int, plan: str) -> PendingPayment:
        entry = PendingPayment(order_id=order_id, phone=phone, amount=amount, plan=plan, status=STATUS_PENDING)
        self.db.add(entry)
        self.db.flush()
        return entry

    def find(self, order_id: str, for_update: bool = False) -> Optional[PendingPayment]:
        query = self.db.query(PendingPayment).filter(PendingPayment.order_id == order_id)
        if for_update:
            query = query.with_for_update()
        return query.one_or_none()

    def get(self, order_id: str, for_update: bool = False) -> PendingPayment:
        entry = self.find(order_id, for_update=for_update)
        if entry is None:
            raise OrderNotFound()
        return entry

    def attach_checkout(self, order_id: str, checkout_request_id: str | None) -> PendingPayment:
        entry = self.get(order_id)
        entry.checkout_request_id = checkout_request_id
        self.db.flush()
        return entry

    def mark_completed(self, order_id: str, **outcome: Any) -> PendingPayment:
        return self._settle(order_id, STATUS_COMPLETED, outcome)

    def mark_failed(self, order_id: str, **outcome: Any) -> PendingPayment:
        return self._settle(order_id, STATUS_FAILED, outcome)

    def _settle(self, order_id: str, status: str, outcome: Dict[str, Any]) -> PendingPayment:
        entry = self.get(order_id, for_update=True)
        if entry.is_terminal:
            logger.warning(
                "Order %s already %s; ignoring transition to %s", order_id, entry.status, status
            )
            return entry
        entry.status = status
        entry.settled_at = utcnow()
        for field in ("result_code", "result_desc", "receipt_number", "raw_callback"):
            if outcome.get(field) is not None:
                setattr(entry, field, outcome[field])
        self.db.flush()
        return entry

import pytest

from core.db import transaction
from core.errors import OrderNotFound
from models.payment import PendingPayment, STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING
from services.ledger import PaymentLedger


@pytest.fixture
def ledger(db):
    return PaymentLedger(db)


class TestPaymentLedger:
    def test_record_creates_pending_entry(self, db, ledger):
        with transaction(db):
            ledger.record("order-1", "254712345678", 65, "weekly")

        entry = db.query(PendingPayment).filter_by(order_id="order-1").one()
        assert entry.status == STATUS_PENDING
        assert entry.amount == 65
        assert entry.plan == "weekly"
        assert entry.settled_at is None
        assert entry.is_terminal is False

    def test_get_unknown_order(self, ledger):
        with pytest.raises(OrderNotFound) as exc_info:
            ledger.get("missing")
        assert exc_info.value.status_code == 404

    def test_find_unknown_order_returns_none(self, ledger):
        assert ledger.find("missing") is None

    def test_mark_completed_records_outcome(self, db, ledger):
        with transaction(db):
            ledger.record("order-2", "254712345678", 250, "monthly")
            ledger.attach_checkout("order-2", "ws_CO_9")
            ledger.mark_completed("order-2", result_code=0, result_desc="ok", receipt_number="QKJ1ABC2DE")

        entry = ledger.get("order-2")
        assert entry.status == STATUS_COMPLETED
        assert entry.checkout_request_id == "ws_CO_9"
        assert entry.receipt_number == "QKJ1ABC2DE"
        assert entry.result_code == 0
        assert entry.settled_at is not None

    def test_terminal_entry_is_never_changed(self, db, ledger):
        with transaction(db):
            ledger.record("order-3", "254712345678", 10, "daily")
            ledger.mark_failed("order-3", result_code=1032, result_desc="Request cancelled by user")

        with transaction(db):
            entry = ledger.mark_completed("order-3", result_code=0, receipt_number="LATE")

        assert entry.status == STATUS_FAILED
        assert entry.result_code == 1032
        assert entry.receipt_number is None

    def test_marking_twice_is_idempotent(self, db, ledger):
        with transaction(db):
            ledger.record("order-4", "254712345678", 10, "daily")
            first = ledger.mark_completed("order-4", receipt_number="R1")
            settled_at = first.settled_at
            second = ledger.mark_completed("order-4", receipt_number="R2")

        assert second.status == STATUS_COMPLETED
        assert second.receipt_number == "R1"
        assert second.settled_at == settled_at

    def test_rollback_discards_unflushed_transition(self, db, ledger):
        with transaction(db):
            ledger.record("order-5", "254712345678", 65, "weekly")

        with pytest.raises(RuntimeError):
            with transaction(db):
                ledger.mark_completed("order-5", receipt_number="R1")
                raise RuntimeError("store down")

        assert ledger.get("order-5").status == STATUS_PENDING

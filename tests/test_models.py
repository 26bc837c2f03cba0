import pytest
from datetime import datetime, timedelta
from sqlalchemy.exc import IntegrityError

from core.db import utcnow
from models.payment import PendingPayment, STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING
from models.shop import Shop
from models.shopkeeper import Shopkeeper, ROLE_OWNER


class TestShopkeeper:
    """Test cases for Shopkeeper model"""

    def test_shopkeeper_default_values(self, db):
        keeper = Shopkeeper(keeper_code="SK25DFLT1", first_name="Jane", phone="254711111111", password_hash="hash")
        db.add(keeper)
        db.commit()
        db.refresh(keeper)

        assert keeper.role == ROLE_OWNER
        assert keeper.is_verified is False
        assert keeper.is_active is False
        assert keeper.shop_id is None
        assert isinstance(keeper.created_at, datetime)

    def test_phone_uniqueness(self, db, signed_up_keeper):
        db.add(Shopkeeper(keeper_code="SK25DUPE1", first_name="Dup", phone=signed_up_keeper.phone, password_hash="hash"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_has_active_plan(self):
        now = datetime(2025, 10, 19, 9, 0)
        keeper = Shopkeeper(is_active=True, due_date=now + timedelta(hours=1))
        assert keeper.has_active_plan(now) is True
        assert keeper.has_active_plan(now + timedelta(hours=2)) is False

    def test_inactive_keeper_has_no_plan(self):
        keeper = Shopkeeper(is_active=False, due_date=utcnow() + timedelta(days=7))
        assert keeper.has_active_plan() is False

    def test_shop_relationship(self, db, test_shop, active_owner):
        db.refresh(test_shop)
        assert [k.keeper_code for k in test_shop.keepers] == ["SK25OWNR1"]
        assert active_owner.shop.name == "Mama Mboga Stores"


class TestShop:
    def test_api_key_uniqueness(self, db, test_shop):
        db.add(Shop(name="Copycat", api_key=test_shop.api_key))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


class TestPendingPayment:
    def test_defaults_and_terminal_flag(self, db):
        entry = PendingPayment(order_id="order-x", phone="254712345678", amount=65, plan="weekly")
        db.add(entry)
        db.commit()
        db.refresh(entry)

        assert entry.status == STATUS_PENDING
        assert entry.is_terminal is False
        assert isinstance(entry.created_at, datetime)

        entry.status = STATUS_COMPLETED
        assert entry.is_terminal is True
        entry.status = STATUS_FAILED
        assert entry.is_terminal is True

    def test_order_id_uniqueness(self, db):
        db.add(PendingPayment(order_id="same", phone="254712345678", amount=10, plan="daily"))
        db.commit()
        db.add(PendingPayment(order_id="same", phone="254712345678", amount=10, plan="daily"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

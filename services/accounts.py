import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from core.db import transaction, utcnow
from core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidPhoneFormat,
    StateError,
    UnknownAccount,
    ValidationError,
)
from models.shop import Shop
from models.shopkeeper import Shopkeeper
from schemas.shop import ShopProfile
from schemas.shopkeeper import SignupRequest
from services.credentials import CredentialStore
from services.notifications import KeeperNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifyResult:
    keeper: Shopkeeper
    shop: Optional[Shop]


class AccountService:
    """Signup, verification and login on top of the credential store."""

    def __init__(self, store: CredentialStore, notifier: Optional[KeeperNotifier] = None):
        self.store = store
        self.notifier = notifier or KeeperNotifier()
        self.db: Session = store.db

    def signup(self, data: SignupRequest) -> Shopkeeper:
        with transaction(self.db):
            keeper = self.store.create_shopkeeper(data, data.password)
        logger.info("Shopkeeper %s signed up", keeper.keeper_code)
        return keeper

    def verify(self, phone: str, code: str, shop_profile: Optional[ShopProfile] = None) -> VerifyResult:
        shop = None
        with transaction(self.db):
            try:
                keeper = self.store.find_by_phone(phone)
            except (UnknownAccount, InvalidPhoneFormat):
                raise ValidationError("Invalid or expired code", reason="invalid_code") from None

            if keeper.is_verified:
                raise StateError("Account already verified", reason="already_verified")
            if not keeper.is_active:
                raise StateError("Activation payment not completed", reason="activation_pending")
            if keeper.activation_code is None:
                raise StateError("Activation code already used", reason="code_already_used")
            if not secrets.compare_digest(keeper.activation_code.encode(), code.strip().upper().encode()):
                raise ValidationError("Invalid or expired code", reason="invalid_code")

            if shop_profile is not None:
                if keeper.shop_id is not None:
                    raise ConflictError("Account already has a shop", reason="shop_exists")
                shop = self.store.create_shop(shop_profile)
                self.store.link_keeper_to_shop(keeper.id, shop.id)
            elif keeper.shop_id is None:
                raise ValidationError("Shop details are required to verify this account", reason="shop_profile_required")

            keeper.is_verified = True
            keeper.activation_code = None
            self.db.flush()

        logger.info("Shopkeeper %s verified", keeper.keeper_code)
        self.notifier.verified(keeper, shop.name if shop else None)
        return VerifyResult(keeper=keeper, shop=shop)

    def login(self, phone: str, password: str) -> Shopkeeper:
        keeper = self.store.verify_credentials(phone, password)
        if not keeper.is_verified:
            raise ForbiddenError("Account not verified", reason="account_not_verified")
        if not keeper.has_active_plan(utcnow()):
            raise ForbiddenError("Account not active", reason="account_inactive")
        return keeper


def keeper_summary(keeper: Shopkeeper, include_api_key: bool = False) -> dict:
    shop = keeper.shop
    summary = {
        "keeper_id": keeper.keeper_code,
        "first_name": keeper.first_name,
        "last_name": keeper.last_name,
        "phone": keeper.phone,
        "email": keeper.email,
        "role": keeper.role,
        "is_verified": keeper.is_verified,
        "is_active": keeper.has_active_plan(),
        "plan_type": keeper.plan_type,
        "due_date": keeper.due_date,
        "shop_id": shop.id if shop else None,
        "shop_name": shop.name if shop else None,
    }
    if include_api_key:
        summary["api_key"] = shop.api_key if shop else None
    return summary

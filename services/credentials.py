"""
Credential store: shopkeeper and shop records.

Every method works on the injected session and only flushes, so a caller can
compose several of them into one transaction (see ``core.db.transaction``).
Phones are normalized before every lookup and write.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import ConflictError, InvalidCredentials, InvalidKey, InvalidPhoneFormat, NotFoundError, UnknownAccount
from models.shop import Shop
from models.shopkeeper import Shopkeeper, ROLE_OWNER
from schemas.shop import ShopProfile
from schemas.shopkeeper import KeeperProfile
from security.password import hash_password, verify_password
from security.tokens import generate_api_key, generate_keeper_code
from services.mpesa import normalize_phone

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


class CredentialStore:
    def __init__(self, db: Session):
        self.db = db

    def _unique_keeper_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_keeper_code()
            if not self.db.query(Shopkeeper.id).filter(Shopkeeper.keeper_code == code).first():
                return code
        raise RuntimeError("Could not allocate a unique keeper code")

    def create_shopkeeper(self, profile: KeeperProfile, password: str, role: str = ROLE_OWNER) -> Shopkeeper:
        phone = normalize_phone(profile.phone)
        email = profile.email.lower() if profile.email else None

        if self.db.query(Shopkeeper.id).filter(Shopkeeper.phone == phone).first():
            raise ConflictError("Phone already registered", reason="duplicate_phone")
        if email and self.db.query(Shopkeeper.id).filter(Shopkeeper.email == email).first():
            raise ConflictError("Email already registered", reason="duplicate_email")

        keeper = Shopkeeper(
            keeper_code=self._unique_keeper_code(),
            first_name=profile.first_name.strip(),
            last_name=profile.last_name.strip() if profile.last_name else None,
            phone=phone,
            email=email,
            password_hash=hash_password(password),
            role=role,
            is_verified=False,
            is_active=False,
        )
        self.db.add(keeper)
        try:
            self.db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent signup for the same phone or email
            raise ConflictError("Phone or email already registered", reason="duplicate_phone") from exc
        return keeper

    def find_by_phone(self, phone: str) -> Shopkeeper:
        keeper = self.db.query(Shopkeeper).filter(Shopkeeper.phone == normalize_phone(phone)).one_or_none()
        if keeper is None:
            raise UnknownAccount()
        return keeper

    def verify_credentials(self, phone: str, password: str) -> Shopkeeper:
        try:
            keeper = self.find_by_phone(phone)
        except (UnknownAccount, InvalidPhoneFormat):
            keeper = None
        if keeper is None:
            verify_password(password, None)
            raise InvalidCredentials()
        if not verify_password(password, keeper.password_hash):
            raise InvalidCredentials()
        return keeper

    def activate(self, phone: str, plan: str, due_date: datetime, activation_code: Optional[str] = None) -> Shopkeeper:
        keeper = self.find_by_phone(phone)
        keeper.is_active = True
        keeper.plan_type = plan
        keeper.due_date = due_date
        if activation_code is not None:
            keeper.activation_code = activation_code
        self.db.flush()
        return keeper

    def create_shop(self, profile: ShopProfile) -> Shop:
        shop = Shop(
            name=profile.name.strip(),
            phone=profile.phone,
            email=profile.email.lower() if profile.email else None,
            address=profile.address,
            api_key=generate_api_key(),
        )
        self.db.add(shop)
        self.db.flush()
        logger.info("Shop %s created", shop.id)
        return shop

    def link_keeper_to_shop(self, keeper_id: int, shop_id: int) -> Shopkeeper:
        keeper = self.db.get(Shopkeeper, keeper_id)
        if keeper is None:
            raise UnknownAccount()
        shop = self.db.get(Shop, shop_id)
        if shop is None:
            raise NotFoundError("Shop not found")
        keeper.shop = shop
        self.db.flush()
        logger.info("Keeper %s linked to shop %s", keeper.keeper_code, shop.id)
        return keeper

    def resolve_api_key(self, api_key: str) -> Tuple[Shop, Shopkeeper]:
        shop = self.db.query(Shop).filter(Shop.api_key == api_key).one_or_none()
        if shop is None:
            raise InvalidKey()
        # A shop key acts for its owner; staff-only shops fall back to the first keeper
        keeper = (
            self.db.query(Shopkeeper)
            .filter(Shopkeeper.shop_id == shop.id)
            .order_by(case((Shopkeeper.role == ROLE_OWNER, 0), else_=1), Shopkeeper.id)
            .first()
        )
        if keeper is None:
            raise InvalidKey()
        return shop, keeper

    def list_keepers(self, shop_id: int) -> List[Shopkeeper]:
        return (
            self.db.query(Shopkeeper)
            .filter(Shopkeeper.shop_id == shop_id)
            .order_by(Shopkeeper.role, Shopkeeper.first_name)
            .all()
        )

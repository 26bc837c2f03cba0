from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import UnknownAccount
from core.tenancy import TenantContext, get_tenant, require_owner
from models.shopkeeper import Shopkeeper
from schemas.shopkeeper import (
    SignupRequest,
    SignupResponse,
    VerifyRequest,
    VerifyResponse,
    LoginRequest,
    LoginResponse,
    ShopkeeperSummary,
)
from services.accounts import AccountService, keeper_summary
from services.credentials import CredentialStore
from services.notifications import KeeperNotifier, get_notifier

router = APIRouter(prefix="/shopkeepers", tags=["shopkeepers"])


def get_account_service(
    db: Session = Depends(get_db), notifier: KeeperNotifier = Depends(get_notifier)
) -> AccountService:
    return AccountService(CredentialStore(db), notifier)


@router.post("/signup", response_model=SignupResponse, status_code=201)
def signup(data: SignupRequest, accounts: AccountService = Depends(get_account_service)):
    keeper = accounts.signup(data)
    return SignupResponse(
        message="Account created. Pay for a plan to receive your activation code.",
        keeper_id=keeper.keeper_code,
    )


@router.post("/verify", response_model=VerifyResponse)
def verify(data: VerifyRequest, accounts: AccountService = Depends(get_account_service)):
    result = accounts.verify(data.phone, data.code, data.shop)
    return VerifyResponse(
        message="Account verified successfully",
        keeper_id=result.keeper.keeper_code,
        shop_id=result.keeper.shop_id,
    )


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    keeper = accounts.login(data.phone, data.password)
    return keeper_summary(keeper, include_api_key=True)


@router.get("/me", response_model=ShopkeeperSummary)
def get_me(tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)):
    keeper = db.get(Shopkeeper, tenant.keeper_id)
    if keeper is None:
        raise UnknownAccount("Shopkeeper not found")
    return keeper_summary(keeper)


@router.get("/", response_model=List[ShopkeeperSummary])
def list_shopkeepers(tenant: TenantContext = Depends(require_owner), db: Session = Depends(get_db)):
    keepers = CredentialStore(db).list_keepers(tenant.shop_id)
    return [keeper_summary(k) for k in keepers]

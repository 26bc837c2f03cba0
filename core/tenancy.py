from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from core.db import get_db, utcnow
from core.errors import ForbiddenError, MissingKey, PaymentRequiredError
from models.shopkeeper import Shopkeeper, ROLE_OWNER
from services.credentials import CredentialStore


@dataclass(frozen=True)
class TenantContext:
    """The shop and keeper a request acts for. Downstream queries filter on ``shop_id``."""

    shop_id: int
    keeper_id: int
    keeper_code: str
    keeper_role: str


def authenticate(api_key: Optional[str], store: CredentialStore) -> TenantContext:
    """Resolve an API key to its tenant. No store lookup without a key."""
    if not api_key or not api_key.strip():
        raise MissingKey()
    shop, keeper = store.resolve_api_key(api_key.strip())
    return TenantContext(
        shop_id=shop.id,
        keeper_id=keeper.id,
        keeper_code=keeper.keeper_code,
        keeper_role=keeper.role,
    )


def get_tenant(
    x_api_key: Optional[str] = Header(default=None, alias="X-Api-Key"),
    db: Session = Depends(get_db),
) -> TenantContext:
    """FastAPI dependency for every protected route."""
    return authenticate(x_api_key, CredentialStore(db))


def require_active_tenant(tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)) -> TenantContext:
    """Like ``get_tenant`` but rejects keepers whose paid plan has lapsed."""
    keeper = db.get(Shopkeeper, tenant.keeper_id)
    if keeper is None or not keeper.has_active_plan(utcnow()):
        raise PaymentRequiredError("Plan has expired; renew to continue")
    return tenant


def require_owner(tenant: TenantContext = Depends(get_tenant)) -> TenantContext:
    if tenant.keeper_role != ROLE_OWNER:
        raise ForbiddenError("Access denied. Owners only.", reason="owner_only")
    return tenant

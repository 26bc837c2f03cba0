import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db, transaction
from core.errors import NotFoundError
from core.tenancy import TenantContext, get_tenant, require_owner
from models.product import ProductType, ProductVariant
from models.sale import Sale
from models.shop import Shop
from models.shopkeeper import Shopkeeper
from schemas.shop import ShopCreated, ShopOut, ShopProfile, ShopUpdate
from services.credentials import CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shops", tags=["shops"])


def _tenant_shop(tenant: TenantContext, db: Session) -> Shop:
    shop = db.get(Shop, tenant.shop_id)
    if not shop:
        raise NotFoundError("Shop not found")
    return shop


@router.post("/", response_model=ShopCreated, status_code=201)
def create_shop(data: ShopProfile, tenant: TenantContext = Depends(require_owner), db: Session = Depends(get_db)):
    """Open a new shop and move the calling owner into it.

    The old shop keeps its key and its other keepers. The response carries
    the new shop's key, which is the only way to reach it.
    """
    store = CredentialStore(db)
    with transaction(db):
        shop = store.create_shop(data)
        store.link_keeper_to_shop(tenant.keeper_id, shop.id)
    logger.info("Keeper %s moved from shop %s to new shop %s", tenant.keeper_code, tenant.shop_id, shop.id)
    return ShopCreated(message="Shop created successfully", shop_id=shop.id, api_key=shop.api_key)


@router.get("/current", response_model=ShopOut)
def get_shop(tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)):
    return _tenant_shop(tenant, db)


@router.put("/current", response_model=ShopOut)
def update_shop(data: ShopUpdate, tenant: TenantContext = Depends(require_owner), db: Session = Depends(get_db)):
    with transaction(db):
        shop = _tenant_shop(tenant, db)
        # The API key is never updated through this route
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "name" and value is None:
                continue
            setattr(shop, field, value)
    return shop


@router.delete("/current")
def delete_shop(tenant: TenantContext = Depends(require_owner), db: Session = Depends(get_db)):
    """Delete the shop with its catalog and sales; its keepers are unlinked, not deleted."""
    with transaction(db):
        shop = _tenant_shop(tenant, db)
        db.query(Sale).filter(Sale.shop_id == shop.id).delete(synchronize_session=False)
        db.query(ProductVariant).filter(ProductVariant.shop_id == shop.id).delete(synchronize_session=False)
        db.query(ProductType).filter(ProductType.shop_id == shop.id).delete(synchronize_session=False)
        db.query(Shopkeeper).filter(Shopkeeper.shop_id == shop.id).update(
            {Shopkeeper.shop_id: None}, synchronize_session=False
        )
        db.delete(shop)
    db.expire_all()
    logger.info("Shop %s deleted by keeper %s", tenant.shop_id, tenant.keeper_code)
    return {"message": "Shop deleted successfully"}

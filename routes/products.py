from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, selectinload
from typing import List

from core.db import get_db, transaction
from core.errors import NotFoundError
from core.tenancy import TenantContext, require_active_tenant
from models.product import ProductType, ProductVariant
from schemas.product import (
    ProductTypeCreate,
    ProductTypeUpdate,
    ProductTypeOut,
    ProductOut,
    VariantCreate,
    VariantUpdate,
    VariantOut,
)

router = APIRouter(prefix="/products", tags=["products"])


def _product_type(type_id: int, tenant: TenantContext, db: Session) -> ProductType:
    product = db.query(ProductType).filter(ProductType.shop_id == tenant.shop_id, ProductType.id == type_id).one_or_none()
    if not product:
        raise NotFoundError("Product not found or access denied")
    return product


@router.get("/", response_model=List[ProductOut])
def list_products(tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    qs = (
        db.query(ProductType)
        .options(selectinload(ProductType.variants))
        .filter(ProductType.shop_id == tenant.shop_id)
        .order_by(ProductType.name, ProductType.id)
    )
    return qs.all()


@router.post("/", response_model=ProductTypeOut, status_code=201)
def create_product(data: ProductTypeCreate, tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    product = ProductType(
        shop_id=tenant.shop_id,
        name=data.name.strip(),
        brand=data.brand,
        category=data.category,
        description=data.description,
    )
    with transaction(db):
        db.add(product)
    return product


@router.put("/{type_id}", response_model=ProductTypeOut)
def update_product(type_id: int, data: ProductTypeUpdate, tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    with transaction(db):
        product = _product_type(type_id, tenant, db)
        if data.name is not None:
            product.name = data.name.strip()
        if data.brand is not None:
            product.brand = data.brand
        if data.category is not None:
            product.category = data.category
        if data.description is not None:
            product.description = data.description
    return product


@router.post("/{type_id}/variants", response_model=VariantOut, status_code=201)
def add_variant(type_id: int, data: VariantCreate, tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    with transaction(db):
        product = _product_type(type_id, tenant, db)
        variant = ProductVariant(
            type_id=product.id,
            shop_id=tenant.shop_id,
            size=data.size,
            size_unit=data.size_unit,
            unit=data.unit,
            price_per_unit=data.price_per_unit,
            current_stock=data.current_stock,
            barcode=data.barcode,
        )
        db.add(variant)
    return variant


@router.put("/variants/{variant_id}", response_model=VariantOut)
def update_variant(variant_id: int, data: VariantUpdate, tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    with transaction(db):
        variant = db.query(ProductVariant).filter(
            ProductVariant.shop_id == tenant.shop_id, ProductVariant.id == variant_id
        ).one_or_none()
        if not variant:
            raise NotFoundError("Variant not found or access denied")
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(variant, field, value)
    return variant

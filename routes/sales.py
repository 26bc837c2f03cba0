from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.config import settings
from core.db import get_db, transaction
from core.errors import NotFoundError, ValidationError
from core.tenancy import TenantContext, require_active_tenant
from models.product import ProductVariant
from models.sale import Sale
from schemas.sale import DailySummary, SaleOut, SalesUpload, SalesUploadResult

router = APIRouter(prefix="/sales", tags=["sales"])


def _to_decimal(value: float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _as_utc(value: datetime) -> datetime:
    """Naive UTC, the form sale_date is stored in."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@router.post("/upload", response_model=SalesUploadResult)
def upload_sales(data: SalesUpload, tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    if not data.sales:
        raise ValidationError("No sales to upload", reason="empty_sales")

    # Every variant must belong to the caller's shop
    variant_ids = {sale.variant_id for sale in data.sales}
    owned = {
        v.id for v in db.query(ProductVariant.id).filter(
            ProductVariant.shop_id == tenant.shop_id, ProductVariant.id.in_(variant_ids)
        ).all()
    }
    missing = sorted(variant_ids - owned)
    if missing:
        raise NotFoundError(f"Variants not found for this shop: {missing}")

    with transaction(db):
        for sale in data.sales:
            unit_price = _to_decimal(sale.unit_price)
            total = _to_decimal(sale.total_price) if sale.total_price is not None else unit_price * sale.quantity
            db.add(
                Sale(
                    shop_id=tenant.shop_id,
                    variant_id=sale.variant_id,
                    quantity=sale.quantity,
                    unit_price=unit_price,
                    total_price=total,
                    sale_date=_as_utc(sale.sale_date),
                )
            )

    received = len(data.sales)
    return SalesUploadResult(received=received, message=f"{received} sales uploaded successfully")


@router.get("/", response_model=List[SaleOut])
def list_sales(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tenant: TenantContext = Depends(require_active_tenant),
    db: Session = Depends(get_db),
):
    qs = db.query(Sale).filter(Sale.shop_id == tenant.shop_id)
    if start:
        qs = qs.filter(Sale.sale_date >= _as_utc(start))
    if end:
        qs = qs.filter(Sale.sale_date <= _as_utc(end))
    return qs.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


@router.get("/variant/{variant_id}", response_model=List[SaleOut])
def list_variant_sales(variant_id: int, tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    sales = (
        db.query(Sale)
        .filter(Sale.shop_id == tenant.shop_id, Sale.variant_id == variant_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )
    if not sales:
        raise NotFoundError("No sales found for this variant")
    return sales


@router.get("/summary/daily", response_model=List[DailySummary])
def daily_summary(tenant: TenantContext = Depends(require_active_tenant), db: Session = Depends(get_db)):
    offset = timedelta(hours=settings.REPORT_UTC_OFFSET_HOURS)
    rows = (
        db.query(Sale.sale_date, Sale.total_price)
        .filter(Sale.shop_id == tenant.shop_id)
        .order_by(Sale.sale_date.desc())
        .all()
    )

    days: dict = {}
    for sale_date, total_price in rows:
        day = (sale_date + offset).date()
        bucket = days.setdefault(day, {"transaction_count": 0, "revenue": Decimal("0.00")})
        bucket["transaction_count"] += 1
        bucket["revenue"] += _to_decimal(total_price)

    return [
        DailySummary(sale_day=day, transaction_count=b["transaction_count"], revenue=float(b["revenue"]))
        for day, b in sorted(days.items(), key=lambda item: item[0], reverse=True)
    ]

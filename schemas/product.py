from pydantic import BaseModel, Field
from typing import List, Optional


class ProductTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None


class ProductTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None


class VariantCreate(BaseModel):
    size: float = Field(gt=0)
    size_unit: Optional[str] = None
    unit: str = Field(min_length=1, max_length=20)
    price_per_unit: float = Field(gt=0)
    current_stock: int = 0
    barcode: Optional[str] = None


class VariantUpdate(BaseModel):
    size: Optional[float] = Field(default=None, gt=0)
    size_unit: Optional[str] = None
    unit: Optional[str] = Field(default=None, min_length=1, max_length=20)
    price_per_unit: Optional[float] = Field(default=None, gt=0)
    current_stock: Optional[int] = None
    barcode: Optional[str] = None


class VariantOut(BaseModel):
    variant_id: int = Field(validation_alias="id")
    type_id: int
    size: float
    size_unit: Optional[str] = None
    unit: str
    price_per_unit: float
    current_stock: int
    barcode: Optional[str] = None

    class Config:
        from_attributes = True


class ProductTypeOut(BaseModel):
    type_id: int = Field(validation_alias="id")
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class ProductOut(ProductTypeOut):
    variants: List[VariantOut] = []

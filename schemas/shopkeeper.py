from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from schemas.shop import ShopProfile


class KeeperProfile(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: str = Field(min_length=9, max_length=20)
    email: Optional[EmailStr] = None


class SignupRequest(KeeperProfile):
    password: str = Field(min_length=6, max_length=128)


class SignupResponse(BaseModel):
    message: str
    keeper_id: str


class VerifyRequest(BaseModel):
    phone: str
    code: str = Field(min_length=1, max_length=64)
    shop: Optional[ShopProfile] = None


class VerifyResponse(BaseModel):
    message: str
    keeper_id: str
    shop_id: Optional[int] = None


class LoginRequest(BaseModel):
    phone: str
    password: str


class ShopkeeperSummary(BaseModel):
    keeper_id: str
    first_name: str
    last_name: Optional[str] = None
    phone: str
    email: Optional[str] = None
    role: str
    is_verified: bool
    is_active: bool
    plan_type: Optional[str] = None
    due_date: Optional[datetime] = None
    shop_id: Optional[int] = None
    shop_name: Optional[str] = None


class LoginResponse(ShopkeeperSummary):
    api_key: Optional[str] = None

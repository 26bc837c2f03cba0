from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class InitiateActivationRequest(BaseModel):
    phone: str
    plan: str


class InitiateActivationResponse(BaseModel):
    message: str
    order_id: str
    plan: str
    amount: int
    CheckoutRequestID: Optional[str] = None


class CallbackItem(BaseModel):
    Name: str
    Value: Any = None


class CallbackItems(BaseModel):
    Item: List[CallbackItem] = []


class StkCallback(BaseModel):
    model_config = ConfigDict(extra="allow")

    MerchantRequestID: Optional[str] = None
    CheckoutRequestID: Optional[str] = None
    ResultCode: int
    ResultDesc: Optional[str] = None
    CallbackMetadata: Optional[CallbackItems] = None

    def metadata(self) -> Dict[str, Any]:
        if not self.CallbackMetadata:
            return {}
        return {item.Name: item.Value for item in self.CallbackMetadata.Item}


class CallbackBody(BaseModel):
    stkCallback: StkCallback


class StkCallbackEnvelope(BaseModel):
    """Daraja result notification: ``{"Body": {"stkCallback": {...}}}``."""

    Body: CallbackBody


class ActivationResultOut(BaseModel):
    order_id: str
    status: str
    plan: str
    due_date: Optional[datetime] = None
    duplicate: bool = False

    class Config:
        from_attributes = True


class PaymentStatusOut(BaseModel):
    order_id: str
    plan: str
    amount: float
    status: str
    created_at: datetime
    settled_at: Optional[datetime] = None

    class Config:
        from_attributes = True

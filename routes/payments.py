from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from schemas.payment import (
    InitiateActivationRequest,
    InitiateActivationResponse,
    StkCallbackEnvelope,
    ActivationResultOut,
    PaymentStatusOut,
)
from services.activation import ActivationService
from services.credentials import CredentialStore
from services.ledger import PaymentLedger
from services.mpesa import MpesaGateway, get_gateway
from services.notifications import KeeperNotifier, get_notifier

router = APIRouter(prefix="/payment", tags=["payment"])


def get_activation_service(
    db: Session = Depends(get_db),
    gateway: MpesaGateway = Depends(get_gateway),
    notifier: KeeperNotifier = Depends(get_notifier),
) -> ActivationService:
    return ActivationService(CredentialStore(db), PaymentLedger(db), gateway, notifier)


@router.post("/initiate-activation", response_model=InitiateActivationResponse)
def initiate_activation(data: InitiateActivationRequest, service: ActivationService = Depends(get_activation_service)):
    result = service.initiate_activation(data.phone, data.plan)
    return InitiateActivationResponse(
        message=result.message,
        order_id=result.order_id,
        plan=result.plan,
        amount=result.amount,
        CheckoutRequestID=result.checkout_request_id,
    )


@router.post("/callback/activation/{order_id}", response_model=ActivationResultOut)
def activation_callback(
    order_id: str,
    data: StkCallbackEnvelope,
    service: ActivationService = Depends(get_activation_service),
):
    # Errors propagate as non-2xx responses so the provider retries
    callback = data.Body.stkCallback
    return service.handle_callback(
        order_id,
        callback.ResultCode,
        metadata=callback.metadata(),
        result_desc=callback.ResultDesc,
        raw=data.model_dump(mode="json"),
    )


@router.get("/status/{order_id}", response_model=PaymentStatusOut)
def payment_status(order_id: str, service: ActivationService = Depends(get_activation_service)):
    return service.payment_status(order_id)

"""
Activation state machine.

A shopkeeper moves from signed-up to awaiting-payment when an STK push is
issued for them, and to activated (or the order to failed) when the
provider calls back::

    SignedUp -> AwaitingPayment -> Activated
                               \\-> PaymentFailed   (retry = new order id)

Two orderings matter here. The ledger row is committed before the push is
sent, so every push has a traceable record. On a successful callback the
keeper is activated before the ledger entry is completed, inside a single
transaction.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from core.config import settings
from core.db import transaction, utcnow
from core.errors import GatewayRejected, GatewayUnavailable
from models.payment import PendingPayment, STATUS_COMPLETED, STATUS_FAILED
from security.tokens import generate_activation_code
from services.credentials import CredentialStore
from services.ledger import PaymentLedger
from services.mpesa import MpesaGateway, normalize_phone
from services.notifications import KeeperNotifier
from services.plans import normalize_plan, plan_amount, plan_due_date

logger = logging.getLogger(__name__)

SUCCESS_RESULT_CODE = 0


@dataclass(frozen=True)
class InitiationResult:
    order_id: str
    plan: str
    amount: int
    checkout_request_id: Optional[str]
    message: str = "STK push sent"


@dataclass(frozen=True)
class ActivationResult:
    order_id: str
    status: str
    plan: str
    due_date: Optional[datetime] = None
    duplicate: bool = False


class ActivationService:
    def __init__(
        self,
        store: CredentialStore,
        ledger: PaymentLedger,
        gateway: MpesaGateway,
        notifier: Optional[KeeperNotifier] = None,
        clock: Callable[[], datetime] = utcnow,
        callback_base_url: Optional[str] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.gateway = gateway
        self.notifier = notifier or KeeperNotifier()
        self.clock = clock
        self.callback_base_url = callback_base_url
        self.db = ledger.db

    def callback_url(self, order_id: str) -> str:
        base = self.callback_base_url or settings.BASE_CALLBACK_URL
        return f"{base}{settings.API_PREFIX}/payment/callback/activation/{order_id}"

    def initiate_activation(self, phone: str, plan: str) -> InitiationResult:
        canonical = normalize_phone(phone)
        plan = normalize_plan(plan)
        amount = plan_amount(plan)

        self.store.find_by_phone(canonical)
        token = self.gateway.get_access_token()

        order_id = str(uuid.uuid4())
        with transaction(self.db):
            self.ledger.record(order_id, canonical, amount, plan)
        logger.info("Order %s recorded: %s plan, KES %s for %s", order_id, plan, amount, canonical)

        try:
            push = self.gateway.initiate_push(
                token,
                canonical,
                amount,
                self.callback_url(order_id),
                reference=f"ZELSHOP-{plan.upper()}",
                description=f"Activate Zelshop - {plan} Plan",
            )
        except GatewayRejected as exc:
            # No callback will ever arrive for a rejected push
            with transaction(self.db):
                self.ledger.mark_failed(order_id, result_desc=str(exc.detail))
            logger.warning("Order %s: STK push rejected: %s", order_id, exc.detail)
            raise
        except GatewayUnavailable:
            logger.warning("Order %s: gateway unavailable, entry left pending", order_id)
            raise

        with transaction(self.db):
            self.ledger.attach_checkout(order_id, push.checkout_request_id)
        logger.info("Order %s: STK push sent (%s)", order_id, push.checkout_request_id)
        return InitiationResult(
            order_id=order_id,
            plan=plan,
            amount=amount,
            checkout_request_id=push.checkout_request_id,
        )

    def handle_callback(
        self,
        order_id: str,
        result_code: int,
        metadata: Optional[Dict[str, Any]] = None,
        result_desc: Optional[str] = None,
        raw: Optional[Dict[str, Any]] = None,
    ) -> ActivationResult:
        metadata = metadata or {}
        activation_code = None

        with transaction(self.db):
            entry = self.ledger.get(order_id, for_update=True)
            if entry.is_terminal:
                logger.info("Order %s already %s; duplicate callback ignored", order_id, entry.status)
                return self._existing_result(entry)

            if result_code != SUCCESS_RESULT_CODE:
                self.ledger.mark_failed(order_id, result_code=result_code, result_desc=result_desc, raw_callback=raw)
                logger.info("Order %s failed with result code %s", order_id, result_code)
                return ActivationResult(order_id=order_id, status=STATUS_FAILED, plan=entry.plan)

            keeper = self.store.find_by_phone(entry.phone)
            due_date = plan_due_date(entry.plan, self.clock())
            if not keeper.is_verified:
                activation_code = generate_activation_code()
            keeper = self.store.activate(entry.phone, entry.plan, due_date, activation_code=activation_code)
            self.ledger.mark_completed(
                order_id,
                result_code=result_code,
                result_desc=result_desc,
                receipt_number=metadata.get("MpesaReceiptNumber"),
                raw_callback=raw,
            )

        logger.info("Order %s completed; keeper %s active until %s", order_id, keeper.keeper_code, due_date)
        if activation_code:
            self.notifier.activation_code(keeper, activation_code)
        return ActivationResult(order_id=order_id, status=STATUS_COMPLETED, plan=entry.plan, due_date=due_date)

    def _existing_result(self, entry: PendingPayment) -> ActivationResult:
        due_date = None
        if entry.status == STATUS_COMPLETED:
            due_date = self.store.find_by_phone(entry.phone).due_date
        return ActivationResult(
            order_id=entry.order_id,
            status=entry.status,
            plan=entry.plan,
            due_date=due_date,
            duplicate=True,
        )

    def payment_status(self, order_id: str) -> PendingPayment:
        return self.ledger.get(order_id)

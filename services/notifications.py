import logging

from core.config import settings
from models.shopkeeper import Shopkeeper
from services import email as email_service

logger = logging.getLogger(__name__)


class KeeperNotifier:
    """Delivers account messages to a shopkeeper by e-mail."""

    def activation_code(self, keeper: Shopkeeper, code: str) -> None:
        if not keeper.email:
            # No channel to reach the keeper; support reads it from the logs
            logger.warning("Keeper %s has no email; activation code not delivered", keeper.keeper_code)
            if settings.DEBUG:
                logger.debug("Activation code for %s: %s", keeper.phone, code)
            return
        email_service.send_templated_email(
            keeper.email,
            "Your Zelshop activation code",
            "emails/activation_code.txt",
            {
                "first_name": keeper.first_name,
                "code": code,
                "plan": keeper.plan_type,
                "due_date": keeper.due_date.strftime("%Y-%m-%d %H:%M") if keeper.due_date else "",
            },
        )

    def verified(self, keeper: Shopkeeper, shop_name: str | None = None) -> None:
        if not keeper.email:
            return
        email_service.send_templated_email(
            keeper.email,
            "Zelshop account verified",
            "emails/verification_success.txt",
            {"first_name": keeper.first_name, "shop_name": shop_name},
        )


def get_notifier() -> KeeperNotifier:
    return KeeperNotifier()

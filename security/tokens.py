import secrets
import string
from datetime import datetime

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_keeper_code(now: datetime | None = None) -> str:
    """Human-shareable keeper code, e.g. ``SK25A7X9C``."""
    year = (now or datetime.now()).strftime("%y")
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(5))
    return f"SK{year}{suffix}"


def generate_activation_code() -> str:
    return secrets.token_hex(4).upper()


def generate_api_key() -> str:
    return secrets.token_urlsafe(32)

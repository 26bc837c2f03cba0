from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Compared against when the account does not exist, so unknown phones cost
# the same bcrypt round as a wrong password.
_DUMMY_HASH: str | None = None


def _secret(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return _pwd_context.hash(_secret(password))


def verify_password(password: str, password_hash: str | None) -> bool:
    global _DUMMY_HASH
    if not password_hash:
        if _DUMMY_HASH is None:
            _DUMMY_HASH = hash_password("zelshop-unknown-account")
        _pwd_context.verify(_secret(password), _DUMMY_HASH)
        return False
    return _pwd_context.verify(_secret(password), password_hash)

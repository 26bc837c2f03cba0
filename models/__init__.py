# Import models so that SQLAlchemy metadata includes them on app startup
from .shop import Shop  # noqa: F401
from .shopkeeper import Shopkeeper  # noqa: F401
from .payment import PendingPayment  # noqa: F401
from .product import ProductType, ProductVariant  # noqa: F401
from .sale import Sale  # noqa: F401

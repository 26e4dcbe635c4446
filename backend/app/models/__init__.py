"""Import every model so Base.metadata knows about all tables."""
from app.models.user import User  # noqa: F401
from app.models.product import Product  # noqa: F401
from app.models.group import Group, Member  # noqa: F401
from app.models.order import Order, OrderStatusHistory  # noqa: F401
from app.models.order_settings import OrderSetting  # noqa: F401

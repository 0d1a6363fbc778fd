from .base import Base, async_engine, async_session_factory, get_db
from .user import User, UserProfile
from .purchase import OrderItem, PaymentStatus, Purchase
from .generated_document import GeneratedDocument
from .stripe_event import StripeEvent

__all__ = [
    "Base",
    "async_engine",
    "async_session_factory",
    "get_db",
    "User",
    "UserProfile",
    "Purchase",
    "OrderItem",
    "PaymentStatus",
    "GeneratedDocument",
    "StripeEvent",
]

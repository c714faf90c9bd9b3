from .base import Base
from .error_code import ErrorCode
from .promo_code import PromoCode
from .user import User

__all__ = [
    "Base",
    "ErrorCode",
    "PromoCode",
    "User",
]

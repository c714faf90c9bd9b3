from .promo_codes import PromoCodeError, redeem_code, validate_code
from .restrictions import Restrictions

__all__ = ["PromoCodeError", "Restrictions", "redeem_code", "validate_code"]

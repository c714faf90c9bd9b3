from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
)

from .base import Base


class PromoCode(Base):
    """Redeemable promo code granting ``free_days`` of (optionally restricted) access."""

    __tablename__ = "promo_codes"
    __table_args__ = (
        CheckConstraint("current_uses <= max_uses", name="ck_promo_codes_uses_cap"),
        CheckConstraint("current_uses >= 0", name="ck_promo_codes_uses_nonneg"),
        CheckConstraint("free_days > 0", name="ck_promo_codes_free_days_pos"),
    )

    id = Column(Integer, primary_key=True)
    code = Column(String(64), nullable=False, unique=True, index=True)  # uppercase
    active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    max_uses = Column(Integer, nullable=False)
    current_uses = Column(Integer, nullable=False, default=0, server_default="0")
    free_days = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    content_type_restriction = Column(String(32), nullable=True)
    level_restriction = Column(String(32), nullable=True)
    language_restriction = Column(String(32), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


__all__ = ["PromoCode"]

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from app.models.base import Base


class User(Base):
    __tablename__ = "users"

    # opaque identifier issued by the auth provider (e.g. a UUID)
    id = Column(String(64), primary_key=True)
    email = Column(String, nullable=True)

    # promo grant, written once by a successful redemption
    promo_code_used = Column(String(64), nullable=True)
    free_trial_days = Column(Integer, nullable=False, default=0, server_default="0")
    trial_expires_at = Column(DateTime(timezone=True), nullable=True)
    promo_content_restriction = Column(String(32), nullable=True)
    promo_level_restriction = Column(String(32), nullable=True)
    promo_language_restriction = Column(String(32), nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


__all__ = ["User"]

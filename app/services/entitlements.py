"""Read side of promo grants: what a user was granted and whether it still applies."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import NamedTuple

from sqlalchemy.orm import Session

from app.models import ErrorCode, User
from app.services.promo_codes import PromoCodeError, as_utc
from app.services.restrictions import Restrictions


class Grant(NamedTuple):
    """Snapshot of a redemption as stored on the user record."""

    user_id: str
    promo_code: str
    free_days: int
    trial_expires_at: datetime | None
    restrictions: Restrictions

    def is_active(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.trial_expires_at is not None and self.trial_expires_at > now


def get_grant(db: Session, user_id: str) -> Grant | None:
    """Return the user's promo grant, ``None`` when they never redeemed one."""
    user = db.get(User, user_id)
    if user is None:
        raise PromoCodeError(ErrorCode.USER_NOT_FOUND)
    if not user.promo_code_used:
        return None
    return Grant(
        user_id=user.id,
        promo_code=user.promo_code_used,
        free_days=user.free_trial_days or 0,
        trial_expires_at=as_utc(user.trial_expires_at),
        restrictions=Restrictions.from_user(user),
    )


def grant_allows(
    grant: Grant | None,
    *,
    content_type: str | None = None,
    level: str | None = None,
    language: str | None = None,
    now: datetime | None = None,
) -> bool:
    # expired or missing grants unlock nothing
    if grant is None or not grant.is_active(now):
        return False
    return grant.restrictions.allows(content_type, level, language)


__all__ = ["Grant", "get_grant", "grant_allows"]

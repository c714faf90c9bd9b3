"""Promo code validation, redemption and administration.

Redemption is the only operation that grants access. It runs as a single
transaction made of two conditional UPDATEs:

- ``promo_codes``: compare-and-increment ``current_uses`` while the code is
  active, unexpired and below ``max_uses``;
- ``users``: write the grant only while ``promo_code_used`` is still empty.

If either UPDATE matches no row the transaction is rolled back, so a rejected
redemption never leaves a consumed use behind. Validation is advisory and
takes no locks.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import ErrorCode, PromoCode, User
from app.services.restrictions import Restrictions

logger = logging.getLogger(__name__)

# width of the restriction columns on promo_codes and users
RESTRICTION_MAX_LENGTH = 32

MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.NOT_FOUND: "Invalid promo code",
    ErrorCode.INACTIVE: "This promo code is no longer active",
    ErrorCode.EXPIRED: "This promo code has expired",
    ErrorCode.CAPACITY_EXHAUSTED: "This promo code has reached its usage limit",
    ErrorCode.ALREADY_REDEEMED: "You have already used a promo code",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.DUPLICATE_CODE: "A promo code with this name already exists",
    ErrorCode.STORE_UNAVAILABLE: "Failed to apply promo code",
}


class PromoCodeError(Exception):
    """Classified promo code failure carrying a stable ``kind``."""

    def __init__(self, kind: ErrorCode, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or MESSAGES.get(kind, kind.value)
        super().__init__(self.message)


class ValidationResult(NamedTuple):
    code: str
    free_days: int
    remaining_uses: int
    description: str | None
    restrictions: Restrictions

    @property
    def access_description(self) -> str:
        return self.restrictions.access_description(self.free_days)


class RedemptionResult(NamedTuple):
    code: str
    user_id: str
    free_days: int
    trial_expires_at: datetime
    restrictions: Restrictions

    @property
    def message(self) -> str:
        access = self.restrictions.access_description(self.free_days)
        return f"Promo code applied! You now have {access}."


def _now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def canonicalize_code(code: str) -> str:
    return code.strip().upper()


def check_eligible(promo: PromoCode | None, now: datetime) -> PromoCode:
    """Raise the first failing eligibility condition of ``promo``."""
    if promo is None:
        raise PromoCodeError(ErrorCode.NOT_FOUND)
    if not promo.active:
        raise PromoCodeError(ErrorCode.INACTIVE)
    expires_at = as_utc(promo.expires_at)
    if expires_at is not None and expires_at < now:
        raise PromoCodeError(ErrorCode.EXPIRED)
    if promo.current_uses >= promo.max_uses:
        raise PromoCodeError(ErrorCode.CAPACITY_EXHAUSTED)
    return promo


def get_promo_code(db: Session, code: str) -> PromoCode | None:
    canonical = canonicalize_code(code)
    if not canonical:
        return None
    return db.execute(
        select(PromoCode).where(PromoCode.code == canonical)
    ).scalar_one_or_none()


def validate_code(
    db: Session, code: str, *, now: datetime | None = None
) -> ValidationResult:
    now = now or _now()
    try:
        promo = check_eligible(get_promo_code(db, code), now)
    except SQLAlchemyError as exc:
        logger.exception("promo validation failed on store access")
        raise PromoCodeError(
            ErrorCode.STORE_UNAVAILABLE, "Failed to validate promo code"
        ) from exc
    return ValidationResult(
        code=promo.code,
        free_days=promo.free_days,
        remaining_uses=promo.max_uses - promo.current_uses,
        description=promo.description,
        restrictions=Restrictions.from_promo(promo),
    )


def _claim_use(db: Session, promo_id: int, now: datetime):
    """Compare-and-increment one use; returns the granted row or ``None``."""
    stmt = (
        update(PromoCode)
        .where(
            PromoCode.id == promo_id,
            PromoCode.active.is_(True),
            or_(PromoCode.expires_at.is_(None), PromoCode.expires_at >= now),
            PromoCode.current_uses < PromoCode.max_uses,
        )
        .values(current_uses=PromoCode.current_uses + 1)
        .returning(
            PromoCode.code,
            PromoCode.free_days,
            PromoCode.content_type_restriction,
            PromoCode.level_restriction,
            PromoCode.language_restriction,
        )
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).first()


def _write_grant(
    db: Session,
    user_id: str,
    code: str,
    free_days: int,
    trial_expires_at: datetime,
    restrictions: Restrictions,
) -> bool:
    stmt = (
        update(User)
        .where(User.id == user_id, User.promo_code_used.is_(None))
        .values(
            promo_code_used=code,
            free_trial_days=free_days,
            trial_expires_at=trial_expires_at,
            promo_content_restriction=restrictions.content_type,
            promo_level_restriction=restrictions.level,
            promo_language_restriction=restrictions.language,
        )
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


def _redeem(db: Session, code: str, user_id: str, now: datetime) -> RedemptionResult:
    promo = check_eligible(get_promo_code(db, code), now)
    promo_id = promo.id

    user_row = db.execute(
        select(User.id, User.promo_code_used).where(User.id == user_id)
    ).first()
    if user_row is None:
        raise PromoCodeError(ErrorCode.USER_NOT_FOUND)
    if user_row.promo_code_used:
        raise PromoCodeError(ErrorCode.ALREADY_REDEEMED)

    claimed = _claim_use(db, promo_id, now)
    if claimed is None:
        # lost a race; report what the row looks like now
        fresh = db.execute(
            select(PromoCode)
            .where(PromoCode.id == promo_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        check_eligible(fresh, now)
        raise PromoCodeError(ErrorCode.CAPACITY_EXHAUSTED)

    restrictions = Restrictions.of(
        claimed.content_type_restriction,
        claimed.level_restriction,
        claimed.language_restriction,
    )
    trial_expires_at = now + timedelta(days=claimed.free_days)
    if not _write_grant(
        db, user_id, claimed.code, claimed.free_days, trial_expires_at, restrictions
    ):
        raise PromoCodeError(ErrorCode.ALREADY_REDEEMED)

    return RedemptionResult(
        code=claimed.code,
        user_id=user_id,
        free_days=claimed.free_days,
        trial_expires_at=trial_expires_at,
        restrictions=restrictions,
    )


def redeem_code(
    db: Session, code: str, user_id: str, *, now: datetime | None = None
) -> RedemptionResult:
    """Atomically consume one use of ``code`` for ``user_id``.

    Either the use is counted and the grant written, or nothing changes.
    Store failures are not retried; they surface as ``STORE_UNAVAILABLE``.
    """
    now = now or _now()
    try:
        result = _redeem(db, code, user_id, now)
        db.commit()
    except PromoCodeError as exc:
        db.rollback()
        logger.warning(
            "audit: promo redemption rejected (%s)",
            exc.kind.value,
            extra={"promo_code": canonicalize_code(code), "user_id": user_id, "kind": exc.kind.value},
        )
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "promo redemption aborted by store error",
            extra={"promo_code": canonicalize_code(code), "user_id": user_id},
        )
        raise PromoCodeError(ErrorCode.STORE_UNAVAILABLE) from exc

    logger.info(
        "promo redeemed",
        extra={"promo_code": result.code, "user_id": user_id},
    )
    return result


def create_promo_code(
    db: Session,
    *,
    code: str,
    free_days: int,
    max_uses: int,
    expires_at: datetime | None = None,
    description: str | None = None,
    restrictions: Restrictions | None = None,
) -> PromoCode:
    canonical = canonicalize_code(code)
    if not canonical:
        raise ValueError("code must not be blank")
    if free_days < 1:
        raise ValueError("free_days must be positive")
    if max_uses < 1:
        raise ValueError("max_uses must be positive")
    restrictions = restrictions or Restrictions()
    if any(len(value) > RESTRICTION_MAX_LENGTH for value in restrictions if value):
        raise ValueError(
            f"restrictions must be at most {RESTRICTION_MAX_LENGTH} characters"
        )

    if get_promo_code(db, canonical) is not None:
        raise PromoCodeError(ErrorCode.DUPLICATE_CODE)

    promo = PromoCode(
        code=canonical,
        active=True,
        expires_at=as_utc(expires_at),
        max_uses=max_uses,
        current_uses=0,
        free_days=free_days,
        description=(description or "").strip() or None,
        content_type_restriction=restrictions.content_type,
        level_restriction=restrictions.level,
        language_restriction=restrictions.language,
    )
    db.add(promo)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise PromoCodeError(ErrorCode.DUPLICATE_CODE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("promo code creation failed", extra={"promo_code": canonical})
        raise PromoCodeError(
            ErrorCode.STORE_UNAVAILABLE, "Failed to create promo code"
        ) from exc
    db.refresh(promo)
    logger.info("promo code created", extra={"promo_code": canonical})
    return promo


def list_promo_codes(db: Session) -> list[PromoCode]:
    return list(
        db.execute(
            select(PromoCode).order_by(PromoCode.created_at.desc(), PromoCode.id.desc())
        ).scalars()
    )


def set_promo_code_active(db: Session, promo_id: int, active: bool) -> PromoCode:
    promo = db.get(PromoCode, promo_id)
    if promo is None:
        raise PromoCodeError(ErrorCode.NOT_FOUND)
    promo.active = active
    db.add(promo)
    db.commit()
    db.refresh(promo)
    logger.info(
        "promo code %s", "activated" if active else "deactivated",
        extra={"promo_code": promo.code},
    )
    return promo


__all__ = [
    "MESSAGES",
    "RESTRICTION_MAX_LENGTH",
    "PromoCodeError",
    "ValidationResult",
    "RedemptionResult",
    "as_utc",
    "canonicalize_code",
    "check_eligible",
    "get_promo_code",
    "validate_code",
    "redeem_code",
    "create_promo_code",
    "list_promo_codes",
    "set_promo_code_active",
]

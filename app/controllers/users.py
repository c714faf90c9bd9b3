import asyncio
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app import db as db_module
from app.dependencies import ErrorResponse, rate_limit
from app.models import ErrorCode
from app.services.entitlements import get_grant, grant_allows
from app.services.promo_codes import PromoCodeError

router = APIRouter(prefix="/users")


class GrantOut(BaseModel):
    user_id: str
    promo_code_used: str | None = None
    free_days: int = 0
    trial_expires_at: datetime | None = None
    trial_active: bool = False
    restrictions: dict[str, str | None] | None = None


class AccessCheckRequest(BaseModel):
    content_type: str | None = None
    level: str | None = None
    language: str | None = None


class AccessCheckResponse(BaseModel):
    allowed: bool


def _not_found(exc: PromoCodeError) -> HTTPException:
    err = ErrorResponse(code=exc.kind, message=exc.message)
    return HTTPException(status_code=404, detail=err.model_dump())


@router.get(
    "/{user_id}/promo",
    response_model=GrantOut,
    responses={404: {"model": ErrorResponse}},
)
async def user_promo_grant(user_id: str, caller_id: str | None = Depends(rate_limit)):
    if caller_id is not None and caller_id != user_id:
        err = ErrorResponse(code=ErrorCode.FORBIDDEN, message="Cannot read another user")
        raise HTTPException(status_code=403, detail=err.model_dump())

    def _db_call():
        with db_module.SessionLocal() as db:
            return get_grant(db, user_id)

    try:
        grant = await asyncio.to_thread(_db_call)
    except PromoCodeError as exc:
        raise _not_found(exc) from exc

    if grant is None:
        return GrantOut(user_id=user_id)
    return GrantOut(
        user_id=user_id,
        promo_code_used=grant.promo_code,
        free_days=grant.free_days,
        trial_expires_at=grant.trial_expires_at,
        trial_active=grant.is_active(),
        restrictions=grant.restrictions.as_dict(),
    )


@router.post(
    "/{user_id}/promo/access",
    response_model=AccessCheckResponse,
    responses={404: {"model": ErrorResponse}},
)
async def user_promo_access(
    user_id: str,
    body: AccessCheckRequest,
    caller_id: str | None = Depends(rate_limit),
):
    if caller_id is not None and caller_id != user_id:
        err = ErrorResponse(code=ErrorCode.FORBIDDEN, message="Cannot read another user")
        raise HTTPException(status_code=403, detail=err.model_dump())

    def _db_call():
        with db_module.SessionLocal() as db:
            return get_grant(db, user_id)

    try:
        grant = await asyncio.to_thread(_db_call)
    except PromoCodeError as exc:
        raise _not_found(exc) from exc

    return AccessCheckResponse(
        allowed=grant_allows(
            grant,
            content_type=body.content_type,
            level=body.level,
            language=body.language,
        )
    )

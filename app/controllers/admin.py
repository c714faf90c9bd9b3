import asyncio
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from app import db as db_module
from app.dependencies import ErrorResponse, require_admin
from app.models import ErrorCode, PromoCode
from app.services.promo_codes import (
    RESTRICTION_MAX_LENGTH,
    PromoCodeError,
    create_promo_code,
    list_promo_codes,
    set_promo_code_active,
)
from app.services.restrictions import Restrictions

router = APIRouter(prefix="/admin/promo-codes", dependencies=[Depends(require_admin)])


class PromoCodeCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    free_days: int = Field(default=30, ge=1)
    max_uses: int = Field(default=100, ge=1)
    expires_at: datetime | None = None
    description: str | None = None
    content_type_restriction: str | None = Field(default=None, max_length=RESTRICTION_MAX_LENGTH)
    level_restriction: str | None = Field(default=None, max_length=RESTRICTION_MAX_LENGTH)
    language_restriction: str | None = Field(default=None, max_length=RESTRICTION_MAX_LENGTH)


class PromoCodeUpdateRequest(BaseModel):
    active: bool


class PromoCodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    active: bool
    free_days: int
    max_uses: int
    current_uses: int
    remaining_uses: int
    expires_at: datetime | None = None
    description: str | None = None
    content_type_restriction: str | None = None
    level_restriction: str | None = None
    language_restriction: str | None = None
    badges: list[str]
    created_at: datetime | None = None


def _to_out(promo: PromoCode) -> PromoCodeOut:
    return PromoCodeOut(
        id=promo.id,
        code=promo.code,
        active=promo.active,
        free_days=promo.free_days,
        max_uses=promo.max_uses,
        current_uses=promo.current_uses,
        remaining_uses=max(0, promo.max_uses - promo.current_uses),
        expires_at=promo.expires_at,
        description=promo.description,
        content_type_restriction=promo.content_type_restriction,
        level_restriction=promo.level_restriction,
        language_restriction=promo.language_restriction,
        badges=Restrictions.from_promo(promo).qualifiers(),
        created_at=promo.created_at,
    )


def _raise(exc: PromoCodeError) -> None:
    status = {
        ErrorCode.NOT_FOUND: 404,
        ErrorCode.DUPLICATE_CODE: 409,
        ErrorCode.STORE_UNAVAILABLE: 503,
    }.get(exc.kind, 400)
    err = ErrorResponse(code=exc.kind, message=exc.message)
    raise HTTPException(status_code=status, detail=err.model_dump()) from exc


@router.get("", response_model=list[PromoCodeOut])
async def admin_list_promo_codes():
    def _db_call() -> list[PromoCodeOut]:
        with db_module.SessionLocal() as db:
            return [_to_out(p) for p in list_promo_codes(db)]

    return await asyncio.to_thread(_db_call)


@router.post(
    "",
    response_model=PromoCodeOut,
    status_code=201,
    responses={409: {"model": ErrorResponse}},
)
async def admin_create_promo_code(body: PromoCodeCreateRequest):
    def _db_call() -> PromoCodeOut:
        with db_module.SessionLocal() as db:
            promo = create_promo_code(
                db,
                code=body.code,
                free_days=body.free_days,
                max_uses=body.max_uses,
                expires_at=body.expires_at,
                description=body.description,
                restrictions=Restrictions.of(
                    body.content_type_restriction,
                    body.level_restriction,
                    body.language_restriction,
                ),
            )
            return _to_out(promo)

    try:
        return await asyncio.to_thread(_db_call)
    except PromoCodeError as exc:
        _raise(exc)
    except ValueError as exc:
        err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message=str(exc))
        raise HTTPException(status_code=400, detail=err.model_dump()) from exc


@router.patch(
    "/{promo_id}",
    response_model=PromoCodeOut,
    responses={404: {"model": ErrorResponse}},
)
async def admin_update_promo_code(promo_id: int, body: PromoCodeUpdateRequest):
    def _db_call() -> PromoCodeOut:
        with db_module.SessionLocal() as db:
            return _to_out(set_promo_code_active(db, promo_id, body.active))

    try:
        return await asyncio.to_thread(_db_call)
    except PromoCodeError as exc:
        _raise(exc)

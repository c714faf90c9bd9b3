import asyncio
import json
import logging
import time
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app import db as db_module
from app.dependencies import ErrorResponse, rate_limit
from app.metrics import (
    promo_redeem_seconds,
    promo_redeem_total,
    promo_store_errors_total,
    promo_validate_total,
)
from app.models import ErrorCode
from app.services.promo_codes import (
    PromoCodeError,
    redeem_code,
    validate_code,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/promo-code")

# classified failures not listed here answer 400
_ERROR_STATUS = {
    ErrorCode.ALREADY_REDEEMED: 409,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.STORE_UNAVAILABLE: 503,
}


class RestrictionsOut(BaseModel):
    content_type: str | None = None
    level: str | None = None
    language: str | None = None


class ValidateRequest(BaseModel):
    code: str = Field(min_length=1)


class ValidateResponse(BaseModel):
    valid: bool
    code: str
    free_days: int
    remaining_uses: int
    description: str | None = None
    access_description: str
    restrictions: RestrictionsOut


class ApplyRequest(BaseModel):
    # numeric ids from older clients are accepted as their string form
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    code: str = Field(min_length=1)
    user_id: str = Field(alias="userId", min_length=1, max_length=64)


class ApplyResponse(BaseModel):
    success: bool
    message: str
    free_days: int
    trial_expires_at: datetime
    restrictions: RestrictionsOut


class PromoErrorResponse(BaseModel):
    error: str
    code: str
    valid: bool | None = None


def _error(status: int, kind: ErrorCode, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"error": message, "code": kind.value, **extra},
    )


async def _read_body(request: Request) -> dict | None:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


@router.post(
    "/validate",
    response_model=ValidateResponse,
    responses={400: {"model": PromoErrorResponse}, 503: {"model": PromoErrorResponse}},
)
async def validate_promo_code(request: Request, _: str | None = Depends(rate_limit)):
    payload = await _read_body(request)
    if payload is None:
        return _error(400, ErrorCode.BAD_REQUEST, "Invalid JSON payload", valid=False)
    try:
        body = ValidateRequest.model_validate(payload)
    except ValidationError:
        return _error(400, ErrorCode.BAD_REQUEST, "Promo code is required", valid=False)

    def _db_call():
        with db_module.SessionLocal() as db:
            return validate_code(db, body.code)

    try:
        result = await asyncio.to_thread(_db_call)
    except PromoCodeError as exc:
        promo_validate_total.labels(result=exc.kind.value).inc()
        status = _ERROR_STATUS.get(exc.kind, 400)
        return _error(status, exc.kind, exc.message, valid=False)

    promo_validate_total.labels(result="ok").inc()
    return ValidateResponse(
        valid=True,
        code=result.code,
        free_days=result.free_days,
        remaining_uses=result.remaining_uses,
        description=result.description,
        access_description=result.access_description,
        restrictions=RestrictionsOut(**result.restrictions.as_dict()),
    )


@router.post(
    "/apply",
    response_model=ApplyResponse,
    responses={
        400: {"model": PromoErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": PromoErrorResponse},
        409: {"model": PromoErrorResponse},
        503: {"model": PromoErrorResponse},
    },
)
async def apply_promo_code(request: Request, caller_id: str | None = Depends(rate_limit)):
    payload = await _read_body(request)
    if payload is None:
        return _error(400, ErrorCode.BAD_REQUEST, "Invalid JSON payload")
    try:
        body = ApplyRequest.model_validate(payload)
    except ValidationError:
        if any(payload.get(key) in (None, "") for key in ("code", "userId")):
            message = "Promo code and user ID are required"
        else:
            message = "Invalid promo code or user ID"
        return _error(400, ErrorCode.BAD_REQUEST, message)

    if caller_id is not None and caller_id != body.user_id:
        logger.warning("audit: promo apply user mismatch %s != %s", caller_id, body.user_id)
        err = ErrorResponse(code=ErrorCode.UNAUTHORIZED, message="User ID mismatch")
        raise HTTPException(status_code=401, detail=err.model_dump())

    def _db_call():
        with db_module.SessionLocal() as db:
            return redeem_code(db, body.code, body.user_id)

    start_time = time.perf_counter()
    try:
        result = await asyncio.to_thread(_db_call)
    except PromoCodeError as exc:
        promo_redeem_total.labels(result=exc.kind.value).inc()
        if exc.kind is ErrorCode.STORE_UNAVAILABLE:
            promo_store_errors_total.inc()
        return _error(_ERROR_STATUS.get(exc.kind, 400), exc.kind, exc.message)
    finally:
        promo_redeem_seconds.observe(time.perf_counter() - start_time)

    promo_redeem_total.labels(result="ok").inc()
    return ApplyResponse(
        success=True,
        message=result.message,
        free_days=result.free_days,
        trial_expires_at=result.trial_expires_at,
        restrictions=RestrictionsOut(**result.restrictions.as_dict()),
    )

from fastapi import APIRouter

from . import admin, promo_codes, users

router = APIRouter(prefix="/v1")
router.include_router(promo_codes.router)
router.include_router(users.router)
# admin endpoints additionally require X-Admin-Key
router.include_router(admin.router)

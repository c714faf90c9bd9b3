import os

import pytest
from sqlalchemy.exc import OperationalError

from app.config import Settings
from app.controllers import admin
from app.db import SessionLocal
from app.models import ErrorCode
from app.services.promo_codes import PromoCodeError, create_promo_code
from app.services.restrictions import Restrictions

settings = Settings()
HEADERS = {
    "X-API-Key": os.getenv("API_KEY", "test-api-key"),
    "X-API-Ver": "v1",
    "X-Admin-Key": settings.admin_api_key,
}


def _create(client, **payload):
    body = {"code": "spring", "free_days": 14, "max_uses": 20} | payload
    return client.post("/v1/admin/promo-codes", headers=HEADERS, json=body)


def test_create_canonicalizes_code(client):
    resp = _create(
        client,
        code="  spring24 ",
        description="Spring promo",
        content_type_restriction="esl",
        level_restriction="",
        language_restriction="English",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["code"] == "SPRING24"
    assert body["active"] is True
    assert body["current_uses"] == 0
    assert body["remaining_uses"] == 20
    assert body["level_restriction"] is None
    assert body["badges"] == ["ESL", "English language support"]


def test_create_duplicate_is_conflict(client):
    assert _create(client, code="DUP").status_code == 201
    resp = _create(client, code="dup")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "DUPLICATE_CODE"


@pytest.mark.parametrize(
    "payload",
    [{"free_days": 0}, {"max_uses": 0}, {"code": ""}],
)
def test_create_rejects_invalid_values(client, payload):
    resp = _create(client, **payload)
    assert resp.status_code == 422


def test_create_rejects_blank_code(client):
    resp = _create(client, code="   ")
    assert resp.status_code == 400


def test_list_newest_first(client):
    _create(client, code="OLDER")
    _create(client, code="NEWER", level_restriction="Beginner")
    resp = client.get("/v1/admin/promo-codes", headers=HEADERS)
    assert resp.status_code == 200
    codes = [item["code"] for item in resp.json()]
    assert codes == ["NEWER", "OLDER"]
    assert resp.json()[0]["badges"] == ["Beginner level"]


def test_toggle_active_blocks_validation(client):
    promo_id = _create(client, code="TOGGLE").json()["id"]
    api_headers = {k: v for k, v in HEADERS.items() if k != "X-Admin-Key"}

    resp = client.patch(
        f"/v1/admin/promo-codes/{promo_id}", headers=HEADERS, json={"active": False}
    )
    assert resp.status_code == 200
    assert resp.json()["active"] is False
    resp = client.post(
        "/v1/promo-code/validate", headers=api_headers, json={"code": "TOGGLE"}
    )
    assert resp.json()["code"] == "INACTIVE"

    client.patch(
        f"/v1/admin/promo-codes/{promo_id}", headers=HEADERS, json={"active": True}
    )
    resp = client.post(
        "/v1/promo-code/validate", headers=api_headers, json={"code": "TOGGLE"}
    )
    assert resp.json()["valid"] is True


def test_toggle_unknown_id(client):
    resp = client.patch(
        "/v1/admin/promo-codes/424242", headers=HEADERS, json={"active": False}
    )
    assert resp.status_code == 404


def test_admin_key_required(client):
    headers = HEADERS | {"X-Admin-Key": "nope"}
    assert client.get("/v1/admin/promo-codes", headers=headers).status_code == 403
    headers.pop("X-Admin-Key")
    assert client.get("/v1/admin/promo-codes", headers=headers).status_code == 403


@pytest.mark.parametrize(
    "field", ["content_type_restriction", "level_restriction", "language_restriction"]
)
def test_create_rejects_overlong_restriction(client, field):
    resp = _create(client, code="LONG", **{field: "x" * 33})
    assert resp.status_code == 422


def test_create_service_rejects_overlong_restriction():
    with SessionLocal() as db:
        with pytest.raises(ValueError):
            create_promo_code(
                db,
                code="LONG",
                free_days=1,
                max_uses=1,
                restrictions=Restrictions.of(language="x" * 33),
            )


def test_create_store_failure(monkeypatch):
    def _fail():
        raise OperationalError("INSERT INTO promo_codes", {}, Exception("value too long"))

    with SessionLocal() as db:
        monkeypatch.setattr(db, "commit", _fail)
        with pytest.raises(PromoCodeError) as exc_info:
            create_promo_code(db, code="BOOM", free_days=1, max_uses=1)
    assert exc_info.value.kind is ErrorCode.STORE_UNAVAILABLE
    assert exc_info.value.message == "Failed to create promo code"


def test_create_store_failure_is_503(client, monkeypatch):
    def _fail(db, **kwargs):
        raise PromoCodeError(ErrorCode.STORE_UNAVAILABLE, "Failed to create promo code")

    monkeypatch.setattr(admin, "create_promo_code", _fail)
    resp = _create(client, code="BOOM")
    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "STORE_UNAVAILABLE"

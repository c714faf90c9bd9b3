from app.config import Settings

settings = Settings()
HEADERS = {
    "X-API-Key": settings.api_key,
    "X-API-Ver": "v1",
}


def test_promo_metrics(client, make_promo, make_user):
    make_promo("METRIC")
    make_user("50")

    resp = client.post("/v1/promo-code/validate", headers=HEADERS, json={"code": "METRIC"})
    assert resp.status_code == 200
    resp = client.post(
        "/v1/promo-code/apply", headers=HEADERS, json={"code": "METRIC", "userId": "50"}
    )
    assert resp.status_code == 200
    resp = client.post(
        "/v1/promo-code/apply", headers=HEADERS, json={"code": "METRIC", "userId": "50"}
    )
    assert resp.status_code == 409

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text
    assert 'promo_validate_total{result="ok"}' in body
    assert 'promo_redeem_total{result="ok"}' in body
    assert 'promo_redeem_total{result="ALREADY_REDEEMED"}' in body
    assert "promo_redeem_seconds_bucket" in body

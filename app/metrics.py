from prometheus_client import Counter, Histogram
# Prometheus metrics definitions

# Validation requests, labelled by outcome ("ok" or the error kind)
promo_validate_total = Counter(
    "promo_validate_total", "Promo code validation requests", ["result"]
)

# Redemption attempts, labelled by outcome ("ok" or the error kind)
promo_redeem_total = Counter(
    "promo_redeem_total", "Promo code redemption attempts", ["result"]
)

# Redemptions that failed because the store was unreachable or errored
promo_store_errors_total = Counter(
    "promo_store_errors_total", "Store failures during promo redemption"
)

# redemption transaction is a handful of statements; buckets sized for that
_redeem_buckets = (
    0.005,
    0.01,
    0.05,
    0.1,
    0.5,
    1.0,
)

promo_redeem_seconds = Histogram(
    "promo_redeem_seconds", "Promo redemption transaction latency", buckets=_redeem_buckets
)

__all__ = [
    "promo_validate_total",
    "promo_redeem_total",
    "promo_store_errors_total",
    "promo_redeem_seconds",
]

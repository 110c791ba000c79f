"""
Prometheus metrics for the cache-aside layer and the two executors.
"""

from prometheus_client import Counter, Gauge, Histogram

CACHE_LOOKUPS = Counter(
    "product_api_cache_lookups_total",
    "Single-product reads by cache outcome",
    ["outcome"],
)

CACHE_INVALIDATIONS = Counter(
    "product_api_cache_invalidations_total",
    "Cache invalidations issued by the write path by outcome",
    ["outcome"],
)

CACHE_LIVE = Gauge(
    "product_api_cache_live",
    "1 while the cache client is connected and usable, 0 otherwise",
)

CACHE_LIVENESS_TRANSITIONS = Counter(
    "product_api_cache_liveness_transitions_total",
    "Cache connection state changes by event",
    ["event"],
)

DB_QUERY_DURATION = Histogram(
    "product_api_db_query_duration_seconds",
    "Time spent executing store queries",
    ["executor"],
)

DB_QUERY_FAILURES = Counter(
    "product_api_db_query_failures_total",
    "Store queries that raised",
    ["executor"],
)

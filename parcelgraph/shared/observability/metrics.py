# Prometheus metrics for gateway resolution and event processing

from prometheus_client import Counter

# ===== Gateway metrics =====
gateway_fetch_attempts_total = Counter(
    "parcelgraph_gateway_fetch_attempts_total",
    "Gateway fetch attempts",
    ["endpoint", "outcome"],
)

gateway_failed_passes_total = Counter(
    "parcelgraph_gateway_failed_passes_total",
    "Passes over all endpoints that produced no valid payload",
    ["tier"],
)

gateway_exhausted_total = Counter(
    "parcelgraph_gateway_exhausted_total",
    "Resolutions abandoned after using their pass budget",
    ["tier"],
)

# ===== Cache metrics =====
cid_cache_lookups_total = Counter(
    "parcelgraph_cid_cache_lookups_total",
    "CID payload cache lookups",
    ["result"],
)

# ===== Pipeline metrics =====
events_processed_total = Counter(
    "parcelgraph_events_processed_total",
    "Inbound events by final status",
    ["status"],
)

records_written_total = Counter(
    "parcelgraph_records_written_total",
    "Record upserts by entity type",
    ["entity_type"],
)

branch_failures_total = Counter(
    "parcelgraph_branch_failures_total",
    "Relationship or leaf branches that failed to resolve",
    ["stage"],
)

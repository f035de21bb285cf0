"""Prometheus custom metrics for the Dining Reviews Service."""

from prometheus_client import Counter, Histogram

# --- Review intake ---
REVIEW_SUBMISSIONS = Counter(
    "reviews_submissions_total",
    "Total review submissions by outcome",
    ["outcome"],  # approved / pending / rejected / banned
)

# --- Toxicity provider ---
MODERATION_VERDICTS = Counter(
    "moderation_verdicts_total",
    "Total toxicity verdicts produced by the scorer",
    ["action"],  # approved / shadow / rejected
)

PROVIDER_FAILURES = Counter(
    "moderation_provider_failures_total",
    "Total toxicity API failures handled by fallback",
    ["kind"],  # http_status / timeout / network / bad_payload / not_configured
)

PROVIDER_LATENCY = Histogram(
    "moderation_provider_latency_seconds",
    "Latency of toxicity API calls",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5),
)

# --- Cache ---
CACHE_LOOKUPS = Counter(
    "moderation_cache_lookups_total",
    "Moderation cache lookups",
    ["result"],  # hit / miss / coalesced
)

# --- Device bans ---
DEVICE_BANS = Counter(
    "moderation_device_bans_total",
    "Device bans created or refreshed",
    ["source"],  # auto / admin
)

DEVICE_UNBANS = Counter(
    "moderation_device_unbans_total",
    "Device unbans performed by admins",
)

# --- Admin overrides ---
ADMIN_OVERRIDES = Counter(
    "moderation_admin_overrides_total",
    "Manual moderation decisions",
    ["action"],  # approve / reject / unban
)

"""Default configuration values for EduMatch."""

from __future__ import annotations

from typing import Final

DEFAULT_API_BASE_URL: Final[str] = "http://localhost:3000"
REQUEST_TIMEOUT_SEC: Final[float] = 15.0

# ---------------------------------------------------------------------------
# Remote routes
# ---------------------------------------------------------------------------

WISHLIST_ROUTE: Final[str] = "/api/wishlist"
WISHLIST_STATS_ROUTE: Final[str] = "/api/wishlist/stats"
WISHLIST_BULK_ROUTE: Final[str] = "/api/wishlist/bulk"
EXPLORE_ROUTE_TEMPLATE: Final[str] = "/api/explore/{kind}"

# ---------------------------------------------------------------------------
# Wishlist synchronisation
# ---------------------------------------------------------------------------

# The removed item must stay hidden while the background membership refresh
# settles; anything shorter lets a late catalog response re-add it.
REMOVAL_GRACE_MS: Final[int] = 500
MIN_REMOVAL_GRACE_MS: Final[int] = 500

# Time given to the membership snapshot to propagate after an add before the
# catalog is fetched again.
ADD_DEBOUNCE_MS: Final[int] = 100

# The catalog is listed in one large page and matched against the wishlist
# locally, so the limit has to exceed the catalog size.
CATALOG_PAGE_LIMIT: Final[int] = 1000
MEMBERSHIP_PAGE_LIMIT: Final[int] = 1000
ACTIVE_MEMBERSHIP_STATUS: Final[int] = 1
INACTIVE_MEMBERSHIP_STATUS: Final[int] = 0
MEMBERSHIP_STATUSES: Final[tuple[int, ...]] = (INACTIVE_MEMBERSHIP_STATUS, ACTIVE_MEMBERSHIP_STATUS)

# ---------------------------------------------------------------------------
# Filter sidebar
# ---------------------------------------------------------------------------

# The only fee ranges the filter sidebar offers.
FEE_BUCKETS: Final[list[str]] = [
    "0-10000",
    "10000-25000",
    "25000-50000",
    "50000-1000000",
]

# Substrings that identify a degree level inside a free-text field name.
# Substring matching, so "ma" also hits "mathematics".
DEGREE_LEVEL_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "bachelor": ("bachelor", "bsc", "ba", "beng", "undergraduate"),
    "master": ("master", "msc", "ma", "mba", "meng", "mphil"),
    "phd": ("phd", "doctor", "doctoral", "dphil"),
    "diploma": ("diploma", "certificate"),
}

# Summary category names as reported by the stats endpoint.
COUNT_CATEGORIES: Final[tuple[str, ...]] = ("programs", "scholarships", "jobs")

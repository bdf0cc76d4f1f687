"""Internal constants shared across the library."""

USER_AGENT = "bookingsync/0.1"
REST_PATH = "/rest/v1"
IDENTITY_ADMIN_PATH = "/auth/v1/admin/users"
REALTIME_PATH = "/realtime/v1/websocket"

# ------------------------------------------------------------------
# Relations and columns
# ------------------------------------------------------------------

BOOKINGS = "bookings"
SERVICES = "services"
PROFILES = "profiles"
PROVIDER_STATS = "provider_stats"

PROVIDER_COLUMN = "provider_id"
CUSTOMER_COLUMN = "customer_id"

# ------------------------------------------------------------------
# Channel names (suffixed with the identity at subscribe time)
# ------------------------------------------------------------------

PROVIDER_BOOKINGS_CHANNEL = "provider-bookings"
CUSTOMER_BOOKINGS_CHANNEL = "bookings-changes"
PROVIDER_STATS_CHANNEL = "provider-stats"

# ------------------------------------------------------------------
# Default user-facing messages
# ------------------------------------------------------------------

FETCH_BOOKINGS_FAILED = "Failed to fetch bookings"
FETCH_STATS_FAILED = "Failed to fetch stats"
DEFAULT_CANCEL_REASON = "Cancelled by customer"

# PostgREST error codes
PG_NOT_FOUND_CODES: frozenset[str] = frozenset({"PGRST116"})
PG_PERMISSION_CODES: frozenset[str] = frozenset({"42501"})

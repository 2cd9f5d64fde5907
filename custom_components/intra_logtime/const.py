DOMAIN = "intra_logtime"
VERSION = "0.1.0"

API_BASE_URL = "https://api.intra.42.fr"
API_URL = API_BASE_URL + "/v2/"
TOKEN_URL = API_BASE_URL + "/oauth/token"
REVOKE_URL = API_BASE_URL + "/oauth/revoke"
PROFILE_URL = "https://profile.intra.42.fr/users/"
CLUSTER_MAP_URL = "https://meta.intra.42.fr/clusters"
DEFAULT_SCOPE = "public"

# Daily goal used when the configured values are missing or not numeric
DEFAULT_GOAL_HOURS = 6
DEFAULT_GOAL_MINUTES = 39

# Update intervals (seconds)
UPDATE_INTERVAL = 300           # today's logtime for the configured login
PIN_REFRESH_INTERVAL = 3600     # cached snapshots of pinned users older than this are re-fetched

# History lookup used by the fetch_history service
HISTORY_DAYS = 30

# HTTP
REQUEST_TIMEOUT = 5             # seconds, multiplied by attempt number for each retry
REQUEST_ATTEMPTS = 3            # maximum number of attempts for transient failures
RETRY_BACKOFF = 1.0             # seconds, doubled after every failed attempt
SEARCH_PAGE_SIZE = 30
MAX_SEARCH_PAGES = 10

# Tokens are treated as expired this many seconds before the server says so
TOKEN_EXPIRY_MARGIN = 60

# Persisted key-value store (one homeassistant Store file per config entry)
STORAGE_VERSION = 1
STORE_KEY_TOKEN = "token"
STORE_KEY_PINNED_LOGINS = "pinned-logins"
STORE_KEY_PINNED_CACHE = "pinned-users-cache"
STORE_KEY_CELEBRATION = "celebration-state"

EVENT_GOAL_REACHED = f"{DOMAIN}_goal_reached"

# Services
SERVICE_REFRESH = "refresh"
SERVICE_AUTHENTICATE = "authenticate"
SERVICE_TOGGLE_PIN = "toggle_pin"
SERVICE_TOKEN_INFO = "token_info"
SERVICE_FETCH_HISTORY = "fetch_history"
SERVICE_SEARCH_USERS = "search_users"

"""Centralized constants for the lexis application.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Catalog / HTTP ----------
DEFAULT_API_BASE_URL = "http://127.0.0.1:8000"
REQUEST_TIMEOUT = 30.0

# ---------- Review ----------
REVIEW_TYPE_NORMAL = "normal"
FAMILIARITY_MIN = 1
FAMILIARITY_MAX = 5

# ---------- Pagination / Sorting ----------
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
DEFAULT_SORT_BY = "created_at"
DEFAULT_SORT_ORDER = "desc"

# ---------- Input ----------
KEY_REVEAL = "Space"
KEY_INCORRECT = "ArrowLeft"
KEY_CORRECT = "ArrowRight"
KEY_RESTART = "KeyR"
TEXT_INPUT_TARGETS = frozenset({"input", "textarea", "select"})
DEFAULT_KEY_DEBOUNCE_MS = 0

# ---------- Server ----------
DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8777
SESSION_IDLE_TTL = 30 * 60.0  # seconds a finished bridge session is kept
MAX_BRIDGE_SESSIONS = 100

# ---------- Tags ----------
PENDING_TAG_PREFIX = "pending_"

"""Internal constants shared across the library."""

DEFAULT_LABEL = "Server"
DEFAULT_MIN_RETRY_INTERVAL = 0.25
DEFAULT_MAX_RETRY_INTERVAL = 10.0
DEFAULT_CONNECT_TIMEOUT = 10.0

# ------------------------------------------------------------------
# Reserved control frame types
# ------------------------------------------------------------------

DISCONNECT_EVENT = "_DISCONNECT"
DOWNLOAD_EVENT = "_DOWNLOAD"
BINARY_META_EVENT = "_BIN_META"
REQUEST_USER_SESSION_EVENT = "_REQUEST_USER_SESSION"
USER_SESSION_EVENT = "_USER_SESSION"

RESERVED_EVENTS: frozenset[str] = frozenset({DISCONNECT_EVENT, DOWNLOAD_EVENT, BINARY_META_EVENT})

# ------------------------------------------------------------------
# Per-key derived event names  (K -> "_SET:K", ...)
# ------------------------------------------------------------------


def get_event(key: str) -> str:
    """Peer should reply with the full snapshot of *key*."""
    return f"_GET:{key}"


def set_event(key: str) -> str:
    """Carries a full snapshot of *key*."""
    return f"_SET:{key}"


def patch_event(key: str) -> str:
    """Carries a structural patch for *key*."""
    return f"_PATCH:{key}"


def action_event(key: str) -> str:
    """Carries a forwarded domain action for *key*."""
    return f"_ACTION:{key}"


def task_start_event(key: str) -> str:
    return f"_TASK_START:{key}"


def task_cancel_event(key: str) -> str:
    return f"_TASK_CANCEL:{key}"

"""memos-relay constants.

Split into categories:
1. WIRE: values fixed by the MemOS product API contract
2. CAPTURE: message filtering and sanitization rules
3. FEEDBACK: correction detection tables and throttle windows
"""

import re

# =============================================================================
# WIRE CONSTANTS
# =============================================================================

DEFAULT_BASE_URL = "http://192.168.1.1:8000"
DEFAULT_USER_ID = "openclaw-user"

# Source tag the backend uses to attribute writes
MEMOS_SOURCE = "openclaw-official-api"

SEARCH_PATH = "/product/search"
ADD_PATH = "/product/add"
FEEDBACK_PATH = "/product/feedback"

# Linear backoff step between transport retries (attempt * step)
RETRY_BACKOFF_SECONDS = 0.5

# Result code for a successful backend call
SUCCESS_CODE = 200
FAILURE_CODE = 500

DEFAULT_SESSION_ID = "default_session"

# =============================================================================
# CAPTURE CONSTANTS
# =============================================================================

MEMORY_BLOCK_START = "[[user.memory]]"
MEMORY_BLOCK_END = "[[/user.memory]]"

# Marker the host places before the raw user query when it prepends context.
# Segments are separated by zero-width spaces.
USER_QUERY_MARKER = "user\u200b原\u200b始\u200bquery\u200b：\u200b\u200b\u200b\u200b"

HOST_COMMAND_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^/new\b",
        r"^/reset\b",
        r"^/load\b",
        r"^/save\b",
        r"^/undo\b",
        r"^/redo\b",
        r"^/fork\b",
        r"^/merge\b",
        r"^/diff\b",
        r"^/plan\b",
        r"^/commit\b",
        r"^/agent\b",
        r"^A new session was started via /new or /reset\.",
    )
)

VALID_ROLES: frozenset[str] = frozenset({"system", "user", "assistant", "tool"})

# Transport-specific role names mapped onto the canonical set
ROLE_MAPPING: dict[str, str] = {
    "toolResult": "tool",
}

CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
ZERO_WIDTH_RE = re.compile("[\u200b-\u200f\ufeff]")
NONCHARACTER_RE = re.compile("[\ufffe\uffff]")

MAX_CONTENT_CHARS = 10_000
TRUNCATION_SUFFIX = "..."

# Minimum prompt length worth a recall search
MIN_PROMPT_CHARS = 3

# =============================================================================
# FEEDBACK CONSTANTS
# =============================================================================

# Order matters: matched keywords are reported in table order
CORRECTION_KEYWORDS: tuple[str, ...] = (
    "不对",
    "错了",
    "错误",
    "更正",
    "修改",
    "改正",
    "纠正",
    "不是",
    "应该是",
    "其实是",
    "确切",
    "更正一下",
    "不对哦",
    "错了哦",
    "不对哈",
    "错了哈",
    "wrong",
    "incorrect",
    "correction",
    "fix",
    "update",
    "not right",
    "mistake",
    "should be",
    "actually",
)

# Terms that tie a correction to something the assistant remembered
MEMORY_REFERENCE_TERMS: tuple[str, ...] = (
    "记忆",
    "记得",
    "你记",
    "你说",
    "memory",
    "memories",
    "remember",
    "you said",
)

CORRECTION_BASE_CONFIDENCE = 0.4
CORRECTION_STEP_CONFIDENCE = 0.3
CORRECTION_MAX_CONFIDENCE = 0.95
DEFAULT_FEEDBACK_CONFIDENCE = 0.5

FEEDBACK_THROTTLE_MS = 30_000

# Stored/sent character ratio below which an add is flagged as lossy
CONTENT_LOSS_THRESHOLD = 0.8

DEFAULT_MEMORY_CONFIDENCE = 0.99
DEFAULT_MEMORY_TAGS: tuple[str, ...] = ("未分类",)

"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Error kinds are identified by stable strings wrapped in ErrorKindId
    - All valid states encoded as Enums — no raw string matching
    - CANCELLED_STATUS (499) is the single source of truth for aborted requests

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ErrorKindId = NewType("ErrorKindId", str)


# ─── Status Constants ────────────────────────────────────────────

CANCELLED_STATUS: int = 499       # client closed request / request aborted
INTERNAL_ERROR_STATUS: int = 500


# ─── Enums ───────────────────────────────────────────────────────

class Environment(str, Enum):
    """Deployment mode — drives timestamp and debug-output defaults."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class StatusClass(str, Enum):
    """Status-code buckets used for log colouring."""
    SUCCESS = "success"             # 200–399
    CLIENT_ERROR = "client_error"   # 400–499
    SERVER_ERROR = "server_error"   # 500–599
    UNTAGGED = "untagged"


class ResolutionStep(str, Enum):
    """Which dispatch step produced the handler for a raised error."""
    EXACT = "exact"
    ANCESTOR = "ancestor"
    RESPONDABLE = "respondable"
    GENERIC = "generic"
    BUILTIN = "builtin"

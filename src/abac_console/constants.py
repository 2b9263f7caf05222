"""Application-wide constants for abac-console.

Constants that define application behavior.
For user-configurable settings per deployment, see config.py.
"""

from typing import Literal

# ============================================================================
# Application Identity
# ============================================================================

APP_NAME: str = "abac-console"

# Config file name inside the OS config directory
CONFIG_FILENAME: str = "abac_console_config.json"

# Stored bearer token (written by `abac-console auth login`)
CREDENTIALS_FILENAME: str = "credentials.json"

# Local policy store (used by --local commands)
POLICY_FILENAME: str = "policy.json"

# Suggested log_dir offered by `abac-console init`
RECOMMENDED_LOG_DIR: str = "~/.abac-console"

# Subdirectory created inside the user-specified log_dir
LOG_SUBDIR: str = "abac_console_logs"

# Log file paths relative to LOG_SUBDIR
DECISIONS_LOG_RELPATH: str = "audit/decisions.jsonl"
SYSTEM_LOG_RELPATH: str = "system/system.jsonl"

# ============================================================================
# Environment Variables
# ============================================================================

ENV_API_URL: str = "ABAC_CONSOLE_API_URL"
ENV_TOKEN: str = "ABAC_CONSOLE_TOKEN"

# ============================================================================
# HTTP / API
# ============================================================================

DEFAULT_API_BASE_URL: str = "http://localhost:5000/api/superadmin"

DEFAULT_HTTP_TIMEOUT_SECONDS: int = 30
MIN_HTTP_TIMEOUT_SECONDS: int = 1
MAX_HTTP_TIMEOUT_SECONDS: int = 300  # 5 minutes

# ============================================================================
# Policy Model
# ============================================================================

OPERATORS: tuple[str, ...] = (
    "equals",
    "not_equals",
    "in",
    "not_in",
    "greater_than",
    "less_than",
    "contains",
    "regex",
)

Operator = Literal[
    "equals",
    "not_equals",
    "in",
    "not_in",
    "greater_than",
    "less_than",
    "contains",
    "regex",
]

# Operators whose raw input is a comma-separated list
LIST_OPERATORS: frozenset[str] = frozenset({"in", "not_in"})

# Operators whose raw input is parsed as a number
NUMERIC_OPERATORS: frozenset[str] = frozenset({"greater_than", "less_than"})

# The four attribute axes, in display/submission order
AXES: tuple[str, ...] = ("subject", "action", "resource", "environment")

Axis = Literal["subject", "action", "resource", "environment"]

MIN_POLICY_PRIORITY: int = 1
MAX_POLICY_PRIORITY: int = 1000
DEFAULT_POLICY_PRIORITY: int = 100

# Built-in policies the platform can (re)create via
# POST /abac/core-policies/{id}/initialize
CORE_POLICY_IDS: tuple[str, ...] = (
    "TENANT_ISOLATION",
    "READ_ONLY_ENFORCEMENT",
    "FINANCIAL_APPROVAL_LIMITS",
    "BUSINESS_HOURS_PAYOUTS",
    "AUTOMATION_SCOPE_PROTECTION",
    "NOTIFICATION_TENANT_SAFETY",
)

# Default decision when no active policy matches (zero trust)
DEFAULT_DECISION: Literal["DENY"] = "DENY"

# ============================================================================
# Audit Log Viewer
# ============================================================================

DEFAULT_PAGE_SIZE: int = 50
MAX_PAGE_SIZE: int = 1000

# Export refetches up to this many entries, ignoring pagination
EXPORT_LIMIT: int = 1000

# Maximum bytes read from the tail of a local JSONL log (10MB)
# Prevents OOM on very large decision logs
MAX_LOG_READ_BYTES: int = 10 * 1024 * 1024

CSV_HEADERS: tuple[str, ...] = (
    "Decision ID",
    "User ID",
    "User Role",
    "Action",
    "Resource Type",
    "Resource ID",
    "Decision",
    "Evaluation Time (ms)",
    "IP Address",
    "Endpoint",
    "Method",
    "Applied Policies",
    "Timestamp",
)

EXPORT_FILENAME_PREFIX: str = "abac-audit-logs-"

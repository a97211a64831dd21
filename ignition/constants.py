"""
Default values and fixed settings for the Ignition application.

Values that users may override live in ConfigFile (.ignition/config.json);
the defaults for those fields are defined here.
"""

# Project defaults
DEFAULT_PROJECT_NAME = "New Ignition Project"
IMPORTED_PROJECT_NAME = "Imported Project"
DEFAULT_PROJECT_FILE_PATH = "ignition-project.json"
DEFAULT_AUDIT_LOG_PATH = "audit-log.json"
IGNITION_DIR_NAME = ".ignition"

# Entity id prefixes, keyed by item type
ITEM_ID_PREFIXES = {
    "requirement": "REQ",
    "test": "TC",
    "risk": "RISK",
    "ci": "CI",
    "asset": "PA",
}

# Audit event name prefixes, keyed by item type
AUDIT_EVENT_PREFIXES = {
    "requirement": "REQUIREMENT",
    "test": "TEST_CASE",
    "risk": "RISK",
    "ci": "CI",
    "asset": "PROCESS_ASSET",
    "issue": "ISSUE",
}

# GitHub REST API
GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_ACCEPT_HEADER = "application/vnd.github.v3+json"
GITHUB_HOSTNAMES = ("github.com", "www.github.com")
USER_AGENT = "Ignition/1.0.0"
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 1.0
DEFAULT_MAX_RATE_LIMIT_WAIT = 60.0
MIN_RATE_LIMIT_WAIT = 1.0
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_LOW_RATE_LIMIT_THRESHOLD = 100
DEFAULT_PER_PAGE = 100
DEFAULT_MAX_PAGES = 20
DEFAULT_COMMIT_LIMIT = 50
MAX_COMMENT_LENGTH = 65536
PAT_PATTERNS = (
    r"^gh[ps]_[A-Za-z0-9_]{36,255}$",
    r"^github_pat_[A-Za-z0-9_]{22,255}$",
)

# Commit messages
PROJECT_SAVE_MESSAGE = "Update project state via Ignition - {timestamp}"
SCAFFOLD_COMMIT_MESSAGE = "feat: add {path}"
WORKFLOW_COMMIT_MESSAGE = "ci: add Ignition testing workflow for {path}"
AUDIT_INIT_MESSAGE = "feat: initialize persistent audit log for meta-compliance"
AUDIT_ENTRY_MESSAGE = "audit: {event_type} - {summary}"
AUDIT_BATCH_MESSAGE = "audit: batch update ({count} new entries)"
AUDIT_UPDATE_MESSAGE = "audit: update audit log ({count} entries)"
COMMIT_MESSAGE_MAX_LENGTH = 72

# Audit log file
AUDIT_LOG_VERSION = "1.0.0"
AUDIT_LOG_DESCRIPTION = "Persistent audit log for Ignition meta-compliance tracking"
SYSTEM_COMMIT_MARKERS = ("audit:", "ignition:", "meta-compliance")

# AI
DEFAULT_AI_MODEL = "gemini-2.5-flash"
AI_SYSTEM_INSTRUCTION = "You are an expert CMMI consultant and technical writer."
TEST_WORKFLOW_FILES = (
    ".github/workflows/ignition-testing.yml",
    "scripts/ignition-test-runner.js",
)

# Environment variables, in precedence order
GITHUB_TOKEN_ENV_VARS = ("IGNITION_GITHUB_TOKEN", "GITHUB_TOKEN")
GEMINI_API_KEY_ENV_VAR = "GEMINI_API_KEY"

# Metrics
DOC_SECTION_MIN_LENGTH = 10

# Date parsing for --since options
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%d/%m/%Y",
    "%d %B %Y",
    "%B %d, %Y",
]

# Display
STATUS_HEADER_WIDTH = 60

"""Centralized configuration for the MindDump backend.

Re-exports everything from minddump.infrastructure.settings so existing imports
continue to work, then adds typed constants for the thought pipeline, its
integrations, rate limiting, and API settings.  Environment variable overrides
use safe defaults so the app starts without extra env configuration.
"""

from __future__ import annotations

import os

from minddump.infrastructure.settings import *  # noqa: F401, F403 - re-export existing

# --- App ---
APP_VERSION: str = "2.0.0"
CATEGORIZATION_SYSTEM: str = "enhanced_15_category"

# --- Thought input ---
THOUGHT_TEXT_MAX_CHARS: int = 50_000
THOUGHT_SUBCATEGORY_MAX: int = 100
THOUGHT_TITLE_MAX: int = 200
THOUGHT_SUMMARY_MAX: int = 1000
THOUGHT_EXPANDED_MAX: int = 100_000
THOUGHT_ACTIONS_MAX: int = 50
THOUGHT_ACTION_CHARS_MAX: int = 500

# --- Project ---
PROJECT_TECH_STACK_MAX: int = 20
PROJECT_TECH_CHARS_MAX: int = 50
PROJECT_FEATURES_MAX: int = 50
PROJECT_FEATURE_CHARS_MAX: int = 200
PROJECT_MARKDOWN_MAX: int = 50_000
PROJECT_SHEET_EXPANDED_MAX: int = 10_000

# --- Analysis ---
ANALYSIS_TIMEOUT_SECONDS: float = float(os.getenv("MINDDUMP_ANALYSIS_TIMEOUT", "30"))
LLM_MAX_RETRIES: int = int(os.getenv("MINDDUMP_LLM_MAX_RETRIES", "2"))
ANALYSIS_CACHE_TTL_SECONDS: int = int(os.getenv("MINDDUMP_ANALYSIS_CACHE_TTL", "300"))
ANALYSIS_CACHE_SIZE: int = int(os.getenv("MINDDUMP_ANALYSIS_CACHE_SIZE", "256"))

# --- Sheets ---
PROJECT_SHEET_TIMEOUT_SECONDS: float = float(os.getenv("MINDDUMP_PROJECT_SHEET_TIMEOUT", "15"))
MASTER_LOG_RETRY_ATTEMPTS: int = 3
MASTER_LOG_RETRY_BASE_DELAY: float = 1.0
MASTER_LOG_RETRY_MAX_DELAY: float = 10.0
SECURE_SHEET_MAX_ROWS: int = 10_000
SECURE_SHEET_WRITES_PER_MINUTE: int = 60

# --- Webhooks ---
WEBHOOK_TIMEOUT_SECONDS: float = 15.0
WEBHOOK_MAX_ATTEMPTS: int = 3
WEBHOOK_SENDS_PER_MINUTE: int = 10
WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS: int = 300
WEBHOOK_STATUS_TTL_SECONDS: int = 3600
WEBHOOK_STATUS_MAX_ENTRIES: int = 1000

# --- Rate Limiting ---
RATE_LIMIT_WRITE_RPM: int = 20
RATE_LIMIT_READ_RPM: int = 60
RATE_LIMIT_RPH: int = 1000
RATE_LIMIT_MAX_IPS: int = 10000

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 50
API_LIST_LIMIT_MAX: int = 100
API_MAX_BODY_BYTES: int = 5 * 1024 * 1024
DEMO_STORAGE_MAX_THOUGHTS: int = 1000

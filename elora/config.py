"""
Elora Assistant: Configuration
All environment variables and constants. Single source of truth.
No other file reads os.environ directly.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

# ─── API Keys ────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# ─── LLM Settings ────────────────────────────────────────────────────────────
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "700"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.2"))
# Hard deadline per model call. Expiry is reported as an upstream timeout.
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# ─── Disclosure Enforcement ──────────────────────────────────────────────────
# Corrective rewrite calls allowed after a leak before the safe fallback.
MAX_REWRITE_ROUNDS = int(os.getenv("MAX_REWRITE_ROUNDS", "1"))
# Attempt at which the final answer may be revealed
MAX_ATTEMPT = 3

# ─── Input Limits ────────────────────────────────────────────────────────────
MAX_MESSAGE_CHARS = 2400
MAX_SHORT_FIELD_CHARS = 80   # country, level, subject
MAX_TOPIC_CHARS = 160
MAX_ENUM_CHARS = 32          # role, action
MAX_IMAGE_BYTES = 6 * 1024 * 1024
# One embedded image plus the text fields
MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", str(7 * 1024 * 1024)))

# ─── Verification Service ────────────────────────────────────────────────────
VERIFICATION_BASE_URL = os.getenv(
    "VERIFICATION_BASE_URL", "https://elora-website.vercel.app"
).rstrip("/")
VERIFICATION_TIMEOUT_SECONDS = float(os.getenv("VERIFICATION_TIMEOUT_SECONDS", "5"))
SESSION_COOKIE_NAME = "elora_session"

# ─── Teacher License Cookie ──────────────────────────────────────────────────
TEACHER_COOKIE_NAME = "elora_teacher"
TEACHER_COOKIE_SECRET = os.getenv("TEACHER_COOKIE_SECRET") or os.getenv("SESSION_SECRET", "")
TEACHER_TOKEN_ALGORITHM = "HS256"
TEACHER_TOKEN_TTL_DAYS = int(os.getenv("TEACHER_TOKEN_TTL_DAYS", "30"))
# Secure cookies only when served over HTTPS in production
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
COOKIE_SECURE = ENVIRONMENT == "production"

# ─── CORS ────────────────────────────────────────────────────────────────────
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# ─── Logging ─────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ─── Server ──────────────────────────────────────────────────────────────────
PORT = int(os.getenv("PORT", "8000"))

VERSION = "1.0.0"

# classes/app_config.py
import logging
import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n"
)

logger = logging.getLogger("aether_backend")

# --- Google Cloud / model configuration ---
PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT", "your-project-id")
REGION = os.getenv("GOOGLE_CLOUD_REGION", "us-central1")

DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "gemini-2.5-flash-lite")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "300"))
DEFAULT_TEMPERATURE = float(os.getenv("DEFAULT_TEMPERATURE", "0.7"))
DEFAULT_MAX_OUTPUT_TOKENS = int(os.getenv("DEFAULT_MAX_OUTPUT_TOKENS", "2048"))
THINKING_STAGE_DELAY = float(os.getenv("THINKING_STAGE_DELAY", "0.8"))

# --- Database configuration ---
# DATABASE_URL wins; otherwise a Postgres URL is assembled from the DB_* values.
DATABASE_URL        = os.getenv("DATABASE_URL", "")
DB_HOST             = os.getenv("DB_HOST", "localhost")
DB_PORT             = int(os.getenv("DB_PORT", "5432"))
DB_NAME             = os.getenv("DB_NAME", "aether")
DB_USER             = os.getenv("DB_USER", "postgres")
DB_PASSWORD         = os.getenv("DB_PASSWORD")
DB_SECRET_ID        = os.getenv("DB_SECRET_ID")

# --- Session / identity ---
DEFAULT_JWT_SECRET = "aether-dev-session-secret-change-me-before-deploying"
JWT_SECRET = os.getenv("JWT_SECRET") or DEFAULT_JWT_SECRET
if JWT_SECRET == DEFAULT_JWT_SECRET:
    logger.warning("JWT_SECRET is not set; using the development default for session tokens")
COOKIE_NAME = os.getenv("COOKIE_NAME", "app_session_id")
OWNER_OPEN_ID = os.getenv("OWNER_OPEN_ID", "")

# --- Caches: (max entries, default ttl seconds) ---
CACHE_MAX_SIZE = int(os.getenv("CACHE_MAX_SIZE", "10000"))
USER_CACHE_TTL = int(os.getenv("USER_CACHE_TTL", "300"))
SETTINGS_CACHE_TTL = int(os.getenv("SETTINGS_CACHE_TTL", "600"))
CONVERSATION_CACHE_TTL = int(os.getenv("CONVERSATION_CACHE_TTL", "120"))

# --- Rate limits: (max requests, window seconds) ---
API_RATE_LIMIT = int(os.getenv("API_RATE_LIMIT", "100"))
MODEL_RATE_LIMIT = int(os.getenv("MODEL_RATE_LIMIT", "10"))
AUTH_RATE_LIMIT = int(os.getenv("AUTH_RATE_LIMIT", "10"))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "60"))
RATE_LIMIT_SWEEP_SECONDS = float(os.getenv("RATE_LIMIT_SWEEP_SECONDS", "60"))

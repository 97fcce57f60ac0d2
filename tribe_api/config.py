# tribe_api/config.py
import os, logging
from pathlib import Path
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=PROJECT_ROOT / ".env")


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


# ===== DB =====
# 우선순위: DB_URL > 조합형 환경변수
DB_URL = os.getenv("DB_URL")
if not DB_URL:
    DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
    DB_NAME = os.getenv("DB_NAME", "tribe")
    DB_USER = os.getenv("DB_USER", "tribe")
    DB_PASS = os.getenv("DB_PASS", "")
    DB_URL = f"mysql+asyncmy://{DB_USER}:{DB_PASS}@{DB_HOST}:3306/{DB_NAME}?charset=utf8mb4"

# ===== app =====
LOG_LEVEL  = os.getenv("LOG_LEVEL", "INFO").upper()
APP_DEBUG  = _flag("APP_DEBUG")
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

# ===== n8n workflow (AI coach) =====
WORKFLOW_WEBHOOK_URL    = os.getenv("WORKFLOW_WEBHOOK_URL", "http://localhost:5678/webhook/ai-coach")
WORKFLOW_WEBHOOK_METHOD = os.getenv("WORKFLOW_WEBHOOK_METHOD", "PUT").upper()
WORKFLOW_TIMEOUT        = float(os.getenv("WORKFLOW_TIMEOUT", "60"))

# ===== WordPress / WooCommerce =====
WORDPRESS_TIMEOUT    = float(os.getenv("WORDPRESS_TIMEOUT", "30"))
WORDPRESS_SYNC_TOKEN = os.getenv("WORDPRESS_SYNC_TOKEN", "") or ""

# ===== auth =====
AUTH_TOKEN_TTL_HOURS        = int(os.getenv("AUTH_TOKEN_TTL_HOURS", "168"))
PASSWORD_RESET_TTL_MINUTES  = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "60"))
PASSWORD_RESET_REDIRECT_URL = os.getenv("PASSWORD_RESET_REDIRECT_URL", "http://localhost:8080/reset-password")

# ===== coach follow-up =====
TELEGRAM_COACHING_URL = os.getenv("TELEGRAM_COACHING_URL", "https://t.me/your_coaching_bot")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

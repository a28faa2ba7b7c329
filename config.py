"""
Налаштування застосунку, що читаються зі змінних оточення.

Значення за замовчуванням підходять для локальної розробки.
"""
import os


def get_bool_env(key, default=False):
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ('true', '1', 't')


APP_ENV = os.environ.get("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "auth_token")
SESSION_TTL_DAYS = int(os.environ.get("SESSION_TTL_DAYS", 30))
COOKIE_SECURE = get_bool_env("COOKIE_SECURE", IS_PRODUCTION)

# "local" перевіряє сесії у власній БД, "remote" звертається до зовнішнього PWA-бекенду.
CHAT_AUTH_MODE = os.environ.get("CHAT_AUTH_MODE", "local")
REMOTE_AUTH_URL = os.environ.get("REMOTE_AUTH_URL", "https://appmytools.replit.app/api/auth/user")
REMOTE_AUTH_TIMEOUT = float(os.environ.get("REMOTE_AUTH_TIMEOUT", 10))

REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
REDIS_PORT = int(os.environ.get("REDIS_PORT", 6379))
RATE_LIMIT_ENABLED = get_bool_env("RATE_LIMIT_ENABLED", True)
RATE_LIMIT_TIMES = int(os.environ.get("RATE_LIMIT_TIMES", 10))
RATE_LIMIT_SECONDS = int(os.environ.get("RATE_LIMIT_SECONDS", 60))

CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

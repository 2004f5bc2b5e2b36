import os
from decimal import Decimal


def get_secret(secret_name: str) -> str | None:
    secret_path = f'/run/secrets/{secret_name}'
    try:
        with open(secret_path, 'r', encoding='utf-8') as secret_file:
            return secret_file.read().strip()
    except IOError:
        return os.getenv(secret_name)


DB_PASSWORD = get_secret('db_password')
SECRET_KEY = get_secret('secret_key')
EXTERNAL_ID_SECRET = get_secret('external_id_secret') or SECRET_KEY
REDEMPTION_SECRET = get_secret('redemption_secret') or SECRET_KEY
XENDIT_SECRET_KEY = get_secret('xendit_secret_key')
XENDIT_CALLBACK_TOKEN = get_secret('xendit_callback_token')

POSTGRES_DB = os.getenv("POSTGRES_DB")
POSTGRES_USER = os.getenv("POSTGRES_USER")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT")
REDIS_URL = os.getenv("REDIS_URL")

if POSTGRES_USER and DB_PASSWORD and POSTGRES_DB:
    DATABASE_URL = f"postgresql+asyncpg://{POSTGRES_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{POSTGRES_DB}"
else:
    raise ValueError("Can't build DATABASE_URL")

ALGORITHM = "HS256"
JWT_ISSUER = "ticketing-api"
JWT_AUDIENCE = "ticketing-web"

XENDIT_BASE_URL = os.getenv("XENDIT_BASE_URL", "https://api.xendit.co")
XENDIT_TIMEOUT_SECONDS = float(os.getenv("XENDIT_TIMEOUT_SECONDS", "15"))
XENDIT_INVOICE_DURATION = int(os.getenv("XENDIT_INVOICE_DURATION", "86400"))
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "IDR")
ADMIN_FEE_PERCENT = Decimal(os.getenv("ADMIN_FEE_PERCENT", "1.5"))
INVOICE_SUCCESS_REDIRECT_URL = os.getenv("INVOICE_SUCCESS_REDIRECT_URL")

AUDIT_STREAM = os.getenv("AUDIT_STREAM", "audit:events")
AUDIT_GROUP = os.getenv("AUDIT_GROUP", "audit-writers")
AUDIT_BATCH = int(os.getenv("AUDIT_BATCH", "100"))
AUDIT_BLOCK_MS = int(os.getenv("AUDIT_BLOCK_MS", "5000"))

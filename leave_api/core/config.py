import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def _build_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    host = os.getenv("DB_HOST")
    if not host:
        return "sqlite:///./leave_api.db"

    port = os.getenv("DB_PORT", "5432")
    username = os.getenv("DB_USERNAME", "postgres")
    password = os.getenv("DB_PASSWORD", "")
    name = os.getenv("DB_NAME", "leave_db")
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{name}"


APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = _build_database_url()
DB_ECHO = _get_bool(os.getenv("DB_ECHO"), default=False)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
# 7 days
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "10080"))

MIN_BCRYPT_ROUNDS = 10
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", str(MIN_BCRYPT_ROUNDS)))
PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "6"))

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), default=["*"])

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if BCRYPT_ROUNDS < MIN_BCRYPT_ROUNDS:
        raise RuntimeError(f"BCRYPT_ROUNDS must be at least {MIN_BCRYPT_ROUNDS}.")
